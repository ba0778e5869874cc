#!/usr/bin/env python3

# Karol Siedlaczek 2026

import sys
import json
import signal
import typer
import logging
import platform
from logging.handlers import RotatingFileHandler
from enum import Enum
from pathlib import Path
from dataclasses import dataclass
from typing import Any, NoReturn
from rich.console import Console
from rich.table import Table, box
from cert_sync.conf.config import Config, setup_paths
from cert_sync.domain.cert_status import CertStatus
from cert_sync.domain.cert_store import CertStore
from cert_sync.domain.issuer import CertIssuer
from cert_sync.domain.observer import DockerObserver
from cert_sync.domain.publisher import ConfigPublisher
from cert_sync.domain.reconciler import Reconciler
from cert_sync.domain.root_ca import RootCA
from cert_sync.domain.scheduler import Scheduler
from cert_sync.exception.cert_exceptions import CertSyncError, CaBootstrapError
from cert_sync.exception.validation_exceptions import ValidationError

VERSION = "1.0.0"
DATE_FMT = "%Y-%m-%d %H:%M"
LOG_FORMAT = "%(asctime)s %(levelname)s [pid=%(process)d] [%(name)s] %(message)s"
LOGGER = logging.getLogger("certsync")

app = typer.Typer(
    add_completion=False,
    help="Keep locally-trusted certificates in sync with labelled Docker containers"
)
console = Console()
err_console = Console(stderr=True)


class ExitCode(Enum):
    OK = 0
    WARNING = 1
    CRITICAL = 2


class Format(Enum):
    TABLE = "table"
    JSON = "json"

    @classmethod
    def values(cls) -> list[str]:
        return [item.value for item in cls]

    @classmethod
    def from_string(cls, val: str) -> "Format":
        try:
            return Format(val)
        except ValueError:
            raise typer.BadParameter(f"Unknown format: {val}, must be one of: {(', ').join(Format.values())}")


class Opt:
    @staticmethod
    def format() -> Any:
        return typer.Option(
            Format.TABLE.value, "--format", "-f",
            help=f"Output format: {', '.join(Format.values())}"
        )


@dataclass
class Settings:
    log_file: str | None
    log_level: str | None


@dataclass(frozen=True)
class Services:
    config: Config
    store: CertStore
    publisher: ConfigPublisher

    @classmethod
    def build(cls, config: Config) -> "Services":
        store = CertStore(config.certs_dir)
        publisher = ConfigPublisher(
            config.tls_conf_file,
            certs_dir=config.certs_dir,
            store_name=config.tls_store,
            external_certs_dir=config.external_certs_dir
        )
        return cls(config, store, publisher)

    def bootstrap_ca(self) -> RootCA:
        try:
            return RootCA.load_or_create(
                self.config.ca_key_file,
                self.config.ca_cert_file,
                self.config.ca_validity_days
            )
        except CaBootstrapError as e:
            LOGGER.critical(str(e))
            exit_with_error(str(e), ExitCode.CRITICAL)

    def reconciler(self, ca: RootCA) -> Reconciler:
        observer = DockerObserver.from_url(
            self.config.docker_url,
            timeout=self.config.docker_timeout,
            enable_label=self.config.enable_label,
            domains_label=self.config.domains_label
        )
        issuer = CertIssuer(ca, validity_days=self.config.cert_validity_days)

        return Reconciler(observer, self.store, issuer, self.publisher)


@app.callback()
def main(
    ctx: typer.Context,
    log_file: str = typer.Option(
        None, "--log-file",
        envvar="LOG_FILE",
        help="Write logs also to this file (rotated at 2 MiB)"
    ),
    log_level: str = typer.Option(
        None, "--log-level",
        envvar="LOG_LEVEL",
        help="Log level: DEBUG, INFO, WARNING, ERROR, CRITICAL"
    )
) -> None:
    ctx.obj = Settings(log_file=log_file, log_level=log_level)


@app.command(help="Run the reconciliation loop until interrupted")
def run(
    ctx: typer.Context,
    interval: float = typer.Option(
        None, "--interval", "-i",
        help="Seconds between reconciliation passes, overrides CHECK_INTERVAL"
    )
) -> None:
    services = load_services(ctx, check_interval=interval)
    ca = services.bootstrap_ca()
    reconciler = services.reconciler(ca)
    scheduler = Scheduler(services.config.check_interval, reconciler.run_pass)

    def handle_signal(signum: int, _frame: Any) -> None:
        LOGGER.info(f"Received {signal.Signals(signum).name}")
        scheduler.stop()

    signal.signal(signal.SIGTERM, handle_signal)
    signal.signal(signal.SIGINT, handle_signal)

    scheduler.run_forever()


@app.command(help="Run a single reconciliation pass and show what changed")
def reconcile(
    ctx: typer.Context,
    format: str = Opt.format()
) -> None:
    fmt = Format.from_string(format)
    services = load_services(ctx)
    reconciler = services.reconciler(services.bootstrap_ca())

    try:
        result = reconciler.run_pass()
    except CertSyncError as e:
        LOGGER.error(str(e))
        exit_with_error(str(e), ExitCode.CRITICAL)

    rows = result.to_serializable()
    if not result.published:
        rows.append({"container": "-", "action": "failed", "msg": f"Cannot publish '{services.config.tls_conf_file}'"})
    render(rows or [{"container": "-", "action": "none", "msg": "Already in sync"}], fmt)

    raise typer.Exit(code=ExitCode.OK.value if result.ok else ExitCode.WARNING.value)


@app.command(name="list", help="List stored certificates with their domains and status")
def list_certs(
    ctx: typer.Context,
    format: str = Opt.format()
) -> None:
    fmt = Format.from_string(format)
    services = load_services(ctx)

    try:
        entries = services.store.list_existing()
    except CertSyncError as e:
        exit_with_error(str(e), ExitCode.CRITICAL)

    rows = []
    for container_id, entry in entries.items():
        status = entry.get_status()
        readable = status not in (CertStatus.INCOMPLETE, CertStatus.INVALID)
        rows.append({
            "container": container_id,
            "status": status.value,
            "domains": entry.get_domains() if readable else [],
            "expire_date": entry.get_expire_date().strftime(DATE_FMT) if readable else None,
            "cert_file": str(entry.cert_file),
            "key_file": str(entry.key_file)
        })

    render(rows, fmt)


@app.command(help="Create the root CA if missing and show its details")
def ca(
    ctx: typer.Context,
    format: str = Opt.format()
) -> None:
    fmt = Format.from_string(format)
    services = load_services(ctx)
    root_ca = services.bootstrap_ca()

    render({
        "subject": root_ca.subject.rfc4514_string(),
        "not_before": root_ca.not_before.strftime(DATE_FMT),
        "not_after": root_ca.not_after.strftime(DATE_FMT),
        "fingerprint_sha256": root_ca.fingerprint,
        "cert_file": str(services.config.ca_cert_file)
    }, fmt)


@app.command(help="Version of the application")
def version(format: str = Opt.format()) -> None:
    render({
        "name": "cert-sync",
        "app": VERSION,
        "python": platform.python_version()
    }, Format.from_string(format))

# Helper functions

def load_services(ctx: typer.Context, **overrides: Any) -> Services:
    settings = ctx.obj
    if not isinstance(settings, Settings):
        raise typer.Exit(code=ExitCode.CRITICAL.value)

    try:
        config = Config.load({
            "log_file": settings.log_file,
            "log_level": settings.log_level,
            **overrides
        })
    except ValidationError as e:
        raise typer.BadParameter(str(e))

    setup_paths(config)
    setup_logging(config.log_file, config.log_level)
    LOGGER.debug(f"Loaded configuration: {config}")

    return Services.build(config)


def setup_logging(log_file: Path | None, log_level: str) -> None:
    logger = logging.getLogger()
    if any(getattr(h, "_certsync_handler", False) for h in logger.handlers):
        return

    level = getattr(logging, log_level.upper(), logging.INFO)
    formatter = logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]

    if log_file:
        handlers.append(RotatingFileHandler(
            filename=log_file,
            maxBytes=2 * 1024 * 1024,
            backupCount=5,
            encoding="UTF-8"
        ))

    for handler in handlers:
        handler._certsync_handler = True
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    logger.setLevel(level)


def render(data: dict | list[dict], fmt: Format) -> None:
    def _render_cell(value: Any) -> str:
        if value is None:
            return "-"
        if isinstance(value, list):
            return "\n".join(str(v) for v in value) if value else "-"
        return str(value)

    if fmt == Format.JSON:
        console.print_json(json.dumps(data, ensure_ascii=False))
        return

    rows = data if isinstance(data, list) else [data]
    if not rows:
        console.print("No certificates found")
        return

    table = Table(show_header=True, header_style="bold", expand=True, show_lines=True, box=box.ROUNDED)
    cols = list(rows[0].keys())
    for c in cols:
        table.add_column(str(c), overflow="fold")

    for row in rows:
        table.add_row(*[_render_cell(row.get(c)) for c in cols])
    console.print(table)


def exit_with_error(msg: str, code: ExitCode) -> NoReturn:
    err_console.print(msg, style="red", markup=False, highlight=False)
    raise typer.Exit(code=code.value)


if __name__ == "__main__":
    app()
