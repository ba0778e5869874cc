import os
import logging
from pathlib import Path
from typing import ClassVar, Dict, Any
from dataclasses import dataclass, fields
from cert_sync.validation.require import Require

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Config:
    ALLOWED_LOG_LEVELS: ClassVar[set[str]] = { "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL" }
    ENV_ALIASES: ClassVar[dict[str, str]] = { "external_certs_dir": "CERT_DIR" }

    log_level: str = "INFO"
    log_file: Path | None = None
    ca_key_file: Path = Path("./files/ca/rootCA-key.pem")
    ca_cert_file: Path = Path("./files/ca/rootCA.pem")
    certs_dir: Path = Path("./files/certs")
    tls_conf_file: Path = Path("./files/traefik/tls.yml")
    external_certs_dir: str | None = None # Directory of certificates as seen by the proxy
    tls_store: str = "default"
    check_interval: float = 10.0
    docker_url: str = "unix:///var/run/docker.sock"
    docker_timeout: int = 30
    enable_label: str = "traefik.enable"
    domains_label: str = "mkcert.domains"
    ca_validity_days: int = 3650
    cert_validity_days: int = 365

    @classmethod
    def load(cls, overrides: Dict[str, Any] | None = None) -> "Config":
        params: Dict[str, Any] = {}
        overrides = { k: v for k, v in (overrides or {}).items() if v is not None }

        # Load environments
        for f in fields(cls):
            val = overrides.get(f.name)
            if val is None:
                val = os.getenv(f.name.upper())
            if val is None and f.name in cls.ENV_ALIASES:
                val = os.getenv(cls.ENV_ALIASES[f.name])
            if val is None or val == "":
                params[f.name] = f.default
                continue

            if f.type in (Path, Path | None):
                val = Path(val).expanduser()
            elif f.type is int:
                val = Require.number(f.name.upper(), val, int)
            elif f.type is float:
                val = Require.number(f.name.upper(), val, float)
            params[f.name] = val

        params["log_level"] = str(params["log_level"]).upper()
        Require.one_of("LOG_LEVEL", params["log_level"], cls.ALLOWED_LOG_LEVELS)

        Require.min("CHECK_INTERVAL", params["check_interval"], 1)
        Require.min("DOCKER_TIMEOUT", params["docker_timeout"], 1)
        Require.min("CA_VALIDITY_DAYS", params["ca_validity_days"], 1)
        Require.min("CERT_VALIDITY_DAYS", params["cert_validity_days"], 1)
        Require.max("CERT_VALIDITY_DAYS", params["cert_validity_days"], params["ca_validity_days"])

        Require.present("ENABLE_LABEL", params["enable_label"])
        Require.present("DOMAINS_LABEL", params["domains_label"])
        Require.present("TLS_STORE", params["tls_store"])

        Require.not_dir("CA_KEY_FILE", params["ca_key_file"])
        Require.not_dir("CA_CERT_FILE", params["ca_cert_file"])
        Require.not_dir("TLS_CONF_FILE", params["tls_conf_file"])

        return cls(**params)


def setup_paths(config: Config) -> None:
    dir_params = ["certs_dir"]
    file_params = ["ca_key_file", "ca_cert_file", "tls_conf_file", "log_file"]

    for param in dir_params:
        value = getattr(config, param)
        if not value:
            continue
        Path(value).expanduser().mkdir(parents=True, exist_ok=True)

    for param in file_params:
        value = getattr(config, param)
        if not value:
            continue
        Path(value).expanduser().parent.mkdir(parents=True, exist_ok=True)

    log.debug(f"Ensured paths exist (certs_dir='{config.certs_dir}'; tls_conf_file='{config.tls_conf_file}')")
