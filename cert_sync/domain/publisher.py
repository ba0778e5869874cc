import re
import yaml
import logging
from pathlib import Path
from typing import Any, Iterable
from cert_sync.domain.cert_store import CertEntry
from cert_sync.exception.cert_exceptions import PublishError
from cert_sync.utils import atomic_write_text, read_text

log = logging.getLogger(__name__)


class ConfigPublisher:
    """Renders the store as a Traefik dynamic configuration file.

    The document is rebuilt from scratch on every publish, optionally with
    certificate paths rewritten to the directory the proxy container sees.
    """

    def __init__(
        self,
        conf_file: Path,
        *,
        certs_dir: Path,
        store_name: str = "default",
        external_certs_dir: str | None = None
    ) -> None:
        self.conf_file = Path(conf_file)
        self.certs_dir = Path(certs_dir)
        self.store_name = store_name
        self.external_certs_dir = external_certs_dir

    def translate(self, path: Path) -> str:
        path_str = str(path)
        if not self.external_certs_dir:
            return path_str

        internal = str(self.certs_dir)
        if path_str == internal or path_str.startswith(internal.rstrip("/") + "/"):
            path_str = self.external_certs_dir + "/" + path_str[len(internal):]
        return re.sub(r"/{2,}", "/", path_str)

    def render(self, entries: Iterable[CertEntry]) -> dict[str, Any]:
        certificates = [
            {
                "certFile": self.translate(entry.cert_file),
                "keyFile": self.translate(entry.key_file),
                "stores": [self.store_name]
            }
            for entry in sorted(entries, key=lambda e: e.container_id)
        ]
        return {"tls": {"certificates": certificates}}

    def read(self) -> dict[str, Any]:
        if not self.conf_file.is_file():
            return {}

        try:
            document = yaml.safe_load(read_text(self.conf_file)) or {}
        except (OSError, yaml.YAMLError) as e:
            raise PublishError(self.conf_file, "Cannot read config file", detail=str(e))

        if not isinstance(document, dict):
            raise PublishError(self.conf_file, "Config file has unexpected structure in", detail=type(document).__name__)
        return document

    def missing(self, entries: Iterable[CertEntry]) -> list[CertEntry]:
        tls = self.read().get("tls")
        certificates = tls.get("certificates") if isinstance(tls, dict) else None
        if not isinstance(certificates, list):
            certificates = []

        published = {
            item.get("certFile")
            for item in certificates
            if isinstance(item, dict) and isinstance(item.get("certFile"), str)
        }
        return [e for e in entries if self.translate(e.cert_file) not in published]

    def publish(self, entries: Iterable[CertEntry]) -> None:
        document = self.render(entries)
        content = yaml.safe_dump(document, sort_keys=False, default_flow_style=False)

        try:
            self.conf_file.parent.mkdir(parents=True, exist_ok=True)
            atomic_write_text(self.conf_file, content)
        except OSError as e:
            raise PublishError(self.conf_file, "Cannot write config file", detail=str(e))

        log.debug(f"Published {len(document['tls']['certificates'])} certificate(s) to '{self.conf_file}'")
