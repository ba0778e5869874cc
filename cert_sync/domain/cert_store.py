import logging
from datetime import datetime, timezone, timedelta
from pathlib import Path
from typing import ClassVar
from dataclasses import dataclass
from cryptography import x509
from cert_sync.domain.cert_status import CertStatus
from cert_sync.domain.issuer import DomainCert
from cert_sync.exception.cert_exceptions import StoreError
from cert_sync.utils import atomic_write_text

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class CertEntry:
    EXPIRING_DAYS: ClassVar[int] = 30

    container_id: str
    cert_file: Path
    key_file: Path

    def is_complete(self) -> bool:
        return self.cert_file.is_file() and self.key_file.is_file()

    def load_cert(self) -> x509.Certificate:
        return x509.load_pem_x509_certificate(self.cert_file.read_bytes())

    def get_domains(self) -> list[str]:
        try:
            san = self.load_cert().extensions.get_extension_for_class(x509.SubjectAlternativeName)
        except x509.ExtensionNotFound:
            return []
        return san.value.get_values_for_type(x509.DNSName)

    def get_expire_date(self) -> datetime:
        return self.load_cert().not_valid_after_utc.astimezone(timezone.utc)

    def get_status(self) -> CertStatus:
        if not self.is_complete():
            return CertStatus.INCOMPLETE

        try:
            expire_date = self.get_expire_date()
        except (OSError, ValueError) as e:
            log.warning(f"Cannot read certificate '{self.cert_file}': {e}")
            return CertStatus.INVALID

        time_left = expire_date - datetime.now(timezone.utc)
        if time_left <= timedelta(0):
            return CertStatus.EXPIRED
        elif time_left.days <= self.EXPIRING_DAYS:
            return CertStatus.EXPIRING
        return CertStatus.OK

    def __str__(self) -> str:
        return self.container_id


class CertStore:
    CERT_SUFFIX: ClassVar[str] = ".pem"
    KEY_SUFFIX: ClassVar[str] = "-key.pem"

    def __init__(self, certs_dir: Path) -> None:
        self.certs_dir = Path(certs_dir)

    def entry(self, container_id: str) -> CertEntry:
        return CertEntry(
            container_id=container_id,
            cert_file=self.certs_dir / f"{container_id}{self.CERT_SUFFIX}",
            key_file=self.certs_dir / f"{container_id}{self.KEY_SUFFIX}"
        )

    def list_existing(self) -> dict[str, CertEntry]:
        try:
            files = sorted(p for p in self.certs_dir.iterdir() if p.is_file())
        except OSError as e:
            raise StoreError(self.certs_dir, "Cannot list certificate directory", detail=str(e))

        existing: dict[str, CertEntry] = {}

        for path in files:
            container_id = self._parse_container_id(path.name)
            if container_id is None:
                continue
            existing.setdefault(container_id, self.entry(container_id))

        return existing

    def write(self, container_id: str, cert: DomainCert) -> CertEntry:
        entry = self.entry(container_id)

        # Key goes first, a certificate file is never visible without its key
        try:
            atomic_write_text(entry.key_file, cert.key_pem, mode=0o600)
            atomic_write_text(entry.cert_file, cert.cert_pem)
        except OSError as e:
            raise StoreError(self.certs_dir, f"Cannot write certificate for '{container_id}' to", detail=str(e))

        log.debug(f"Stored certificate '{entry.cert_file}' and private key '{entry.key_file}'")
        return entry

    def remove(self, container_id: str) -> None:
        entry = self.entry(container_id)

        for path in (entry.cert_file, entry.key_file):
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                raise StoreError(path, "Cannot remove file", detail=str(e))

        log.debug(f"Removed certificate files for '{container_id}'")

    def _parse_container_id(self, filename: str) -> str | None:
        if filename.startswith("."): # In-flight temporary file
            return None
        elif filename.endswith(self.KEY_SUFFIX):
            container_id = filename[:-len(self.KEY_SUFFIX)]
        elif filename.endswith(self.CERT_SUFFIX):
            container_id = filename[:-len(self.CERT_SUFFIX)]
        else:
            return None
        return container_id or None
