import logging
from datetime import datetime, timezone, timedelta
from pathlib import Path
from typing import ClassVar
from dataclasses import dataclass
from cryptography import x509
from cryptography.x509.oid import NameOID
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cert_sync.exception.cert_exceptions import CaBootstrapError
from cert_sync.utils import atomic_write_text, read_text

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class RootCA:
    KEY_SIZE: ClassVar[int] = 4096
    EXPIRY_WARNING_DAYS: ClassVar[int] = 30
    SUBJECT: ClassVar[x509.Name] = x509.Name([
        x509.NameAttribute(NameOID.COMMON_NAME, "cert-sync Root CA"),
        x509.NameAttribute(NameOID.COUNTRY_NAME, "US"),
        x509.NameAttribute(NameOID.ORGANIZATION_NAME, "cert-sync"),
        x509.NameAttribute(NameOID.ORGANIZATIONAL_UNIT_NAME, "Development"),
    ])

    private_key: rsa.RSAPrivateKey
    certificate: x509.Certificate
    key_pem: str
    cert_pem: str

    @property
    def subject(self) -> x509.Name:
        return self.certificate.subject

    @property
    def not_before(self) -> datetime:
        return self.certificate.not_valid_before_utc

    @property
    def not_after(self) -> datetime:
        return self.certificate.not_valid_after_utc

    @property
    def fingerprint(self) -> str:
        return self.certificate.fingerprint(hashes.SHA256()).hex(":").upper()

    @classmethod
    def from_pem(cls, key_pem: str, cert_pem: str) -> "RootCA":
        private_key = serialization.load_pem_private_key(key_pem.encode("ascii"), password=None)
        certificate = x509.load_pem_x509_certificate(cert_pem.encode("ascii"))

        if not isinstance(private_key, rsa.RSAPrivateKey):
            raise ValueError(f"Expected RSA private key, got {type(private_key).__name__}")
        if private_key.public_key().public_numbers() != certificate.public_key().public_numbers():
            raise ValueError("Private key does not match the certificate public key")

        return cls(private_key, certificate, key_pem, cert_pem)

    @classmethod
    def load_or_create(cls, key_file: Path, cert_file: Path, validity_days: int = 3650) -> "RootCA":
        if key_file.is_file() and cert_file.is_file():
            log.debug(f"Loading root CA from '{cert_file}'...")
            try:
                ca = cls.from_pem(read_text(key_file), read_text(cert_file))
            except (OSError, ValueError, TypeError) as e:
                raise CaBootstrapError(f"cannot load existing key '{key_file}' and certificate '{cert_file}'", detail=str(e))

            ca._warn_if_expiring()
            log.info(f"Loaded root CA '{ca}' valid to {ca.not_after:%Y-%m-%d %H:%M}")
            return ca

        log.info(f"Root CA not found at '{cert_file}', generating a new one...")
        ca = cls.generate(validity_days)

        try:
            key_file.parent.mkdir(parents=True, exist_ok=True)
            cert_file.parent.mkdir(parents=True, exist_ok=True)
            atomic_write_text(key_file, ca.key_pem, mode=0o600)
            atomic_write_text(cert_file, ca.cert_pem)
        except OSError as e:
            raise CaBootstrapError(f"cannot persist key '{key_file}' and certificate '{cert_file}'", detail=str(e))

        log.info(f"Generated root CA '{ca}' valid to {ca.not_after:%Y-%m-%d %H:%M} (fingerprint={ca.fingerprint})")
        return ca

    @classmethod
    def generate(cls, validity_days: int = 3650) -> "RootCA":
        private_key = rsa.generate_private_key(public_exponent=65537, key_size=cls.KEY_SIZE)
        public_key = private_key.public_key()
        now = datetime.now(timezone.utc)

        certificate = (
            x509.CertificateBuilder()
            .subject_name(cls.SUBJECT)
            .issuer_name(cls.SUBJECT)
            .public_key(public_key)
            .serial_number(x509.random_serial_number())
            .not_valid_before(now)
            .not_valid_after(now + timedelta(days=validity_days))
            .add_extension(x509.BasicConstraints(ca=True, path_length=None), critical=True)
            .add_extension(
                x509.KeyUsage(
                    digital_signature=True,
                    content_commitment=False,
                    key_encipherment=True,
                    data_encipherment=False,
                    key_agreement=False,
                    key_cert_sign=True,
                    crl_sign=True,
                    encipher_only=False,
                    decipher_only=False,
                ),
                critical=True
            )
            .add_extension(x509.SubjectKeyIdentifier.from_public_key(public_key), critical=False)
            .sign(private_key, hashes.SHA256())
        )
        key_pem = private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        ).decode("ascii")
        cert_pem = certificate.public_bytes(serialization.Encoding.PEM).decode("ascii")

        return cls(private_key, certificate, key_pem, cert_pem)

    def _warn_if_expiring(self) -> None:
        time_left = self.not_after - datetime.now(timezone.utc)

        if time_left.total_seconds() <= 0:
            log.warning(f"Root CA '{self}' expired at {self.not_after:%Y-%m-%d %H:%M}, issued certificates will not be trusted")
        elif time_left.days <= self.EXPIRY_WARNING_DAYS:
            log.warning(f"Root CA '{self}' expires in {time_left.days} days ({self.not_after:%Y-%m-%d %H:%M})")

    def __str__(self) -> str:
        attrs = self.subject.get_attributes_for_oid(NameOID.COMMON_NAME)
        return str(attrs[0].value) if attrs else self.subject.rfc4514_string()
