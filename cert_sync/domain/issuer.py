import logging
from datetime import datetime, timezone, timedelta
from typing import ClassVar, Sequence
from dataclasses import dataclass
from cryptography import x509
from cryptography.x509.oid import NameOID, ExtendedKeyUsageOID
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cert_sync.domain.root_ca import RootCA
from cert_sync.exception.cert_exceptions import IssuanceError
from cert_sync.exception.validation_exceptions import ValidationError
from cert_sync.validation.require import Require

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class DomainCert:
    domains: tuple[str, ...]
    cert_pem: str
    key_pem: str
    issuer: str
    not_before: datetime
    not_after: datetime

    @property
    def primary_domain(self) -> str:
        return self.domains[0]

    def __str__(self) -> str:
        return self.primary_domain


@dataclass(frozen=True)
class CertIssuer:
    KEY_SIZE: ClassVar[int] = 2048

    ca: RootCA
    validity_days: int = 365

    def issue(self, domains: Sequence[str]) -> DomainCert:
        domains = tuple(domains)
        if not domains:
            raise IssuanceError("Cannot issue certificate without any domain")

        try:
            Require.unique("domains", domains)
            for i, domain in enumerate(domains):
                Require.type(f"domains[{i}]", domain, str)
                Require.hostname(f"domains[{i}]", domain)
        except ValidationError as e:
            raise IssuanceError("Invalid domains for certificate", detail=str(e))

        log.debug(f"Issuing certificate for {', '.join(domains)} signed by '{self.ca}'...")

        private_key = rsa.generate_private_key(public_exponent=65537, key_size=self.KEY_SIZE)
        now = datetime.now(timezone.utc)
        not_after = now + timedelta(days=self.validity_days)

        try:
            subject = x509.Name([
                x509.NameAttribute(NameOID.COMMON_NAME, domains[0]),
                x509.NameAttribute(NameOID.COUNTRY_NAME, "US"),
                x509.NameAttribute(NameOID.ORGANIZATION_NAME, "cert-sync"),
                x509.NameAttribute(NameOID.ORGANIZATIONAL_UNIT_NAME, "Web Services"),
            ])
            certificate = (
                x509.CertificateBuilder()
                .subject_name(subject)
                .issuer_name(self.ca.subject)
                .public_key(private_key.public_key())
                .serial_number(x509.random_serial_number())
                .not_valid_before(now)
                .not_valid_after(not_after)
                .add_extension(x509.BasicConstraints(ca=False, path_length=None), critical=True)
                .add_extension(
                    x509.KeyUsage(
                        digital_signature=True,
                        content_commitment=False,
                        key_encipherment=True,
                        data_encipherment=False,
                        key_agreement=False,
                        key_cert_sign=False,
                        crl_sign=False,
                        encipher_only=False,
                        decipher_only=False,
                    ),
                    critical=True
                )
                .add_extension(x509.ExtendedKeyUsage([ExtendedKeyUsageOID.SERVER_AUTH]), critical=False)
                .add_extension(x509.SubjectAlternativeName([x509.DNSName(d) for d in domains]), critical=False)
                .add_extension(
                    x509.AuthorityKeyIdentifier.from_issuer_public_key(self.ca.private_key.public_key()),
                    critical=False
                )
                .sign(self.ca.private_key, hashes.SHA256())
            )
        except ValueError as e:
            raise IssuanceError(f"Failed to sign certificate for '{domains[0]}'", detail=str(e))

        return DomainCert(
            domains=domains,
            cert_pem=certificate.public_bytes(serialization.Encoding.PEM).decode("ascii"),
            key_pem=private_key.private_bytes(
                encoding=serialization.Encoding.PEM,
                format=serialization.PrivateFormat.PKCS8,
                encryption_algorithm=serialization.NoEncryption(),
            ).decode("ascii"),
            issuer=self.ca.subject.rfc4514_string(),
            not_before=now,
            not_after=not_after,
        )
