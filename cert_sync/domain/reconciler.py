import logging
from dataclasses import dataclass, field
from cert_sync.domain.cert_store import CertStore, CertEntry
from cert_sync.domain.issuer import CertIssuer
from cert_sync.domain.observer import DockerObserver
from cert_sync.domain.publisher import ConfigPublisher
from cert_sync.exception.cert_exceptions import IssuanceError, StoreError, PublishError

log = logging.getLogger(__name__)


@dataclass
class PassResult:
    desired: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    issued: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)
    published: bool = False

    @property
    def ok(self) -> bool:
        return self.published and not self.failed

    def to_serializable(self) -> list[dict]:
        rows = [{"container": c, "action": "removed", "msg": "Container is gone"} for c in self.removed]
        rows += [{"container": c, "action": "issued", "msg": "Certificate created"} for c in self.issued]
        rows += [{"container": c, "action": "failed", "msg": msg} for c, msg in self.failed.items()]
        return rows

    def __str__(self) -> str:
        return (
            f"desired={len(self.desired)} removed={len(self.removed)} issued={len(self.issued)} "
            f"failed={len(self.failed)} published={self.published}"
        )


@dataclass(frozen=True)
class Reconciler:
    observer: DockerObserver
    store: CertStore
    issuer: CertIssuer
    publisher: ConfigPublisher

    def run_pass(self) -> PassResult:
        # Observe first, a failing runtime query must leave the store untouched
        desired = self.observer.list_desired()
        existing = self.store.list_existing()
        result = PassResult(desired=list(desired))

        for container_id in existing.keys() - desired.keys():
            log.info(f"Removing obsolete certificate: {container_id}")
            self.store.remove(container_id)
            result.removed.append(container_id)

        for container_id, container in desired.items():
            entry = existing.get(container_id)
            if entry is not None and entry.is_complete():
                continue
            elif entry is not None:
                log.warning(f"Certificate files for {container} are incomplete, issuing a new pair")

            try:
                cert = self.issuer.issue(container.domains)
                log.info(f"Creating certificate for {container}: {', '.join(cert.domains)}")
                entry = self.store.write(container_id, cert)
            except (IssuanceError, StoreError) as e:
                log.error(f"Skipping container {container}: {e}")
                result.failed[container_id] = str(e)
                continue

            log.info(f"Certificate: {entry.cert_file}")
            log.info(f"Private key: {entry.key_file}")
            result.issued.append(container_id)

        entries = [e for e in self.store.list_existing().values() if e.is_complete()]
        self._publish(entries, result)

        log.info(f"Reconciliation pass finished ({result})")
        return result

    def _publish(self, entries: list[CertEntry], result: PassResult) -> None:
        try:
            added = self.publisher.missing(entries)
        except PublishError as e:
            log.warning(f"{e}, the file will be rewritten")
            added = entries

        for entry in added:
            log.debug(f"Adding '{entry}' certificate to '{self.publisher.conf_file}'")

        try:
            self.publisher.publish(entries)
        except PublishError as e:
            log.error(str(e))
            return

        result.published = True
