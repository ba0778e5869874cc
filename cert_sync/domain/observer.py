import logging
import docker
import requests
from typing import Any, Callable
from docker.errors import DockerException
from cert_sync.domain.container import ContainerDescriptor
from cert_sync.exception.cert_exceptions import RuntimeQueryError

log = logging.getLogger(__name__)


class DockerObserver:
    """Derives the desired certificate state from running, labelled containers.

    The Docker client is created on first use and dropped after a failed
    query, so an unavailable daemon only fails the current pass.
    """

    def __init__(
        self,
        client_factory: Callable[[], Any],
        *,
        enable_label: str = "traefik.enable",
        domains_label: str = "mkcert.domains"
    ) -> None:
        self.client_factory = client_factory
        self.enable_label = enable_label
        self.domains_label = domains_label
        self._client: Any = None

    @classmethod
    def from_url(
        cls,
        base_url: str,
        *,
        timeout: int,
        enable_label: str,
        domains_label: str
    ) -> "DockerObserver":
        def create_client() -> docker.DockerClient:
            return docker.DockerClient(base_url=base_url, timeout=timeout)

        return cls(create_client, enable_label=enable_label, domains_label=domains_label)

    @property
    def filters(self) -> dict[str, Any]:
        return {
            "status": "running",
            "label": [f"{self.enable_label}=true", self.domains_label]
        }

    def list_desired(self) -> dict[str, ContainerDescriptor]:
        try:
            if self._client is None:
                self._client = self.client_factory()
            containers = self._client.containers.list(filters=self.filters, ignore_removed=True)
        except (DockerException, requests.RequestException) as e:
            self._client = None
            raise RuntimeQueryError("cannot list running containers", detail=str(e))

        desired: dict[str, ContainerDescriptor] = {}

        for container in containers:
            descriptor = ContainerDescriptor.from_container(container, self.domains_label)

            if not descriptor.domains:
                log.warning(f"Skipping container {descriptor}, label '{self.domains_label}' has no domains")
                continue

            desired[descriptor.id] = descriptor

        log.debug(f"Found {len(desired)} container(s) with '{self.domains_label}' label")
        return desired
