import pytest
from dataclasses import dataclass, field
from pathlib import Path
from cert_sync.domain.cert_store import CertStore
from cert_sync.domain.issuer import CertIssuer
from cert_sync.domain.observer import DockerObserver
from cert_sync.domain.publisher import ConfigPublisher
from cert_sync.domain.reconciler import Reconciler
from cert_sync.domain.root_ca import RootCA


@dataclass
class FakeContainer:
    id: str
    name: str
    labels: dict[str, str] = field(default_factory=dict)


class FakeContainers:
    def __init__(self) -> None:
        self.running: list[FakeContainer] = []
        self.error: Exception | None = None
        self.calls: list[dict] = []
        self.ignore_removed = False

    def list(self, filters: dict | None = None, ignore_removed: bool = False) -> list[FakeContainer]:
        self.ignore_removed = ignore_removed
        self.calls.append(filters)
        if self.error is not None:
            raise self.error
        return list(self.running)


class FakeDockerClient:
    def __init__(self) -> None:
        self.containers = FakeContainers()

    def add(self, container_id: str, domains: str, name: str | None = None) -> FakeContainer:
        container = FakeContainer(
            id=container_id,
            name=name or f"/{container_id}-app",
            labels={"traefik.enable": "true", "mkcert.domains": domains}
        )
        self.containers.running.append(container)
        return container

    def remove(self, container_id: str) -> None:
        self.containers.running = [c for c in self.containers.running if c.id != container_id]


@pytest.fixture(scope="session")
def root_ca() -> RootCA:
    return RootCA.generate(validity_days=30 * 365)


@pytest.fixture
def docker_client() -> FakeDockerClient:
    return FakeDockerClient()


@pytest.fixture
def certs_dir(tmp_path: Path) -> Path:
    path = tmp_path / "certs"
    path.mkdir()
    return path


@pytest.fixture
def store(certs_dir: Path) -> CertStore:
    return CertStore(certs_dir)


@pytest.fixture
def publisher(tmp_path: Path, certs_dir: Path) -> ConfigPublisher:
    return ConfigPublisher(tmp_path / "traefik" / "tls.yml", certs_dir=certs_dir, external_certs_dir="/certs")


@pytest.fixture
def reconciler(docker_client: FakeDockerClient, store: CertStore, publisher: ConfigPublisher, root_ca: RootCA) -> Reconciler:
    observer = DockerObserver(lambda: docker_client)
    return Reconciler(observer, store, CertIssuer(root_ca), publisher)
