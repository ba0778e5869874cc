import yaml
import pytest
from pathlib import Path
from cert_sync.domain.cert_store import CertStore
from cert_sync.domain.publisher import ConfigPublisher
from cert_sync.exception.cert_exceptions import PublishError


def test_publish_writes_projection_of_entries(publisher: ConfigPublisher, store: CertStore) -> None:
    publisher.publish([store.entry("c2"), store.entry("c1")])

    document = yaml.safe_load(publisher.conf_file.read_text())

    assert document == {
        "tls": {
            "certificates": [
                {"certFile": "/certs/c1.pem", "keyFile": "/certs/c1-key.pem", "stores": ["default"]},
                {"certFile": "/certs/c2.pem", "keyFile": "/certs/c2-key.pem", "stores": ["default"]},
            ]
        }
    }


def test_publish_overwrites_previous_document(publisher: ConfigPublisher, store: CertStore) -> None:
    publisher.conf_file.parent.mkdir(parents=True, exist_ok=True)
    publisher.conf_file.write_text("tls:\n  certificates:\n    - certFile: /certs/old.pem\n")

    publisher.publish([])

    assert yaml.safe_load(publisher.conf_file.read_text()) == {"tls": {"certificates": []}}


def test_publish_keeps_paths_without_external_dir(tmp_path: Path, store: CertStore) -> None:
    publisher = ConfigPublisher(tmp_path / "tls.yml", certs_dir=store.certs_dir, store_name="local")

    publisher.publish([store.entry("c1")])
    item = yaml.safe_load(publisher.conf_file.read_text())["tls"]["certificates"][0]

    assert item == {
        "certFile": str(store.certs_dir / "c1.pem"),
        "keyFile": str(store.certs_dir / "c1-key.pem"),
        "stores": ["local"]
    }


@pytest.mark.parametrize("certs_dir, external_dir, path, expected", [
    ("files/certs", "/certs", "files/certs/c1.pem", "/certs/c1.pem"),
    ("files/certs", "/certs/", "files/certs/c1.pem", "/certs/c1.pem"),
    ("/data/certs", "/etc/traefik/certs", "/data/certs/c1-key.pem", "/etc/traefik/certs/c1-key.pem"),
    ("/data/certs", "/certs", "/data/certs-other/c1.pem", "/data/certs-other/c1.pem"),
])
def test_translate(certs_dir: str, external_dir: str, path: str, expected: str) -> None:
    publisher = ConfigPublisher(Path("tls.yml"), certs_dir=Path(certs_dir), external_certs_dir=external_dir)

    assert publisher.translate(Path(path)) == expected


def test_read_returns_empty_document_for_missing_file(publisher: ConfigPublisher) -> None:
    assert publisher.read() == {}


def test_read_rejects_invalid_yaml(publisher: ConfigPublisher) -> None:
    publisher.conf_file.parent.mkdir(parents=True, exist_ok=True)
    publisher.conf_file.write_text("tls: [unclosed")

    with pytest.raises(PublishError):
        publisher.read()


def test_missing_lists_entries_not_yet_published(publisher: ConfigPublisher, store: CertStore) -> None:
    publisher.publish([store.entry("c1")])

    missing = publisher.missing([store.entry("c1"), store.entry("c2")])

    assert [e.container_id for e in missing] == ["c2"]


def test_publish_failure_raises_publish_error(tmp_path: Path, store: CertStore) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("")
    publisher = ConfigPublisher(blocker / "tls.yml", certs_dir=store.certs_dir)

    with pytest.raises(PublishError):
        publisher.publish([store.entry("c1")])


@pytest.mark.parametrize("content", [
    "tls: oops\n",
    "tls: [1, 2]\n",
    "tls:\n  certificates: 5\n",
    "tls:\n  certificates:\n    - certFile: [a, b]\n",
])
def test_missing_treats_unexpected_structure_as_empty(
    publisher: ConfigPublisher,
    store: CertStore,
    content: str
) -> None:
    publisher.conf_file.parent.mkdir(parents=True, exist_ok=True)
    publisher.conf_file.write_text(content)

    missing = publisher.missing([store.entry("c1")])

    assert [e.container_id for e in missing] == ["c1"]
