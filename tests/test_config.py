import pytest
from pathlib import Path
from cert_sync.conf.config import Config, setup_paths
from cert_sync.exception.validation_exceptions import ValidationError

ENVS = (
    "LOG_LEVEL", "LOG_FILE", "CA_KEY_FILE", "CA_CERT_FILE", "CERTS_DIR", "TLS_CONF_FILE",
    "EXTERNAL_CERTS_DIR", "CERT_DIR", "TLS_STORE", "CHECK_INTERVAL", "DOCKER_URL", "DOCKER_TIMEOUT",
    "ENABLE_LABEL", "DOMAINS_LABEL", "CA_VALIDITY_DAYS", "CERT_VALIDITY_DAYS",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for env in ENVS:
        monkeypatch.delenv(env, raising=False)


def test_load_defaults() -> None:
    config = Config.load()

    assert config == Config()
    assert config.certs_dir == Path("files/certs")
    assert config.check_interval == 10.0
    assert config.external_certs_dir is None


def test_load_from_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.setenv("CERTS_DIR", str(tmp_path / "certs"))
    monkeypatch.setenv("CHECK_INTERVAL", "2.5")
    monkeypatch.setenv("DOCKER_TIMEOUT", "5")
    monkeypatch.setenv("EXTERNAL_CERTS_DIR", "/certs")
    monkeypatch.setenv("DOMAINS_LABEL", "certs.domains")

    config = Config.load()

    assert config.log_level == "DEBUG"
    assert config.certs_dir == tmp_path / "certs"
    assert config.check_interval == 2.5
    assert config.docker_timeout == 5
    assert config.external_certs_dir == "/certs"
    assert config.domains_label == "certs.domains"


def test_cert_dir_alias_sets_external_certs_dir(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CERT_DIR", "/etc/traefik/certs")

    assert Config.load().external_certs_dir == "/etc/traefik/certs"


def test_overrides_take_precedence(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CHECK_INTERVAL", "30")

    config = Config.load({"check_interval": 3, "log_level": None})

    assert config.check_interval == 3.0
    assert config.log_level == "INFO"


@pytest.mark.parametrize("env, value", [
    ("LOG_LEVEL", "VERBOSE"),
    ("CHECK_INTERVAL", "0"),
    ("CHECK_INTERVAL", "soon"),
    ("DOCKER_TIMEOUT", "1.5"),
    ("CERT_VALIDITY_DAYS", "5000"),
])
def test_load_rejects_invalid_values(monkeypatch: pytest.MonkeyPatch, env: str, value: str) -> None:
    monkeypatch.setenv(env, value)

    with pytest.raises(ValidationError):
        Config.load()


def test_load_rejects_directory_as_config_file(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("TLS_CONF_FILE", str(tmp_path))

    with pytest.raises(ValidationError):
        Config.load()


def test_setup_paths_creates_directories(tmp_path: Path) -> None:
    config = Config(
        ca_key_file=tmp_path / "ca" / "rootCA-key.pem",
        ca_cert_file=tmp_path / "ca" / "rootCA.pem",
        certs_dir=tmp_path / "certs",
        tls_conf_file=tmp_path / "traefik" / "tls.yml",
        log_file=tmp_path / "logs" / "certsync.log"
    )

    setup_paths(config)

    for name in ("ca", "certs", "traefik", "logs"):
        assert (tmp_path / name).is_dir()
