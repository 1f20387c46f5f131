"""PortsConfig 加载与端口构造测试"""

import pytest
from opsdesk.ports import (
    EchoNotifier,
    HttpPhotoStorage,
    LocalPhotoStorage,
    PortsConfig,
    SendGridNotifier,
    build_notifier,
    build_object_storage,
    load_ports_config,
)
from pydantic import SecretStr

_ENV_VARS = (
    "OPSDESK_STORAGE_MODE",
    "OPSDESK_PHOTO_BASE_URL",
    "OPSDESK_UPLOAD_URL",
    "OPSDESK_UPLOAD_PRESET",
    "OPSDESK_NOTIFY_MODE",
    "SENDGRID_API_KEY",
    "OPSDESK_NOTIFY_FROM",
    "OPSDESK_PORT_TIMEOUT_S",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestLoadPortsConfig:
    def test_defaults(self):
        config = load_ports_config()
        assert config.storage_mode == "local"
        assert config.notify_mode == "echo"
        assert config.photo_base_url == "/photos"
        assert config.timeout_s == 15

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("OPSDESK_STORAGE_MODE", "http")
        monkeypatch.setenv("OPSDESK_UPLOAD_URL", "https://upload.example/image")
        monkeypatch.setenv("OPSDESK_NOTIFY_MODE", "sendgrid")
        monkeypatch.setenv("SENDGRID_API_KEY", "SG.secret")
        monkeypatch.setenv("OPSDESK_NOTIFY_FROM", "ops@opsdesk.test")
        monkeypatch.setenv("OPSDESK_PORT_TIMEOUT_S", "30")

        config = load_ports_config()
        assert config.storage_mode == "http"
        assert config.upload_url == "https://upload.example/image"
        assert config.sendgrid_api_key.get_secret_value() == "SG.secret"
        assert config.notify_from == "ops@opsdesk.test"
        assert config.timeout_s == 30

    def test_secret_not_in_repr(self, monkeypatch):
        monkeypatch.setenv("SENDGRID_API_KEY", "SG.secret")
        assert "SG.secret" not in repr(load_ports_config())

    def test_invalid_timeout_falls_back(self, monkeypatch):
        monkeypatch.setenv("OPSDESK_PORT_TIMEOUT_S", "soon")
        assert load_ports_config().timeout_s == 15


class TestFactory:
    """端口构造与降级"""

    def test_local_storage_creates_dir(self, tmp_path):
        photos_dir = tmp_path / "photos"
        storage = build_object_storage(PortsConfig(), photos_dir)
        assert isinstance(storage, LocalPhotoStorage)
        assert photos_dir.is_dir()

    def test_http_storage(self, tmp_path):
        config = PortsConfig(storage_mode="http", upload_url="https://upload.example/image")
        assert isinstance(build_object_storage(config, tmp_path), HttpPhotoStorage)

    def test_http_without_url_degrades_to_local(self, tmp_path):
        config = PortsConfig(storage_mode="http")
        assert isinstance(build_object_storage(config, tmp_path / "p"), LocalPhotoStorage)

    def test_sendgrid_notifier(self):
        config = PortsConfig(notify_mode="sendgrid", sendgrid_api_key=SecretStr("SG.key"))
        assert isinstance(build_notifier(config), SendGridNotifier)

    def test_sendgrid_without_key_degrades_to_echo(self):
        assert isinstance(build_notifier(PortsConfig(notify_mode="sendgrid")), EchoNotifier)
