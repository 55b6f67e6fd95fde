"""
Configuration Tests
-------------------
Tests cover:
- YAML loading with environment overrides
- Secrets from the environment only
- StaticApiConfig and ManagedApiConfig validation
"""

from pathlib import Path
import sys

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from api.config import AUTH_PATH, ManagedApiConfig, StaticApiConfig
from core.errors import ConfigError
from infra.config import ConfigManager, SecretConfig, SecretManager

CONFIG_YAML = """
api:
  client_id: shop-42
  url_rest: https://api.opentrade.test
"""


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "opentrade.yaml"
    path.write_text(CONFIG_YAML, encoding="utf-8")
    return path


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("OPENTRADE_CLIENT_SECRET", "OPENTRADE_API_URL_REST",
                 "OPENTRADE_API_CLIENT_ID", "OPENTRADE_API_URL_AUTH"):
        monkeypatch.delenv(name, raising=False)


class TestConfigManager:
    """Tests for the YAML configuration layer."""

    def test_dot_notation(self, config_file):
        config = ConfigManager(config_file)

        assert config.get("api.client_id") == "shop-42"
        assert config.get("api.missing", "dflt") == "dflt"
        assert config.get_section("api")["url_rest"] == "https://api.opentrade.test"

    def test_env_overrides_file(self, config_file, monkeypatch):
        monkeypatch.setenv("OPENTRADE_API_URL_REST", "https://staging.opentrade.test")
        config = ConfigManager(config_file)

        assert config.env_key("api.url_rest") == "OPENTRADE_API_URL_REST"
        assert config.get("api.url_rest") == "https://staging.opentrade.test"

    def test_missing_file(self, tmp_path):
        config = ConfigManager(tmp_path / "absent.yaml")

        assert config.get("api.client_id") is None

    def test_non_mapping_rejected(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")

        with pytest.raises(ValueError):
            ConfigManager(path)

    def test_set_and_reload(self, config_file):
        config = ConfigManager(config_file)
        config.set("api.client_id", "other")
        assert config.get("api.client_id") == "other"

        config.reload()
        assert config.get("api.client_id") == "shop-42"

    def test_section_is_a_copy(self, config_file):
        config = ConfigManager(config_file)
        config.get_section("api")["client_id"] = "changed"

        assert config.get("api.client_id") == "shop-42"


class TestSecretManager:
    """Tests for environment secrets."""

    def test_loaded_from_env(self, monkeypatch):
        monkeypatch.setenv("OPENTRADE_CLIENT_SECRET", "s3cret")
        secrets = SecretManager()

        assert secrets.get("client_secret") == "s3cret"
        assert secrets.list_available() == ["client_secret"]
        assert secrets.validate() == {"client_secret": True}

    def test_missing_required(self, caplog):
        secrets = SecretManager()

        assert secrets.has("client_secret") is False
        assert secrets.validate() == {"client_secret": False}
        assert all("s3cret" not in r.getMessage() for r in caplog.records)

    def test_optional_secret(self):
        secrets = SecretManager([SecretConfig("webhook_key", "OPENTRADE_TEST_ABSENT", required=False)])

        assert secrets.validate() == {"webhook_key": True}


class TestStaticApiConfig:
    """Tests for credentials supplied in code."""

    def test_default_auth_url(self):
        config = StaticApiConfig("shop-42", "s3cret", "https://api.opentrade.test/")

        assert config.get_url_auth() == "https://api.opentrade.test" + AUTH_PATH
        assert config.get_client_id() == "shop-42"

    def test_secret_hidden_from_repr(self):
        config = StaticApiConfig("shop-42", "s3cret", "https://api.opentrade.test")

        assert "s3cret" not in repr(config)

    @pytest.mark.parametrize("client_id,secret,url_rest", [
        ("", "s3cret", "https://api.opentrade.test"),
        ("shop-42", "  ", "https://api.opentrade.test"),
        ("shop-42", "s3cret", ""),
    ])
    def test_empty_values_rejected(self, client_id, secret, url_rest):
        with pytest.raises(ConfigError):
            StaticApiConfig(client_id, secret, url_rest)


class TestManagedApiConfig:
    """Tests for credentials read from config and environment."""

    def test_values(self, config_file, monkeypatch):
        monkeypatch.setenv("OPENTRADE_CLIENT_SECRET", "s3cret")
        config = ManagedApiConfig(ConfigManager(config_file), SecretManager())

        assert config.get_client_id() == "shop-42"
        assert config.get_secret() == "s3cret"
        assert config.get_url_auth() == "https://api.opentrade.test" + AUTH_PATH
        assert config.validate() is True

    def test_explicit_auth_url(self, config_file, monkeypatch):
        monkeypatch.setenv("OPENTRADE_API_URL_AUTH", "https://auth.opentrade.test/token")
        config = ManagedApiConfig(ConfigManager(config_file), SecretManager())

        assert config.get_url_auth() == "https://auth.opentrade.test/token"

    def test_missing_secret(self, config_file):
        config = ManagedApiConfig(ConfigManager(config_file), SecretManager())

        with pytest.raises(ConfigError) as exc:
            config.get_secret()
        assert exc.value.field == "client_secret"
        assert config.validate() is False
