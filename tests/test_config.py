"""
Tests for configuration system
"""

import pytest
from config.app_config import (
    AppConfig, AuthConfig, MessagingConfig, SecretsConfig, UIConfig,
    get_config, reload_config
)


class TestSecretsConfig:
    """Test secrets configuration"""

    def test_from_secrets_uses_env_under_pytest(self, monkeypatch):
        """Test environment variables take precedence in the test environment"""
        monkeypatch.setenv("AUTH_DB_PATH", "/tmp/ledgerdesk-test.db")

        config = SecretsConfig.from_secrets()

        assert config.auth_db_path == "/tmp/ledgerdesk-test.db"

    def test_from_secrets_default(self, monkeypatch):
        monkeypatch.delenv("AUTH_DB_PATH", raising=False)

        assert SecretsConfig.from_secrets().auth_db_path == "data/auth/users.db"


class TestSectionDefaults:
    """Test default configuration values"""

    def test_auth_defaults(self):
        config = AuthConfig()

        assert config.allow_self_registration is True
        assert config.password_min_length == 8
        assert config.session_timeout_hours == 24
        assert config.session_refresh_minutes == 30

    def test_messaging_defaults(self):
        config = MessagingConfig()

        assert config.system_author == "System"
        assert config.claim_notice == "You have claimed this conversation. It is now private and encrypted."
        assert config.seed_demo_conversations is False

    def test_ui_defaults(self):
        assert UIConfig().inbox_preview_length == 80


class TestAppConfig:
    """Test main application configuration"""

    def test_load_production(self, monkeypatch):
        monkeypatch.setenv("APP_ENV", "production")

        config = AppConfig.load()

        assert config.environment == "production"
        assert config.debug is False
        assert config.logging.level == "WARNING"
        assert config.messaging.seed_demo_conversations is False

    def test_load_development(self, monkeypatch):
        monkeypatch.setenv("APP_ENV", "development")

        config = AppConfig.load()

        assert config.debug is True
        assert config.logging.level == "DEBUG"
        assert config.messaging.seed_demo_conversations is True

    def test_validate_creates_directories(self, tmp_path):
        config = AppConfig()
        config.secrets.auth_db_path = str(tmp_path / "auth" / "users.db")
        config.logging.log_file = str(tmp_path / "logs" / "app.log")

        assert config.validate() == []
        assert (tmp_path / "auth").is_dir()
        assert (tmp_path / "logs").is_dir()

    def test_validate_in_memory_database(self, tmp_path):
        config = AppConfig()
        config.secrets.auth_db_path = ":memory:"
        config.logging.enable_file_logging = False

        assert config.validate() == []

    def test_validate_reports_errors(self, tmp_path):
        config = AppConfig()
        config.secrets.auth_db_path = ""
        config.logging.enable_file_logging = False
        config.auth.password_min_length = 0
        config.auth.session_timeout_hours = 0
        config.auth.session_refresh_minutes = -1
        config.messaging.system_author = ""

        errors = config.validate()

        assert "Auth database path is required" in errors
        assert "Password minimum length must be positive" in errors
        assert "Session timeout must be positive" in errors
        assert "Session refresh window cannot be negative" in errors
        assert "Messaging system author is required" in errors

    def test_to_dict_has_no_secrets(self):
        config = AppConfig()
        config.secrets.auth_db_path = "/secret/location.db"

        config_dict = config.to_dict()

        assert "/secret/location.db" not in config_dict.values()
        assert config_dict["seed_demo_conversations"] is False


class TestGlobalConfig:
    """Test global configuration access"""

    @pytest.fixture(autouse=True)
    def isolated_config(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("AUTH_DB_PATH", str(tmp_path / "users.db"))
        yield
        reload_config()

    def test_get_config_is_cached(self, monkeypatch):
        monkeypatch.setenv("APP_ENV", "development")
        reload_config()

        assert get_config() is get_config()

    def test_reload_config_picks_up_environment(self, monkeypatch):
        monkeypatch.setenv("APP_ENV", "development")
        assert reload_config().environment == "development"

        monkeypatch.setenv("APP_ENV", "production")
        assert reload_config().environment == "production"
