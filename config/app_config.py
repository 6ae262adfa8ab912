"""
LedgerDesk configuration

Settings are grouped into dataclass sections (secrets, auth, messaging, UI,
logging). APP_ENV selects the environment profile; the auth database path
comes from Streamlit secrets or the AUTH_DB_PATH environment variable.
"""

from dataclasses import dataclass, field
from typing import Dict, Any, Optional, List
import streamlit as st
import os
from pathlib import Path


@dataclass
class SecretsConfig:
    """Secret and deployment-specific settings"""
    auth_db_path: str = "data/auth/users.db"

    @classmethod
    def from_secrets(cls) -> 'SecretsConfig':
        """Load secrets from Streamlit secrets"""
        # In test environment, prefer environment variables
        if os.getenv("PYTEST_CURRENT_TEST") is not None:
            return cls(auth_db_path=os.getenv("AUTH_DB_PATH", cls.auth_db_path))

        try:
            return cls(auth_db_path=st.secrets.get("AUTH_DB_PATH", cls.auth_db_path))
        except Exception:
            # Fallback to environment variables if secrets not available
            return cls(auth_db_path=os.getenv("AUTH_DB_PATH", cls.auth_db_path))


@dataclass
class AuthConfig:
    """Authentication and user management configuration"""
    allow_self_registration: bool = True
    session_timeout_hours: int = 24
    session_refresh_minutes: int = 30
    reset_token_ttl_minutes: int = 60
    password_min_length: int = 8


@dataclass
class MessagingConfig:
    """Secure messaging configuration"""
    system_author: str = "System"
    claim_notice: str = "You have claimed this conversation. It is now private and encrypted."
    timestamp_format: str = "%H:%M"
    seed_demo_conversations: bool = False


@dataclass
class UIConfig:
    """User interface configuration"""
    app_title: str = "LedgerDesk"
    tagline: str = "Practice management for accounting and compliance teams"
    inbox_preview_length: int = 80


@dataclass
class LoggingConfig:
    """Logging and monitoring configuration"""
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    enable_file_logging: bool = True
    log_file: str = "logs/app.log"


@dataclass
class AppConfig:
    """Main application configuration"""
    secrets: SecretsConfig = field(default_factory=SecretsConfig)
    auth: AuthConfig = field(default_factory=AuthConfig)
    messaging: MessagingConfig = field(default_factory=MessagingConfig)
    ui: UIConfig = field(default_factory=UIConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # Environment settings
    environment: str = field(default_factory=lambda: os.getenv("APP_ENV", "development"))
    debug: bool = field(default_factory=lambda: os.getenv("DEBUG", "false").lower() == "true")

    @classmethod
    def load(cls) -> 'AppConfig':
        """Load configuration with environment overrides"""
        config = cls()

        config.secrets = SecretsConfig.from_secrets()

        # Apply environment-specific overrides
        if config.environment == "production":
            config.debug = False
            config.logging.level = "WARNING"
            config.messaging.seed_demo_conversations = False
        elif config.environment == "development":
            config.debug = True
            config.logging.level = "DEBUG"
            config.messaging.seed_demo_conversations = True

        return config

    def validate(self) -> List[str]:
        """Validate configuration and return list of errors"""
        errors = []

        if not self.secrets.auth_db_path:
            errors.append("Auth database path is required")
        elif self.secrets.auth_db_path != ":memory:":
            db_dir = Path(self.secrets.auth_db_path).parent
            if not db_dir.exists():
                db_dir.mkdir(parents=True, exist_ok=True)

        if self.logging.enable_file_logging:
            log_dir = Path(self.logging.log_file).parent
            if not log_dir.exists():
                log_dir.mkdir(parents=True, exist_ok=True)

        if self.auth.password_min_length < 1:
            errors.append("Password minimum length must be positive")

        if self.auth.session_timeout_hours <= 0:
            errors.append("Session timeout must be positive")

        if self.auth.session_refresh_minutes < 0:
            errors.append("Session refresh window cannot be negative")

        if not self.messaging.system_author:
            errors.append("Messaging system author is required")

        return errors

    def to_dict(self) -> Dict[str, Any]:
        """Non-secret settings, for diagnostics"""
        return {
            "environment": self.environment,
            "debug": self.debug,
            "logging_level": self.logging.level,
            "allow_self_registration": self.auth.allow_self_registration,
            "seed_demo_conversations": self.messaging.seed_demo_conversations,
        }


# Global configuration instance
_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Get the global configuration instance"""
    global _config
    if _config is None:
        from config.environments import get_environment_config
        _config = get_environment_config()

        # Validate configuration
        errors = _config.validate()
        if errors:
            import warnings
            for error in errors:
                warnings.warn(f"Configuration error: {error}")

    return _config


def reload_config() -> AppConfig:
    """Drop the cached configuration and build it again from the environment"""
    global _config
    _config = None
    return get_config()
