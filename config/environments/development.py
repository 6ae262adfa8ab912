"""
Development environment configuration overrides
"""

from dataclasses import dataclass
from config.app_config import AppConfig, SecretsConfig


@dataclass
class DevelopmentConfig(AppConfig):
    """Development environment configuration"""

    def __post_init__(self):
        self.secrets = SecretsConfig.from_secrets()

        # Development-specific overrides
        self.environment = "development"
        self.debug = True

        # More verbose logging in development
        self.logging.level = "DEBUG"
        self.logging.enable_file_logging = True
        self.logging.log_file = "logs/dev-app.log"

        # Development UI changes
        self.ui.app_title = "🧪 LedgerDesk (DEV)"

        # Demo inbox so staff screens have something to claim
        self.messaging.seed_demo_conversations = True
        self.auth.allow_self_registration = True


def get_development_config() -> DevelopmentConfig:
    """Get development-specific configuration"""
    return DevelopmentConfig()
