"""
Production environment configuration overrides
"""

from dataclasses import dataclass
from config.app_config import AppConfig, SecretsConfig


@dataclass
class ProductionConfig(AppConfig):
    """Production environment configuration"""

    def __post_init__(self):
        self.secrets = SecretsConfig.from_secrets()

        # Production-specific overrides
        self.environment = "production"
        self.debug = False

        # Production logging - less verbose, focus on errors
        self.logging.level = "INFO"
        self.logging.enable_file_logging = True
        self.logging.log_file = "logs/prod-app.log"

        self.ui.app_title = "LedgerDesk"

        # Accounts are provisioned by the practice, never self-served
        self.auth.allow_self_registration = False
        self.auth.session_timeout_hours = 8

        self.messaging.seed_demo_conversations = False


def get_production_config() -> ProductionConfig:
    """Get production-specific configuration"""
    return ProductionConfig()
