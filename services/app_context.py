"""
Composition root - builds and wires the console's services.

Every collaborator is constructed here and handed to its dependents; there
are no hidden module-level instances of the session store, router or
conversation registry.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from config.app_config import AppConfig
from services.auth_service.auth_manager import LocalAuthProvider, LocalProfileProvider
from services.auth_service.models import AuthSession
from services.auth_service.session_store import SessionStore
from services.auth_service.user_repository import UserRepository
from services.chat_service.conversation_registry import ConversationRegistry
from services.chat_service.demo_data import build_demo_conversations
from services.chat_service.messaging import MessagingService
from services.routing_service.router import RoutingController
from utils.logging_config import ErrorTracker, get_logger


logger = get_logger(__name__)


@dataclass
class AppContext:
    """Everything one console session needs"""
    config: AppConfig
    user_repository: UserRepository
    auth_provider: LocalAuthProvider
    profile_provider: LocalProfileProvider
    session_store: SessionStore
    router: RoutingController
    registry: ConversationRegistry
    messaging: MessagingService
    clock: Callable[[], datetime] = datetime.now

    def check_session(self) -> Optional[AuthSession]:
        """
        Re-validate the signed-in session; run before routing on every rerun

        An expired or revoked session signs the user out. A session within
        the configured refresh window of its expiry is extended.
        """
        session = self.auth_provider.get_current_session()
        if session is None:
            return None

        window = timedelta(minutes=self.config.auth.session_refresh_minutes)
        if session.expires_at - self.clock() <= window:
            logger.debug("Session close to expiry, refreshing", extra={"user_id": session.user_id})
            session = self.auth_provider.refresh_session()
        return session

    def close(self):
        """Release subscriptions; call once when the owning session ends"""
        self.router.teardown()
        self.session_store.teardown()


def build_app_context(config: AppConfig, error_tracker: Optional[ErrorTracker] = None,
                      clock: Callable[[], datetime] = datetime.now) -> AppContext:
    """
    Build the console's services from configuration

    The session store is returned uninitialized; call
    context.session_store.initialize() to resolve the current session.
    """
    user_repository = UserRepository(
        db_path=config.secrets.auth_db_path,
        session_timeout_hours=config.auth.session_timeout_hours,
        reset_token_ttl_minutes=config.auth.reset_token_ttl_minutes,
        password_min_length=config.auth.password_min_length,
        clock=clock
    )
    auth_provider = LocalAuthProvider(
        user_repository,
        allow_self_registration=config.auth.allow_self_registration
    )
    profile_provider = LocalProfileProvider(user_repository)

    session_store = SessionStore(auth_provider, profile_provider, error_tracker=error_tracker)
    router = RoutingController(session_store)

    initial = build_demo_conversations(clock) if config.messaging.seed_demo_conversations else []
    registry = ConversationRegistry(initial, clock=clock)
    messaging = MessagingService(registry, config.messaging, clock=clock)

    logger.info("App context built", extra={
        "environment": config.environment,
        "seeded_conversations": len(initial)
    })

    return AppContext(
        config=config,
        user_repository=user_repository,
        auth_provider=auth_provider,
        profile_provider=profile_provider,
        session_store=session_store,
        router=router,
        registry=registry,
        messaging=messaging,
        clock=clock
    )
