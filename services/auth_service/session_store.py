"""
Session store - tracks who is signed in for the rest of the console.

The store owns three fields: the signed-in identity (profile), the raw
session, and a loading flag that is True until the first session check has
finished. It resolves them once in initialize() and again on every auth
state change the auth provider reports.

Auth provider shape:
    get_current_session() -> AuthSession | None
    sign_out() -> None
    subscribe(listener(event, session)) -> unsubscribe()

Profile provider shape:
    get_profile_by_id(user_id) -> Identity, raising on failure

Re-entrancy: an auth event may arrive while a previous event's profile fetch
is still running (for example a token refresh triggered from inside the
fetch). Events are not queued; each handler fetches first and then assigns
session and identity as one pair, so the last write wins and the pair
always belongs to one user. A profile fetch that never
returns leaves loading stuck at True during initialize(); there is no
timeout.
"""

from typing import Callable, List, Optional

from services.auth_service.models import AuthEvent, AuthSession, Identity, SessionState
from utils.logging_config import ErrorTracker, get_logger


SessionListener = Callable[[SessionState], None]


class SessionStore:
    """Current identity, session and loading state, with change notification"""

    def __init__(self, auth_provider, profile_provider, error_tracker: Optional[ErrorTracker] = None):
        if auth_provider is None:
            raise ValueError("SessionStore requires an auth provider")
        if profile_provider is None:
            raise ValueError("SessionStore requires a profile provider")

        self.auth_provider = auth_provider
        self.profile_provider = profile_provider
        self.error_tracker = error_tracker
        self.logger = get_logger(__name__)

        self._identity: Optional[Identity] = None
        self._session: Optional[AuthSession] = None
        self._loading = True
        self._initialized = False
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._listeners: List[SessionListener] = []

    @property
    def identity(self) -> Optional[Identity]:
        return self._identity

    @property
    def session(self) -> Optional[AuthSession]:
        return self._session

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def state(self) -> SessionState:
        return SessionState(self._identity, self._session, self._loading)

    def initialize(self):
        """
        Resolve the existing session and profile once, then start listening
        for auth state changes. Loading is cleared however the check ends.
        """
        if self._initialized:
            return
        self._initialized = True

        try:
            session = self.auth_provider.get_current_session()
            identity = self._fetch_identity(session, "initial load")
            self._session, self._identity = session, identity
        except Exception as e:
            self._report(e, "initial session fetch")
        finally:
            self._loading = False
            self._notify()

        self._unsubscribe = self.auth_provider.subscribe(self.on_auth_state_change)
        self.logger.info("Session store initialized", extra={
            "signed_in": self._session is not None,
            "role": self._identity.role.value if self._identity else None
        })

    def on_auth_state_change(self, event: AuthEvent, session: Optional[AuthSession]):
        """Handle an auth state change; never touches the loading flag"""
        self.logger.debug(f"Auth state change: {getattr(event, 'value', event)}")
        identity = self._fetch_identity(session, "auth change")
        # session and identity always describe the same user
        self._session, self._identity = session, identity
        self._notify()

    def logout(self) -> bool:
        """
        Sign out through the auth provider, then clear local state whatever
        the provider did

        Returns:
            True if the provider signed out cleanly, False otherwise
        """
        try:
            self.auth_provider.sign_out()
            return True
        except Exception as e:
            self._report(e, "logout")
            return False
        finally:
            self._identity = None
            self._session = None
            self._notify()

    def teardown(self):
        """Stop listening to the auth provider; safe to call more than once"""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
            self.logger.debug("Session store unsubscribed from auth provider")

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """
        Register a listener called with the new SessionState after each change

        Returns:
            Unsubscribe handle
        """
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _fetch_identity(self, session: Optional[AuthSession], context: str) -> Optional[Identity]:
        if session is None:
            return None
        try:
            return self.profile_provider.get_profile_by_id(session.user_id)
        except Exception as e:
            self._report(e, f"profile fetch on {context}", user_id=session.user_id)
            return None

    def _report(self, error: Exception, context: str, **extra):
        if self.error_tracker is not None:
            self.error_tracker.track_error(error, context, **extra)
        else:
            self.logger.error(f"Error in {context}: {error}", extra=extra)

    def _notify(self):
        state = self.state
        for listener in list(self._listeners):
            listener(state)
