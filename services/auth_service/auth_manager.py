"""
Authentication service - the console's auth and profile providers.

LocalAuthProvider issues and tracks the session for one browser session and
notifies subscribers about every auth state change. LocalProfileProvider
serves profile records. Both sit on top of UserRepository.
"""

from typing import Callable, Dict, List, Optional

from services.auth_service.models import AuthEvent, AuthSession, Identity, Role
from services.auth_service.user_repository import UserRepository
from utils.logging_config import get_logger, log_user_interaction


AuthListener = Callable[[AuthEvent, Optional[AuthSession]], None]


class LocalAuthProvider:
    """
    Auth provider backed by the local user repository.

    Sign-in and sign-up return an error message (shown to the user verbatim)
    or None on success. Listeners are invoked synchronously, one at a time,
    after the provider's own state has changed.
    """

    def __init__(self, user_repository: UserRepository, allow_self_registration: bool = True):
        self.user_repository = user_repository
        self.allow_self_registration = allow_self_registration
        self.logger = get_logger(__name__)
        self._session: Optional[AuthSession] = None
        self._listeners: List[AuthListener] = []

    def get_current_session(self) -> Optional[AuthSession]:
        """
        Get the current session, dropping it if it is no longer valid

        Returns:
            AuthSession if signed in, None otherwise
        """
        if self._session is None:
            return None

        session = self.user_repository.validate_session(self._session.access_token)
        if session is None:
            self.logger.info("Stored session is no longer valid, signing out locally")
            self._session = None
            self._emit(AuthEvent.SIGNED_OUT, None)
            return None

        self._session = session
        return session

    def sign_in_with_password(self, email: str, password: str) -> Optional[str]:
        """
        Sign in with email and password

        Returns:
            Error message if sign-in failed, None on success
        """
        if not email or not password:
            return "Email and password are required"

        identity = self.user_repository.authenticate(email, password)
        if identity is None:
            return "Invalid login credentials"

        if self._session is not None:
            self.user_repository.end_session(self._session.access_token)

        self._session = self.user_repository.create_session(identity.id)
        log_user_interaction(self.logger, "sign_in", user_id=identity.id)
        self._emit(AuthEvent.SIGNED_IN, self._session)
        return None

    def sign_up(self, email: str, password: str, metadata: Dict[str, str]) -> Optional[str]:
        """
        Register a new account

        Args:
            email: Sign-in email
            password: Plain text password
            metadata: {"full_name": ..., "role": ...}

        Returns:
            Error message if registration failed, None on success
        """
        if not self.allow_self_registration:
            return "Signups not allowed for this instance"

        full_name = (metadata or {}).get("full_name", "")
        role = (metadata or {}).get("role", "")

        try:
            identity = self.user_repository.create_user(
                email=email,
                password=password,
                full_name=full_name,
                role=role
            )
        except ValueError as e:
            return str(e)

        log_user_interaction(self.logger, "sign_up", user_id=identity.id, role=identity.role.value)
        return None

    def sign_out(self):
        """End the current session; listeners always see SIGNED_OUT"""
        session, self._session = self._session, None
        if session is not None:
            self.user_repository.end_session(session.access_token)
            log_user_interaction(self.logger, "sign_out", user_id=session.user_id)
        self._emit(AuthEvent.SIGNED_OUT, None)

    def refresh_session(self) -> Optional[AuthSession]:
        """Extend the current session's lifetime"""
        if self._session is None:
            return None

        session = self.user_repository.refresh_session(self._session.access_token)
        if session is None:
            self._session = None
            self._emit(AuthEvent.SIGNED_OUT, None)
            return None

        self._session = session
        self._emit(AuthEvent.TOKEN_REFRESHED, session)
        return session

    def request_password_reset(self, email: str) -> Optional[str]:
        """
        Start a password reset

        Returns:
            Reset token when the email is known, None otherwise. The caller
            shows the same confirmation either way.
        """
        return self.user_repository.create_password_reset_token(email)

    def reset_password(self, token: str, new_password: str) -> Optional[str]:
        """
        Complete a password reset

        Returns:
            Error message on failure, None on success
        """
        try:
            if not self.user_repository.reset_password_with_token(token, new_password):
                return "Invalid or expired reset link"
        except ValueError as e:
            return str(e)
        return None

    def notify_user_updated(self):
        """Tell listeners the signed-in user's profile changed"""
        if self._session is not None:
            self._emit(AuthEvent.USER_UPDATED, self._session)

    def subscribe(self, listener: AuthListener) -> Callable[[], None]:
        """
        Register an auth state listener

        Returns:
            Unsubscribe handle; calling it more than once is harmless
        """
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, event: AuthEvent, session: Optional[AuthSession]):
        self.logger.debug(f"Auth event: {event.value}")
        for listener in list(self._listeners):
            try:
                listener(event, session)
            except Exception as e:
                self.logger.error(f"Auth listener failed on {event.value}: {e}", exc_info=True)


class LocalProfileProvider:
    """Profile provider backed by the local user repository"""

    def __init__(self, user_repository: UserRepository):
        self.user_repository = user_repository

    def get_profile_by_id(self, user_id: str) -> Identity:
        """Raises ProfileNotFoundError when no profile matches"""
        return self.user_repository.get_profile_by_id(user_id)

    def list_profiles(self, role: Optional[Role] = None) -> List[Identity]:
        profiles = self.user_repository.list_profiles()
        if role is None:
            return profiles
        return [profile for profile in profiles if profile.role == role]
