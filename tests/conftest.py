"""
Shared fixtures and fakes for the test suite
"""

from datetime import datetime, timedelta

import pytest

from services.auth_service.models import AuthEvent, AuthSession, Identity, Role
from services.auth_service.user_repository import ProfileNotFoundError, UserRepository


class SteppingClock:
    """Clock that advances a fixed step on every call"""

    def __init__(self, start: datetime = datetime(2025, 1, 6, 9, 0), step: timedelta = timedelta(seconds=1)):
        self.current = start
        self.step = step

    def __call__(self) -> datetime:
        value = self.current
        self.current = self.current + self.step
        return value


class FakeAuthProvider:
    """In-memory auth provider with the same shape as LocalAuthProvider"""

    def __init__(self, session=None):
        self.session = session
        self.listeners = []
        self.sign_out_error = None
        self.sign_out_calls = 0

    def get_current_session(self):
        return self.session

    def sign_out(self):
        self.sign_out_calls += 1
        if self.sign_out_error is not None:
            raise self.sign_out_error
        self.session = None
        self.emit(AuthEvent.SIGNED_OUT, None)

    def subscribe(self, listener):
        self.listeners.append(listener)

        def unsubscribe():
            if listener in self.listeners:
                self.listeners.remove(listener)

        return unsubscribe

    def emit(self, event, session):
        self.session = session
        for listener in list(self.listeners):
            listener(event, session)


class FakeProfileProvider:
    """Profile lookups from a dict; missing ids raise like the real repository"""

    def __init__(self, *profiles):
        self.profiles = {profile.id: profile for profile in profiles}
        self.calls = []

    def get_profile_by_id(self, user_id):
        self.calls.append(user_id)
        if user_id not in self.profiles:
            raise ProfileNotFoundError(f"No profile found for id {user_id}")
        return self.profiles[user_id]


def make_session(user_id: str) -> AuthSession:
    now = datetime.now()
    return AuthSession(
        access_token=f"token-{user_id}",
        user_id=user_id,
        created_at=now,
        expires_at=now + timedelta(hours=1)
    )


def make_identity(user_id: str, role: Role, full_name: str = "Test User") -> Identity:
    return Identity(id=user_id, full_name=full_name, role=role)


@pytest.fixture
def clock():
    return SteppingClock()


@pytest.fixture
def repository(tmp_path):
    return UserRepository(db_path=str(tmp_path / "users.db"))
