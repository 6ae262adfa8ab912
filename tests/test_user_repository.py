"""
Tests for user, session and reset token persistence
"""

import sqlite3
from datetime import timedelta

import pytest

from services.auth_service.models import Role
from services.auth_service.user_repository import ProfileNotFoundError, UserRepository
from conftest import SteppingClock


class TestUserRepository:
    """Test user creation and authentication"""

    def test_create_user(self, repository):
        identity = repository.create_user("Jane@Practice.com", "password123", "Jane Doe", "manager")

        assert identity.full_name == "Jane Doe"
        assert identity.role == Role.MANAGER
        assert repository.get_profile_by_id(identity.id) == identity

    def test_create_user_defaults_to_staff(self, repository):
        assert repository.create_user("jane@practice.com", "password123", "Jane").role == Role.STAFF

    @pytest.mark.parametrize("email,password,full_name,message", [
        ("", "password123", "Jane", "All fields are required"),
        ("jane@practice.com", "password123", "", "All fields are required"),
        ("not-an-email", "password123", "Jane", "Invalid email format"),
        ("jane@practice.com", "short", "Jane", "Password must be at least 8 characters"),
    ])
    def test_create_user_validation(self, repository, email, password, full_name, message):
        with pytest.raises(ValueError, match=message):
            repository.create_user(email, password, full_name)

    def test_create_user_rejects_unknown_role(self, repository):
        with pytest.raises(ValueError, match="Unknown role"):
            repository.create_user("jane@practice.com", "password123", "Jane", "owner")

    def test_duplicate_email(self, repository):
        repository.create_user("jane@practice.com", "password123", "Jane")

        with pytest.raises(ValueError, match="User already registered"):
            repository.create_user("JANE@practice.com", "password456", "Other Jane")

    def test_authenticate(self, repository):
        created = repository.create_user("jane@practice.com", "password123", "Jane")

        assert repository.authenticate(" Jane@Practice.com ", "password123").id == created.id
        assert repository.authenticate("jane@practice.com", "wrong-password") is None
        assert repository.authenticate("nobody@practice.com", "password123") is None

    def test_password_is_hashed(self, repository):
        repository.create_user("jane@practice.com", "password123", "Jane")

        conn = sqlite3.connect(repository.db_path)
        stored = conn.execute("SELECT password_hash FROM credentials").fetchone()[0]
        conn.close()

        assert stored != "password123"
        assert stored.startswith("$2")

    def test_profile_not_found(self, repository):
        with pytest.raises(ProfileNotFoundError):
            repository.get_profile_by_id("missing")

    def test_list_profiles_ordered_by_name(self, repository):
        repository.create_user("z@practice.com", "password123", "zoe")
        repository.create_user("a@practice.com", "password123", "Adam")
        repository.create_user("m@practice.com", "password123", "Mia", "client")

        assert [p.full_name for p in repository.list_profiles()] == ["Adam", "Mia", "zoe"]

    def test_update_profile(self, repository):
        created = repository.create_user("jane@practice.com", "password123", "Jane")

        updated = repository.update_profile(created.id, full_name=" Jane Smith ", avatar_url="https://img/j.png")

        assert updated.full_name == "Jane Smith"
        assert repository.get_profile_by_id(created.id).avatar_url == "https://img/j.png"

    def test_update_profile_rejects_blank_name(self, repository):
        created = repository.create_user("jane@practice.com", "password123", "Jane")

        with pytest.raises(ValueError, match="Full name is required"):
            repository.update_profile(created.id, full_name="  ")


class TestSessions:
    """Test session lifecycle"""

    def setup_method(self):
        self.clock = SteppingClock(step=timedelta(0))

    def make_repository(self, tmp_path, **kwargs):
        return UserRepository(str(tmp_path / "users.db"), clock=self.clock, **kwargs)

    def test_session_round_trip(self, tmp_path):
        repository = self.make_repository(tmp_path)
        user = repository.create_user("jane@practice.com", "password123", "Jane")

        session = repository.create_session(user.id)

        assert repository.validate_session(session.access_token) == session
        assert session.expires_at - session.created_at == timedelta(hours=24)

    def test_expired_session_is_invalid(self, tmp_path):
        repository = self.make_repository(tmp_path, session_timeout_hours=1)
        user = repository.create_user("jane@practice.com", "password123", "Jane")
        session = repository.create_session(user.id)

        self.clock.current += timedelta(hours=2)

        assert repository.validate_session(session.access_token) is None
        # deactivated, so ending it finds nothing
        assert repository.end_session(session.access_token) is False

    def test_refresh_extends_session(self, tmp_path):
        repository = self.make_repository(tmp_path, session_timeout_hours=1)
        user = repository.create_user("jane@practice.com", "password123", "Jane")
        session = repository.create_session(user.id)

        self.clock.current += timedelta(minutes=50)
        refreshed = repository.refresh_session(session.access_token)
        self.clock.current += timedelta(minutes=50)

        assert refreshed.expires_at > session.expires_at
        assert repository.validate_session(session.access_token) is not None

    def test_end_session(self, tmp_path):
        repository = self.make_repository(tmp_path)
        user = repository.create_user("jane@practice.com", "password123", "Jane")
        session = repository.create_session(user.id)

        assert repository.end_session(session.access_token) is True
        assert repository.end_session(session.access_token) is False
        assert repository.validate_session(session.access_token) is None


class TestPasswordReset:
    """Test reset tokens"""

    def setup_method(self):
        self.clock = SteppingClock(step=timedelta(0))

    def test_reset_password(self, tmp_path):
        repository = UserRepository(str(tmp_path / "users.db"), clock=self.clock)
        repository.create_user("jane@practice.com", "password123", "Jane")

        token = repository.create_password_reset_token("jane@practice.com")

        assert repository.reset_password_with_token(token, "new-password") is True
        assert repository.authenticate("jane@practice.com", "new-password") is not None
        assert repository.authenticate("jane@practice.com", "password123") is None

    def test_token_is_single_use(self, tmp_path):
        repository = UserRepository(str(tmp_path / "users.db"), clock=self.clock)
        repository.create_user("jane@practice.com", "password123", "Jane")
        token = repository.create_password_reset_token("jane@practice.com")

        repository.reset_password_with_token(token, "new-password")

        assert repository.reset_password_with_token(token, "another-password") is False

    def test_expired_token(self, tmp_path):
        repository = UserRepository(str(tmp_path / "users.db"), reset_token_ttl_minutes=15, clock=self.clock)
        repository.create_user("jane@practice.com", "password123", "Jane")
        token = repository.create_password_reset_token("jane@practice.com")

        self.clock.current += timedelta(minutes=16)

        assert repository.validate_reset_token(token) is None

    def test_unknown_email_gets_no_token(self, repository):
        assert repository.create_password_reset_token("nobody@practice.com") is None

    def test_short_new_password(self, tmp_path):
        repository = UserRepository(str(tmp_path / "users.db"), clock=self.clock)
        repository.create_user("jane@practice.com", "password123", "Jane")
        token = repository.create_password_reset_token("jane@practice.com")

        with pytest.raises(ValueError):
            repository.reset_password_with_token(token, "short")

        assert repository.validate_reset_token(token) is not None
