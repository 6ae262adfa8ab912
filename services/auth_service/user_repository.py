"""
User repository - handles profile, credential and session persistence.
"""

import re
import secrets
import sqlite3
import uuid
from contextlib import closing
from datetime import datetime, timedelta
from typing import Callable, List, Optional
import bcrypt

from services.auth_service.models import AuthSession, Identity, Role
from utils.logging_config import get_logger


EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class ProfileNotFoundError(LookupError):
    """Raised when no profile matches the requested id"""


class UserRepository:
    """
    Repository for profile, credential and session persistence.
    Handles database interactions for users, sessions, and password reset tokens.
    """

    def __init__(self, db_path: str, session_timeout_hours: int = 24,
                 reset_token_ttl_minutes: int = 60, password_min_length: int = 8,
                 clock: Callable[[], datetime] = datetime.now):
        """
        Initialize user repository

        Args:
            db_path: Path to the sqlite database file
            session_timeout_hours: Lifetime of an issued session
            reset_token_ttl_minutes: Lifetime of a password reset token
            password_min_length: Minimum accepted password length
            clock: Source of the current time
        """
        self.logger = get_logger(__name__)
        self.db_path = db_path
        self.session_timeout_hours = session_timeout_hours
        self.reset_token_ttl_minutes = reset_token_ttl_minutes
        self.password_min_length = password_min_length
        self.clock = clock

        self._init_database()

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self.db_path)

    def _init_database(self):
        """Initialize database tables"""
        with closing(self._connect()) as conn, conn:
            cursor = conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS profiles (
                    id TEXT PRIMARY KEY,
                    full_name TEXT NOT NULL,
                    role TEXT NOT NULL,
                    avatar_url TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS credentials (
                    user_id TEXT PRIMARY KEY,
                    email TEXT UNIQUE NOT NULL,
                    password_hash TEXT NOT NULL,
                    last_sign_in TEXT,
                    FOREIGN KEY (user_id) REFERENCES profiles (id)
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS auth_sessions (
                    access_token TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    expires_at TEXT NOT NULL,
                    is_active BOOLEAN DEFAULT 1,
                    FOREIGN KEY (user_id) REFERENCES profiles (id)
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS password_reset_tokens (
                    token TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    expires_at TEXT NOT NULL,
                    is_used BOOLEAN DEFAULT 0,
                    FOREIGN KEY (user_id) REFERENCES profiles (id)
                )
            """)

        self.logger.info("User database initialized")

    def _hash_password(self, password: str) -> str:
        """Hash password using bcrypt"""
        salt = bcrypt.gensalt()
        return bcrypt.hashpw(password.encode('utf-8'), salt).decode('utf-8')

    def _verify_password(self, password: str, hashed: str) -> bool:
        """Verify password against hash"""
        return bcrypt.checkpw(password.encode('utf-8'), hashed.encode('utf-8'))

    @staticmethod
    def _row_to_identity(row) -> Identity:
        return Identity(
            id=row[0],
            full_name=row[1],
            role=Role.parse(row[2]),
            avatar_url=row[3],
            created_at=datetime.fromisoformat(row[4]),
            updated_at=datetime.fromisoformat(row[5])
        )

    def validate_password(self, password: str):
        """Raise ValueError if the password is too short"""
        if len(password) < self.password_min_length:
            raise ValueError(f"Password must be at least {self.password_min_length} characters")

    def create_user(self, email: str, password: str, full_name: str,
                    role: str = Role.STAFF.value, avatar_url: Optional[str] = None) -> Identity:
        """
        Create a profile and its credentials

        Args:
            email: Sign-in email, unique
            password: Plain text password (will be hashed)
            full_name: Display name
            role: One of admin, manager, staff, client
            avatar_url: Optional avatar reference

        Returns:
            The created Identity

        Raises:
            ValueError: invalid input or duplicate email, with a user-facing message
        """
        if not all([email, password, full_name, role]):
            raise ValueError("All fields are required")

        email = email.strip().lower()
        if not EMAIL_PATTERN.match(email):
            raise ValueError("Invalid email format")

        self.validate_password(password)
        parsed_role = Role.parse(role)

        user_id = str(uuid.uuid4())
        now = self.clock().isoformat()

        try:
            with closing(self._connect()) as conn, conn:
                cursor = conn.cursor()
                cursor.execute("""
                    INSERT INTO profiles (id, full_name, role, avatar_url, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                """, (user_id, full_name.strip(), parsed_role.value, avatar_url, now, now))
                cursor.execute("""
                    INSERT INTO credentials (user_id, email, password_hash)
                    VALUES (?, ?, ?)
                """, (user_id, email, self._hash_password(password)))
        except sqlite3.IntegrityError:
            self.logger.warning(f"Email already registered: {email}")
            raise ValueError("User already registered")

        self.logger.info(f"User created: {user_id} ({parsed_role.value})")
        return Identity(
            id=user_id,
            full_name=full_name.strip(),
            role=parsed_role,
            avatar_url=avatar_url,
            created_at=datetime.fromisoformat(now),
            updated_at=datetime.fromisoformat(now)
        )

    def authenticate(self, email: str, password: str) -> Optional[Identity]:
        """
        Authenticate with email and password

        Returns:
            Identity if the credentials match, None otherwise
        """
        email = (email or "").strip().lower()
        with closing(self._connect()) as conn, conn:
            cursor = conn.cursor()
            cursor.execute("""
                SELECT p.id, p.full_name, p.role, p.avatar_url, p.created_at, p.updated_at,
                       c.password_hash
                FROM credentials c
                JOIN profiles p ON p.id = c.user_id
                WHERE c.email = ?
            """, (email,))
            row = cursor.fetchone()

            if not row:
                self.logger.warning(f"Sign-in for unknown email: {email}")
                return None

            if not self._verify_password(password, row[6]):
                self.logger.warning(f"Invalid password for: {email}")
                return None

            cursor.execute("""
                UPDATE credentials SET last_sign_in = ? WHERE user_id = ?
            """, (self.clock().isoformat(), row[0]))

        return self._row_to_identity(row)

    def create_session(self, user_id: str) -> AuthSession:
        """Issue a new session for a user"""
        now = self.clock()
        session = AuthSession(
            access_token=secrets.token_urlsafe(32),
            user_id=user_id,
            created_at=now,
            expires_at=now + timedelta(hours=self.session_timeout_hours)
        )

        with closing(self._connect()) as conn, conn:
            conn.execute("""
                INSERT INTO auth_sessions (access_token, user_id, created_at, expires_at, is_active)
                VALUES (?, ?, ?, ?, 1)
            """, (session.access_token, user_id, session.created_at.isoformat(),
                  session.expires_at.isoformat()))

        self.logger.info(f"Session created for user: {user_id}")
        return session

    def validate_session(self, access_token: str) -> Optional[AuthSession]:
        """
        Validate a session token

        Returns:
            AuthSession if active and unexpired, None otherwise
        """
        with closing(self._connect()) as conn, conn:
            cursor = conn.cursor()
            cursor.execute("""
                SELECT access_token, user_id, created_at, expires_at
                FROM auth_sessions
                WHERE access_token = ? AND is_active = 1
            """, (access_token,))
            row = cursor.fetchone()

            if not row:
                return None

            session = AuthSession(
                access_token=row[0],
                user_id=row[1],
                created_at=datetime.fromisoformat(row[2]),
                expires_at=datetime.fromisoformat(row[3])
            )

            if session.is_expired(self.clock()):
                cursor.execute("""
                    UPDATE auth_sessions SET is_active = 0 WHERE access_token = ?
                """, (access_token,))
                self.logger.info(f"Session expired for user: {session.user_id}")
                return None

        return session

    def refresh_session(self, access_token: str) -> Optional[AuthSession]:
        """Extend an active session, returning the refreshed session or None"""
        session = self.validate_session(access_token)
        if not session:
            return None

        session.expires_at = self.clock() + timedelta(hours=self.session_timeout_hours)
        with closing(self._connect()) as conn, conn:
            conn.execute("""
                UPDATE auth_sessions SET expires_at = ? WHERE access_token = ?
            """, (session.expires_at.isoformat(), access_token))

        return session

    def end_session(self, access_token: str) -> bool:
        """Deactivate a session; returns whether an active session was ended"""
        with closing(self._connect()) as conn, conn:
            cursor = conn.execute("""
                UPDATE auth_sessions SET is_active = 0 WHERE access_token = ? AND is_active = 1
            """, (access_token,))
            ended = cursor.rowcount > 0

        if ended:
            self.logger.info("Session ended")
        return ended

    def get_profile_by_id(self, user_id: str) -> Identity:
        """
        Fetch a profile by id

        Raises:
            ProfileNotFoundError: no profile with that id
        """
        with closing(self._connect()) as conn:
            row = conn.execute("""
                SELECT id, full_name, role, avatar_url, created_at, updated_at
                FROM profiles WHERE id = ?
            """, (user_id,)).fetchone()

        if not row:
            raise ProfileNotFoundError(f"No profile found for id {user_id}")
        return self._row_to_identity(row)

    def list_profiles(self) -> List[Identity]:
        """All profiles, ordered by name"""
        with closing(self._connect()) as conn:
            rows = conn.execute("""
                SELECT id, full_name, role, avatar_url, created_at, updated_at
                FROM profiles ORDER BY full_name COLLATE NOCASE
            """).fetchall()
        return [self._row_to_identity(row) for row in rows]

    def update_profile(self, user_id: str, full_name: Optional[str] = None,
                       avatar_url: Optional[str] = None) -> Identity:
        """Update display fields of a profile"""
        profile = self.get_profile_by_id(user_id)
        if full_name is not None:
            if not full_name.strip():
                raise ValueError("Full name is required")
            profile.full_name = full_name.strip()
        if avatar_url is not None:
            profile.avatar_url = avatar_url or None
        profile.updated_at = self.clock()

        with closing(self._connect()) as conn, conn:
            conn.execute("""
                UPDATE profiles SET full_name = ?, avatar_url = ?, updated_at = ? WHERE id = ?
            """, (profile.full_name, profile.avatar_url, profile.updated_at.isoformat(), user_id))

        self.logger.info(f"Profile updated: {user_id}")
        return profile

    def create_password_reset_token(self, email: str) -> Optional[str]:
        """
        Create a password reset token for the account with this email

        Returns:
            The token, or None when no account uses the email
        """
        email = (email or "").strip().lower()
        with closing(self._connect()) as conn, conn:
            row = conn.execute(
                "SELECT user_id FROM credentials WHERE email = ?", (email,)
            ).fetchone()

            if not row:
                self.logger.warning(f"Password reset requested for unknown email: {email}")
                return None

            token = secrets.token_urlsafe(32)
            created_at = self.clock()
            expires_at = created_at + timedelta(minutes=self.reset_token_ttl_minutes)
            conn.execute("""
                INSERT INTO password_reset_tokens (token, user_id, created_at, expires_at, is_used)
                VALUES (?, ?, ?, ?, 0)
            """, (token, row[0], created_at.isoformat(), expires_at.isoformat()))

        self.logger.info(f"Password reset token created for user: {row[0]}")
        return token

    def validate_reset_token(self, token: str) -> Optional[str]:
        """Return the user id for an unused, unexpired token"""
        with closing(self._connect()) as conn:
            row = conn.execute("""
                SELECT user_id, expires_at, is_used FROM password_reset_tokens WHERE token = ?
            """, (token,)).fetchone()

        if not row:
            return None

        user_id, expires_at, is_used = row
        if is_used or self.clock() > datetime.fromisoformat(expires_at):
            return None
        return user_id

    def reset_password_with_token(self, token: str, new_password: str) -> bool:
        """
        Reset a password using a valid token; the token is consumed

        Raises:
            ValueError: the new password is too short
        """
        user_id = self.validate_reset_token(token)
        if not user_id:
            return False

        self.validate_password(new_password)

        with closing(self._connect()) as conn, conn:
            conn.execute("""
                UPDATE credentials SET password_hash = ? WHERE user_id = ?
            """, (self._hash_password(new_password), user_id))
            conn.execute("""
                UPDATE password_reset_tokens SET is_used = 1 WHERE token = ?
            """, (token,))

        self.logger.info(f"Password reset completed for user: {user_id}")
        return True
