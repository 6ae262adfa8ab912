"""
Auth service - identities, sessions, the session store and the authorization gate.
"""

from .models import AuthEvent, AuthSession, Identity, Role, SessionState, STAFF_ROLES
from .authorization import AccessDecision, Destination, authorize, default_destination_for
from .session_store import SessionStore

__all__ = [
    'AuthEvent',
    'AuthSession',
    'Identity',
    'Role',
    'SessionState',
    'STAFF_ROLES',
    'AccessDecision',
    'Destination',
    'authorize',
    'default_destination_for',
    'SessionStore'
]
