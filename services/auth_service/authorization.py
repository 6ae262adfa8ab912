"""
Authorization gate - decides whether a destination may be shown.

authorize() is a pure function of the session, the identity and the
destination's role policy. Denials are not errors; they are redirects.
"""

from dataclasses import dataclass
from typing import Iterable, Optional

from services.auth_service.models import AuthSession, Identity, Role


class Destination:
    """Console destinations"""
    LOGIN = "/login"
    SIGNUP = "/signup"
    FORGOT_PASSWORD = "/forgot-password"
    CLIENT_PORTAL = "/client-portal"
    DASHBOARD = "/dashboard"
    CLIENTS = "/clients"
    CLIENT_DETAIL = "/clients/<id>"
    DOCUMENTS = "/documents"
    TASKS = "/tasks"
    COMPLIANCE = "/compliance"
    WORKPAPERS = "/workpapers"
    SETTINGS = "/settings"
    USERS = "/users"


PUBLIC_ENTRY = Destination.LOGIN


@dataclass(frozen=True)
class AccessDecision:
    """Outcome of an authorization check"""
    allowed: bool
    redirect_to: Optional[str] = None

    @classmethod
    def allow(cls) -> "AccessDecision":
        return cls(allowed=True)

    @classmethod
    def redirect(cls, destination: str) -> "AccessDecision":
        return cls(allowed=False, redirect_to=destination)


def default_destination_for(identity: Optional[Identity]) -> str:
    """Landing destination for a role: clients get the portal, everyone else the dashboard"""
    if identity is not None and identity.role == Role.CLIENT:
        return Destination.CLIENT_PORTAL
    return Destination.DASHBOARD


def authorize(session: Optional[AuthSession], identity: Optional[Identity],
              destination: str, allowed_roles: Iterable[Role] = ()) -> AccessDecision:
    """
    Decide access to a destination

    Args:
        session: Current session, None when signed out
        identity: Profile of the signed-in user, None if it could not be loaded
        destination: Requested destination
        allowed_roles: Roles the destination is restricted to; empty means any role

    Returns:
        AccessDecision.allow() or a redirect to the public entry or the
        role's default destination
    """
    if session is None:
        return AccessDecision.redirect(PUBLIC_ENTRY)

    # Clients only ever see their portal
    if identity is not None and identity.role == Role.CLIENT and destination != Destination.CLIENT_PORTAL:
        return AccessDecision.redirect(Destination.CLIENT_PORTAL)

    allowed_roles = tuple(allowed_roles)
    if allowed_roles and (identity is None or identity.role not in allowed_roles):
        return AccessDecision.redirect(default_destination_for(identity))

    return AccessDecision.allow()
