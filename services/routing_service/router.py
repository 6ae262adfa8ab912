"""
Routing controller - picks the reachable destination set from the session
state, then gates each destination through the authorization gate.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

from services.auth_service.authorization import Destination, authorize
from services.auth_service.models import Identity, Role, STAFF_ROLES, SessionState
from utils.logging_config import get_logger


class RouteArea(str, Enum):
    """Which destination set is reachable"""
    LOADING = "loading"
    PUBLIC = "public"
    CLIENT_AREA = "client_area"
    STAFF_AREA = "staff_area"


@dataclass(frozen=True)
class Route:
    """A destination and the roles allowed to open it (empty: any signed-in role)"""
    path: str
    title: str
    allowed_roles: Tuple[Role, ...] = ()
    in_navigation: bool = True

    def match(self, path: str) -> Optional[Dict[str, str]]:
        """Match a concrete path, returning captured params or None"""
        pattern = self.path.strip("/").split("/")
        parts = path.strip("/").split("/")
        if len(pattern) != len(parts):
            return None

        params = {}
        for expected, actual in zip(pattern, parts):
            if expected.startswith("<") and expected.endswith(">"):
                if not actual:
                    return None
                params[expected[1:-1]] = actual
            elif expected != actual:
                return None
        return params


PUBLIC_ROUTES = (
    Route(Destination.LOGIN, "Sign in"),
    Route(Destination.SIGNUP, "Sign up"),
    Route(Destination.FORGOT_PASSWORD, "Forgot password"),
)

CLIENT_ROUTES = (
    Route(Destination.CLIENT_PORTAL, "Client portal"),
)

STAFF_ROUTES = (
    Route(Destination.DASHBOARD, "Dashboard"),
    Route(Destination.CLIENTS, "Clients", STAFF_ROLES),
    Route(Destination.CLIENT_DETAIL, "Client", STAFF_ROLES, in_navigation=False),
    Route(Destination.DOCUMENTS, "Documents"),
    Route(Destination.TASKS, "Tasks"),
    Route(Destination.COMPLIANCE, "Compliance"),
    Route(Destination.WORKPAPERS, "Workpapers", STAFF_ROLES),
    Route(Destination.SETTINGS, "Settings"),
    Route(Destination.USERS, "User management", (Role.ADMIN,)),
)

# Paths the staff area sends straight to the dashboard
STAFF_BOUNCED_PATHS = (Destination.LOGIN, Destination.SIGNUP)

MAX_REDIRECTS = 5


@dataclass(frozen=True)
class RouteResolution:
    """Where a requested path ends up"""
    area: RouteArea
    destination: Optional[str]
    path: Optional[str] = None
    params: Dict[str, str] = field(default_factory=dict)
    redirected_from: Optional[str] = None

    @property
    def redirected(self) -> bool:
        return self.redirected_from is not None


def area_for(state: SessionState) -> RouteArea:
    """Route area for a session store snapshot"""
    if state.loading:
        return RouteArea.LOADING
    if state.session is None:
        return RouteArea.PUBLIC
    if state.identity is not None and state.identity.role == Role.CLIENT:
        return RouteArea.CLIENT_AREA
    return RouteArea.STAFF_AREA


class RoutingController:
    """
    Maps session state to reachable routes.

    The area is recomputed on every session store change for as long as the
    controller lives; there is no terminal state.
    """

    def __init__(self, session_store):
        if session_store is None:
            raise ValueError("RoutingController requires a session store")

        self.session_store = session_store
        self.logger = get_logger(__name__)
        self._area = area_for(session_store.state)
        self._listeners: List[Callable[[RouteArea], None]] = []
        self._unsubscribe = session_store.subscribe(self._on_session_change)

    @property
    def area(self) -> RouteArea:
        return self._area

    def routes_for(self, area: RouteArea) -> Tuple[Route, ...]:
        if area == RouteArea.PUBLIC:
            return PUBLIC_ROUTES
        if area == RouteArea.CLIENT_AREA:
            return CLIENT_ROUTES
        if area == RouteArea.STAFF_AREA:
            return STAFF_ROUTES
        return ()

    def resolve(self, path: str) -> RouteResolution:
        """
        Resolve a requested path to the destination that should render

        Args:
            path: Requested path, e.g. "/clients/7"

        Returns:
            RouteResolution; destination is None while loading
        """
        state = self.session_store.state
        area = area_for(state)
        if area == RouteArea.LOADING:
            return RouteResolution(area=area, destination=None, path=path)

        requested = path or ""
        current = requested
        for _ in range(MAX_REDIRECTS):
            route, params, fallback = self._match_in_area(area, current)
            if route is None:
                current = fallback
                continue

            if area != RouteArea.PUBLIC:
                decision = authorize(state.session, state.identity, route.path, route.allowed_roles)
                if not decision.allowed:
                    current = decision.redirect_to
                    continue

            return RouteResolution(
                area=area,
                destination=route.path,
                path=current,
                params=params,
                redirected_from=requested if current != requested else None
            )

        raise RuntimeError(f"Redirect loop resolving {requested!r} in {area.value}")

    def navigation_for(self, identity: Optional[Identity]) -> List[Route]:
        """Routes to list in the sidebar for this identity"""
        state = self.session_store.state
        area = area_for(state)
        if area not in (RouteArea.CLIENT_AREA, RouteArea.STAFF_AREA):
            return []

        session = state.session
        return [
            route for route in self.routes_for(area)
            if route.in_navigation and authorize(session, identity, route.path, route.allowed_roles).allowed
        ]

    def subscribe(self, listener: Callable[[RouteArea], None]) -> Callable[[], None]:
        """Register a listener for area transitions"""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def teardown(self):
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _match_in_area(self, area: RouteArea, path: str):
        """Returns (route, params, fallback path)"""
        if area == RouteArea.PUBLIC:
            fallback = Destination.LOGIN
        elif area == RouteArea.CLIENT_AREA:
            fallback = Destination.CLIENT_PORTAL
        else:
            fallback = Destination.DASHBOARD
            if path in STAFF_BOUNCED_PATHS:
                return None, {}, fallback

        for route in self.routes_for(area):
            params = route.match(path)
            if params is not None:
                return route, params, fallback
        return None, {}, fallback

    def _on_session_change(self, state: SessionState):
        area = area_for(state)
        if area == self._area:
            return

        self.logger.info(f"Route area changed: {self._area.value} -> {area.value}")
        self._area = area
        for listener in list(self._listeners):
            listener(area)
