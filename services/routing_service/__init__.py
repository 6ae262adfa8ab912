"""
Routing service - maps session state to reachable console destinations.
"""

from .router import Route, RouteArea, RouteResolution, RoutingController, area_for

__all__ = ['Route', 'RouteArea', 'RouteResolution', 'RoutingController', 'area_for']
