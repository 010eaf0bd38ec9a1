"""
Routing package for the Gateway Service.

Holds the static service registry and the prefix router that maps an inbound
path to exactly one backend target.
"""

from .registry import RouteRule, ServiceRegistry, ServiceTarget, default_route_rules
from .router import NoRouteError, PathRouter, RouteMatch

__all__ = [
    "NoRouteError",
    "PathRouter",
    "RouteMatch",
    "RouteRule",
    "ServiceRegistry",
    "ServiceTarget",
    "default_route_rules",
]
