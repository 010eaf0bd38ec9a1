"""
Path-based router for the Gateway.
"""

from dataclasses import dataclass

from shared.errors import NotFoundError

from .registry import RouteRule, ServiceRegistry, ServiceTarget


class NoRouteError(NotFoundError):
    """No route rule matches the requested path."""

    kind = "NO_ROUTE"

    def __init__(self, path: str):
        super().__init__(f"Route not found - {path}")
        self.path = path


@dataclass(frozen=True)
class RouteMatch:
    """Routing decision for a single request."""

    rule: RouteRule
    target: ServiceTarget
    upstream_path: str


class PathRouter:
    """Select the backend target for a path.

    Rules are tried in declaration order and the first match wins. The
    request method plays no part in the decision.
    """

    def __init__(self, registry: ServiceRegistry):
        self.registry = registry

    def resolve(self, path: str) -> RouteMatch:
        for rule in self.registry.rules:
            if rule.matches(path):
                return RouteMatch(
                    rule=rule,
                    target=self.registry.target(rule.target_service),
                    upstream_path=rule.rewrite(path),
                )
        raise NoRouteError(path)
