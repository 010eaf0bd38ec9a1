"""
Service registry for the Gateway.

Maps logical service names to base URLs and declares the ordered prefix
rules used by the router. Both are built once at startup and never mutated,
so concurrent requests read them without locking.
"""

from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, Mapping, Optional, Tuple

from shared.config import BaseConfig


@dataclass(frozen=True)
class ServiceTarget:
    """Backend service address."""

    name: str
    base_url: str


@dataclass(frozen=True)
class RouteRule:
    """Prefix rule selecting a backend target.

    ``rewrite_prefix`` replaces the matched prefix in the forwarded path;
    ``None`` forwards the path unchanged. ``allowed_roles`` restricts the
    route to callers whose role is in the set.
    """

    prefix: str
    target_service: str
    rewrite_prefix: Optional[str] = None
    allowed_roles: Optional[FrozenSet[str]] = None

    def matches(self, path: str) -> bool:
        """Match on a path segment boundary only."""
        return path == self.prefix or path.startswith(self.prefix + "/")

    def rewrite(self, path: str) -> str:
        if self.rewrite_prefix is None:
            return path
        return self.rewrite_prefix + path[len(self.prefix):]


def default_route_rules() -> Tuple[RouteRule, ...]:
    """Route table for the platform's backend services, in match order."""
    return (
        RouteRule("/api/workers", "workers"),
        RouteRule("/api/benefits", "benefits", rewrite_prefix="/api/benefit-types"),
        RouteRule("/api/employee-benefits", "benefits"),
        RouteRule("/api/payroll", "payroll"),
        RouteRule("/api/documents", "documents"),
        RouteRule("/api/templates", "documents"),
    )


def default_targets(config: BaseConfig) -> Dict[str, str]:
    """Base URLs for the backend services, taken from configuration."""
    return {
        "workers": config.worker_service_url,
        "benefits": config.benefits_service_url,
        "payroll": config.payroll_service_url,
        "documents": config.document_service_url,
    }


class ServiceRegistry:
    """Immutable route table plus service targets."""

    def __init__(self, rules: Iterable[RouteRule], targets: Mapping[str, str]):
        self._targets: Dict[str, ServiceTarget] = {
            name: ServiceTarget(name=name, base_url=url.rstrip("/"))
            for name, url in targets.items()
        }
        self._rules: Tuple[RouteRule, ...] = tuple(rules)
        self._validate()

    @classmethod
    def from_config(cls, config: BaseConfig) -> "ServiceRegistry":
        return cls(default_route_rules(), default_targets(config))

    def _validate(self) -> None:
        seen = set()
        for rule in self._rules:
            if not rule.prefix.startswith("/") or rule.prefix.endswith("/"):
                raise ValueError(f"Route prefix '{rule.prefix}' must start and not end with '/'")
            if rule.prefix in seen:
                raise ValueError(f"Duplicate route prefix '{rule.prefix}'")
            if rule.target_service not in self._targets:
                raise ValueError(
                    f"Route prefix '{rule.prefix}' points at unknown service '{rule.target_service}'"
                )
            seen.add(rule.prefix)

    @property
    def rules(self) -> Tuple[RouteRule, ...]:
        return self._rules

    def target(self, name: str) -> ServiceTarget:
        return self._targets[name]

    def targets(self) -> Tuple[ServiceTarget, ...]:
        return tuple(self._targets.values())
