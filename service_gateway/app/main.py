"""
API Gateway service for the HR services platform.
"""

from typing import Optional

import httpx
from fastapi import Request

from shared.base_service import BaseService
from shared.config import ServiceConfig, get_config
from shared.errors import RateLimitError
from shared.logging import set_user_context
from service_gateway.app.auth import AuthGate
from service_gateway.app.proxy import ProxyForwarder
from service_gateway.app.ratelimit import FixedWindowRateLimiter
from service_gateway.app.routing import PathRouter, ServiceRegistry

PROXY_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "HEAD"]


class GatewayService(BaseService):
    """API Gateway service implementation."""

    # Identity headers are produced here, never accepted from clients.
    trust_identity_headers = False

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        rate_limiter: Optional[FixedWindowRateLimiter] = None,
        registry: Optional[ServiceRegistry] = None,
    ):
        super().__init__("gateway", 3000, config or get_config("gateway", 3000))
        self.registry = registry or ServiceRegistry.from_config(self.config)
        self.router = PathRouter(self.registry)
        self.auth_gate = AuthGate(self.config.jwt_secret)
        self.forwarder = ProxyForwarder(
            http_client or httpx.AsyncClient(timeout=self.config.proxy_timeout_seconds),
            metrics=self.metrics,
            expose_errors=not self.config.is_production,
        )

        if rate_limiter is None and self.config.rate_limit_enabled and not self.config.is_development:
            rate_limiter = FixedWindowRateLimiter(
                self.config.redis_url,
                max_requests=self.config.rate_limit_max_requests,
                window_seconds=self.config.rate_limit_window_seconds,
                trusted_proxies=self.config.rate_limit_trusted_proxies,
            )
        self.rate_limiter = rate_limiter

        self._setup_gateway_routes()

        self.logger.info(
            "Gateway configured",
            routes=[rule.prefix for rule in self.registry.rules],
            targets={target.name: target.base_url for target in self.registry.targets()},
            rate_limiting=self.rate_limiter is not None,
        )

        # Expose service instance via app state for introspection/testing
        self.app.state.gateway_service = self

    async def shutdown(self):
        await self.forwarder.close()
        if self.rate_limiter:
            await self.rate_limiter.close()

    def _setup_gateway_routes(self):
        """Set up gateway-specific routes."""

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": "api-gateway",
                "version": "1.0.0",
                "routes": [
                    {"prefix": rule.prefix, "service": rule.target_service}
                    for rule in self.registry.rules
                ],
            }

        @self.app.api_route("/api/{path:path}", methods=PROXY_METHODS, include_in_schema=False)
        async def proxy(request: Request, path: str):
            """Authenticate, route and forward every API call."""
            rate_headers = {}
            if self.rate_limiter:
                decision = await self.rate_limiter.check(self.rate_limiter.client_id(request))
                rate_headers = decision.headers()
                if not decision.allowed:
                    self.metrics.increment_counter("rate_limit_hits_total", endpoint=request.url.path)
                    raise RateLimitError(
                        headers={**rate_headers, "Retry-After": str(decision.reset_in_seconds)}
                    )

            identity = await self.auth_gate.authenticate(request)
            set_user_context(identity.subject, identity.role)

            match = self.router.resolve(request.url.path)
            self.auth_gate.authorize(identity, match.rule.allowed_roles)

            response = await self.forwarder.forward(request, match, identity)
            for name, value in rate_headers.items():
                response.headers[name] = value
            return response


def create_app(config: Optional[ServiceConfig] = None, **kwargs):
    """Create FastAPI application."""
    service = GatewayService(config, **kwargs)
    return service.app


if __name__ == "__main__":
    service = GatewayService()
    service.run()
