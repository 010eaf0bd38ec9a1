"""
Proxy forwarder for the Gateway.

Relays a client request to the resolved backend and hands the backend's
answer back unchanged. A network failure is the only thing translated into
a gateway-generated error (503); there are no retries at this layer.
"""

import time
from typing import Optional

import httpx
from fastapi import Request, Response
from fastapi.responses import JSONResponse

from shared.errors import UpstreamUnavailableError
from shared.identity import IDENTITY_HEADERS, ForwardedIdentity
from shared.logging import get_logger, get_request_id
from shared.metrics import MetricsCollector

from ..routing import RouteMatch

# Hop-by-hop headers (RFC 7230 section 6.1) plus headers httpx recomputes.
HOP_BY_HOP_HEADERS = frozenset({
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "te",
    "trailer",
    "transfer-encoding",
    "upgrade",
    "host",
    "content-length",
})

# Set by the gateway itself; client copies are dropped.
REWRITTEN_HEADERS = frozenset({"x-forwarded-for", "x-forwarded-host", "x-request-id"})

# httpx decodes the body, so the original encoding and length no longer apply.
STRIPPED_RESPONSE_HEADERS = HOP_BY_HOP_HEADERS | {"content-encoding"}


class ProxyForwarder:
    """Forward requests to backend targets."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        metrics: Optional[MetricsCollector] = None,
        expose_errors: bool = True,
    ) -> None:
        self.client = client
        self.metrics = metrics
        self.expose_errors = expose_errors
        self.logger = get_logger("gateway.proxy")

    async def close(self) -> None:
        await self.client.aclose()

    def _build_headers(self, request: Request, identity: Optional[ForwardedIdentity]) -> httpx.Headers:
        blocked = HOP_BY_HOP_HEADERS | REWRITTEN_HEADERS | {name.lower() for name in IDENTITY_HEADERS}
        headers = httpx.Headers([
            (name, value)
            for name, value in request.headers.items()
            if name.lower() not in blocked
        ])

        client_host = request.client.host if request.client else None
        chain = [hop for hop in (request.headers.get("X-Forwarded-For"), client_host) if hop]
        if chain:
            headers["X-Forwarded-For"] = ", ".join(chain)
        if request.headers.get("host"):
            headers["X-Forwarded-Host"] = request.headers["host"]

        request_id = get_request_id()
        if request_id:
            headers["X-Request-ID"] = request_id

        if identity:
            headers.update(identity.to_headers())
        return headers

    async def forward(self, request: Request, match: RouteMatch,
                      identity: Optional[ForwardedIdentity] = None) -> Response:
        """Forward ``request`` to ``match.target`` and relay the answer."""
        target = match.target
        url = f"{target.base_url}{match.upstream_path}"
        body = await request.body()
        headers = self._build_headers(request, identity)

        start_time = time.time()
        try:
            upstream = await self.client.request(
                request.method,
                url,
                params=request.query_params.multi_items(),
                content=body,
                headers=headers,
            )
        except httpx.TransportError as exc:
            duration = time.time() - start_time
            self._record(target.name, "unavailable", duration)
            self.logger.error(
                "Proxy request failed",
                method=request.method,
                path=request.url.path,
                target=target.name,
                upstream_path=match.upstream_path,
                outcome="unavailable",
                error=str(exc) or exc.__class__.__name__,
                duration_ms=round(duration * 1000, 2),
            )
            return self.unavailable_response(
                UpstreamUnavailableError(target.name, str(exc) or exc.__class__.__name__)
            )

        duration = time.time() - start_time
        self._record(target.name, str(upstream.status_code), duration)
        self.logger.info(
            "Proxied request",
            method=request.method,
            path=request.url.path,
            target=target.name,
            upstream_path=match.upstream_path,
            status_code=upstream.status_code,
            outcome="forwarded",
            duration_ms=round(duration * 1000, 2),
        )

        response_headers = [
            (name, value)
            for name, value in upstream.headers.multi_items()
            if name.lower() not in STRIPPED_RESPONSE_HEADERS
        ]
        response = Response(content=upstream.content, status_code=upstream.status_code)
        for name, value in response_headers:
            response.headers.append(name, value)
        return response

    def unavailable_response(self, exc: UpstreamUnavailableError) -> JSONResponse:
        """503 envelope for an unreachable backend."""
        debug = exc.detail if self.expose_errors else None
        body = exc.to_response(debug=debug)
        return JSONResponse(status_code=exc.status_code, content=body.to_content())

    def _record(self, target: str, outcome: str, duration: float) -> None:
        if not self.metrics:
            return
        self.metrics.increment_counter("proxy_requests_total", target=target, outcome=outcome)
        self.metrics.observe_histogram("proxy_request_duration_seconds", duration, target=target)
