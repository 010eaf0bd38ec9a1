"""
API Gateway Service package for the HR services platform.

The gateway fronts client requests, enforcing:
- Authentication: bearer JWTs verified once at the edge
- Rate limiting: fixed window per client, backed by Redis
- Routing: ordered prefix rules mapping paths to backend services
- Forwarding: single-attempt reverse proxy with uniform 503 on failure

Structure:
- app.main: FastAPI app, routes, and middleware wiring.
- app.auth: Auth Gate (token verification, role checks).
- app.routing: Service registry and path-based router.
- app.proxy: Proxy forwarder.
- app.ratelimit: Rate limiter.
"""
