"""
Bearer token verification at the edge.

Tokens are HS256 JWTs signed with the secret shared with the token issuer.
The gate verifies signature and expiry once; backend services receive the
decoded identity as headers and trust it.
"""

from __future__ import annotations

from typing import Any, Collection, Dict, Optional

from fastapi import Request
from jose import ExpiredSignatureError, JWTError, jwt

from shared.errors import AuthenticationError, AuthorizationError
from shared.identity import ForwardedIdentity
from shared.logging import get_logger

MISSING_TOKEN = "Unauthorized - token not provided"
MALFORMED_HEADER = "Unauthorized - malformed authorization header"
EXPIRED_TOKEN = "Unauthorized - token expired"
INVALID_TOKEN = "Unauthorized - invalid token"


class AuthGate:
    """Stateless bearer token check."""

    def __init__(self, secret: str, *, algorithms: Optional[Collection[str]] = None) -> None:
        self._secret = secret
        self.algorithms = list(algorithms or ["HS256"])
        self.logger = get_logger("gateway.auth_gate")

    async def authenticate(self, request: Request) -> ForwardedIdentity:
        """Authenticate the incoming request using the Authorization bearer token."""
        authorization = request.headers.get("Authorization")
        if not authorization:
            raise AuthenticationError(MISSING_TOKEN)

        scheme, _, token = authorization.partition(" ")
        token = token.strip()
        if scheme != "Bearer" or not token or " " in token:
            raise AuthenticationError(MALFORMED_HEADER)

        identity = self.verify(token)

        # Cache identity on the request for downstream handlers.
        request.state.identity = identity
        return identity

    def verify(self, token: str) -> ForwardedIdentity:
        """Validate the JWT and return the identity it carries."""
        try:
            claims: Dict[str, Any] = jwt.decode(token, self._secret, algorithms=self.algorithms)
        except ExpiredSignatureError as exc:
            self.logger.info("Rejected expired token")
            raise AuthenticationError(EXPIRED_TOKEN) from exc
        except JWTError as exc:
            self.logger.warning("Rejected invalid token", error=str(exc))
            raise AuthenticationError(INVALID_TOKEN) from exc

        subject = claims.get("sub") or claims.get("id")
        if not isinstance(subject, str) or not subject:
            raise AuthenticationError(INVALID_TOKEN)

        role = claims.get("role")
        expiry = claims.get("exp")
        return ForwardedIdentity(
            subject=subject,
            role=role if isinstance(role, str) else None,
            expiry=int(expiry) if isinstance(expiry, (int, float)) else None,
        )

    def authorize(self, identity: ForwardedIdentity, allowed_roles: Optional[Collection[str]]) -> None:
        """Raise 403 unless the identity's role is allowed; ``None`` allows everyone."""
        if allowed_roles is None:
            return
        if identity.role not in allowed_roles:
            self.logger.warning(
                "Authorization failed",
                user_id=identity.subject,
                role=identity.role,
                allowed_roles=sorted(allowed_roles),
            )
            raise AuthorizationError()
