"""
Fixed-window rate limiter for the Gateway.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, Optional

import redis.asyncio as redis
from fastapi import Request
from redis.exceptions import RedisError

from shared.logging import get_logger


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    limit: int
    remaining: int
    reset_in_seconds: int

    def headers(self) -> Dict[str, str]:
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(self.reset_in_seconds),
        }


class FixedWindowRateLimiter:
    """Count requests per client in Redis, one counter per window.

    When Redis cannot be reached the request is allowed; losing the limiter
    must not take the API down with it.
    """

    def __init__(self, redis_url: str, max_requests: int = 100, window_seconds: int = 900,
                 redis_client: Optional[redis.Redis] = None,
                 trusted_proxies: Iterable[str] = ()):
        self.redis_url = redis_url
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.trusted_proxies = frozenset(trusted_proxies)
        self.logger = get_logger("gateway.rate_limiter")
        self._redis = redis_client

    def _get_redis(self) -> redis.Redis:
        """Get Redis connection."""
        if self._redis is None:
            self._redis = redis.from_url(self.redis_url)
        return self._redis

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()

    @staticmethod
    def _make_key(client_id: str) -> str:
        return f"rate_limit:{client_id}"

    def client_id(self, request: Request) -> str:
        """Identify the caller by socket address.

        ``X-Forwarded-For`` is only read when the peer is a trusted proxy;
        the chain is walked from the right and the first hop that is not
        itself a trusted proxy is the client.
        """
        peer = request.client.host if request.client else "unknown"
        if peer not in self.trusted_proxies:
            return peer

        forwarded_for = request.headers.get("X-Forwarded-For", "")
        hops = [hop.strip() for hop in forwarded_for.split(",") if hop.strip()]
        for hop in reversed(hops):
            if hop not in self.trusted_proxies:
                return hop
        return hops[0] if hops else peer

    async def check(self, client_id: str) -> RateLimitDecision:
        """Count one request for ``client_id`` and decide whether it may pass."""
        key = self._make_key(client_id)

        try:
            redis_client = self._get_redis()
            async with redis_client.pipeline(transaction=True) as pipeline:
                pipeline.incr(key)
                pipeline.ttl(key)
                count, ttl = await pipeline.execute()

            if ttl is None or ttl < 0:
                await redis_client.expire(key, self.window_seconds)
                ttl = self.window_seconds
        except (RedisError, OSError) as e:
            self.logger.error("Rate limit check error", error=str(e))
            return RateLimitDecision(
                allowed=True,
                limit=self.max_requests,
                remaining=self.max_requests,
                reset_in_seconds=self.window_seconds,
            )

        count = int(count)
        decision = RateLimitDecision(
            allowed=count <= self.max_requests,
            limit=self.max_requests,
            remaining=max(0, self.max_requests - count),
            reset_in_seconds=int(ttl),
        )

        if not decision.allowed:
            self.logger.warning(
                "Rate limit exceeded",
                client_id=client_id,
                current_count=count,
                limit=self.max_requests
            )
        return decision
