"""
Retry with backoff for idempotent service lookups.
"""

import asyncio
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Tuple, Type

from shared.logging import get_logger


@dataclass(frozen=True)
class RetryConfig:
    """How often and how patiently to retry.

    ``backoff_strategy`` is ``"exponential"``, ``"linear"`` or ``"fixed"``.
    Jitter spreads each delay by up to 10% either way.
    """

    max_attempts: int = 3
    base_delay: float = 0.2
    max_delay: float = 2.0
    exponential_base: float = 2.0
    jitter: bool = True
    backoff_strategy: str = "exponential"

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")


class RetryError(Exception):
    """Every attempt failed; ``last_exception`` is the final failure."""

    def __init__(self, message: str, last_exception: BaseException, attempts: int):
        super().__init__(message)
        self.last_exception = last_exception
        self.attempts = attempts


async def retry_async(func: Callable[[], Awaitable[Any]],
                      exceptions: Tuple[Type[BaseException], ...] = (Exception,),
                      config: Optional[RetryConfig] = None,
                      name: Optional[str] = None) -> Any:
    """Await ``func`` until it succeeds or the attempts run out.

    Only ``exceptions`` are retried; anything else propagates immediately.
    """
    config = config or RetryConfig()
    name = name or getattr(func, "__name__", "operation")
    logger = get_logger(f"retry.{name}")

    attempt = 1
    while True:
        try:
            result = await func()
        except exceptions as e:
            if attempt >= config.max_attempts:
                raise RetryError(
                    f"{name} failed after {attempt} attempts", last_exception=e, attempts=attempt
                ) from e

            delay = _calculate_delay(attempt, config)
            logger.warning("Attempt failed, retrying", operation=name, attempt=attempt,
                           delay=round(delay, 3), error=str(e) or e.__class__.__name__)
            await asyncio.sleep(delay)
            attempt += 1
            continue

        if attempt > 1:
            logger.info("Succeeded after retry", operation=name, attempt=attempt)
        return result


def _calculate_delay(attempt: int, config: RetryConfig) -> float:
    """Delay before attempt ``attempt + 1``."""
    if config.backoff_strategy == "exponential":
        delay = config.base_delay * (config.exponential_base ** (attempt - 1))
    elif config.backoff_strategy == "linear":
        delay = config.base_delay * attempt
    else:
        delay = config.base_delay

    delay = min(delay, config.max_delay)
    if config.jitter:
        delay += random.uniform(-0.1, 0.1) * delay
    return max(0.0, delay)
