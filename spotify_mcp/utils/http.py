"""Retry/backoff semantics for callers of the credential manager."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from spotify_mcp.core.errors import NetworkError

T = TypeVar("T")

logger = logging.getLogger(__name__)


class RetryConfig:
    def __init__(self, *, attempts: int = 3, backoff_seconds: float = 1.0) -> None:
        self.attempts = attempts
        self.backoff_seconds = backoff_seconds


async def call_with_retry(
    func: Callable[..., Awaitable[T]],
    *args,
    retry_config: RetryConfig | None = None,
    **kwargs,
) -> T:
    """Await ``func`` and retry it with linear backoff on ``NetworkError``.

    Every other failure propagates on the first attempt.
    """
    config = retry_config or RetryConfig()
    attempt = 0
    last_exception: Exception | None = None

    while attempt < config.attempts:
        try:
            return await func(*args, **kwargs)
        except NetworkError as exc:
            last_exception = exc
            attempt += 1
            if attempt >= config.attempts:
                break
            logger.info(
                "Transient failure (attempt %s/%s): %s", attempt, config.attempts, exc
            )
            await asyncio.sleep(config.backoff_seconds * attempt)

    if last_exception is not None:
        raise last_exception
    raise RuntimeError("Call failed without raising an exception")


__all__ = ["RetryConfig", "call_with_retry"]
