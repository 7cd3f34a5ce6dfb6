"""Self-imposed pacing for calls to the LLM provider.

Calls are serialized; :class:`DelayPolicy` describes the spacing between them
and the exponential backoff applied to rate-limited attempts.  The ``sleep``
callable is injectable so tests can run with :meth:`DelayPolicy.none`.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

from aio_diagnosis.config import settings
from aio_diagnosis.services.llm_client import LLMRateLimitError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class DelayPolicy:
    call_delay: float = 3.0
    backoff_base: float = 5.0
    backoff_cap: float = 30.0
    max_attempts: int = 3
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep

    @classmethod
    def from_settings(cls) -> "DelayPolicy":
        return cls(
            call_delay=settings.LLM_CALL_DELAY_SECONDS,
            backoff_base=settings.LLM_BACKOFF_BASE_SECONDS,
            backoff_cap=settings.LLM_BACKOFF_CAP_SECONDS,
            max_attempts=settings.LLM_MAX_ATTEMPTS,
        )

    @classmethod
    def none(cls, max_attempts: int = 3) -> "DelayPolicy":
        """A policy that never waits (for tests)."""

        async def _no_sleep(_seconds: float) -> None:
            return None

        return cls(call_delay=0, backoff_base=0, backoff_cap=0, max_attempts=max_attempts, sleep=_no_sleep)

    def backoff_delay(self, attempt: int) -> float:
        """Seconds to wait after failed attempt number *attempt* (0-based)."""
        return min(self.backoff_base * (2 ** attempt), self.backoff_cap)

    async def pause(self) -> None:
        """Wait the minimum spacing between two consecutive calls."""
        if self.call_delay > 0:
            await self.sleep(self.call_delay)


async def call_with_retry(fn: Callable[[], Awaitable[T]], policy: DelayPolicy) -> T:
    """Await ``fn()``, retrying rate-limited attempts with exponential backoff.

    Only :class:`LLMRateLimitError` is retried.  Any other error, or the last
    rate-limit error once ``policy.max_attempts`` is exhausted, propagates.
    """
    for attempt in range(policy.max_attempts):
        try:
            return await fn()
        except LLMRateLimitError:
            if attempt >= policy.max_attempts - 1:
                raise
            wait = policy.backoff_delay(attempt)
            logger.warning(
                "LLM rate limited – retrying in %.1fs (%d/%d)",
                wait,
                attempt + 1,
                policy.max_attempts,
            )
            await policy.sleep(wait)
    raise LLMRateLimitError("Retry limit reached.")
