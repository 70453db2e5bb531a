from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

from tenacity import AsyncRetrying, stop_after_attempt, wait_fixed

from slideit.core.config import settings

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    delay: float = 2.0
    timeout: float = 20.0

    @classmethod
    def from_settings(cls) -> "RetryPolicy":
        return cls(
            max_attempts=settings.IMAGE_MAX_ATTEMPTS,
            delay=settings.IMAGE_RETRY_DELAY_SEC,
            timeout=settings.IMAGE_TIMEOUT_SEC,
        )


@dataclass(frozen=True)
class PacingPolicy:
    """Waits between fetches: item_delay after each, batch_cooldown after each full batch."""
    batch_size: int = 5
    item_delay: float = 1.0
    batch_cooldown: float = 5.0

    @classmethod
    def from_settings(cls) -> "PacingPolicy":
        return cls(
            batch_size=settings.IMAGE_BATCH_SIZE,
            item_delay=settings.IMAGE_ITEM_DELAY_SEC,
            batch_cooldown=settings.IMAGE_BATCH_COOLDOWN_SEC,
        )

    def pause_after(self, index: int, total: int) -> float:
        """Seconds to wait after the fetch at position `index` (0-based) of `total`."""
        if index >= total - 1:
            return 0.0
        pause = self.item_delay
        if self.batch_size > 0 and (index + 1) % self.batch_size == 0:
            pause += self.batch_cooldown
        return pause


async def call_with_retry(
    fn: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Run `fn` under the policy; a timeout counts as a failed attempt. Re-raises the last error."""
    async for attempt in AsyncRetrying(
        stop=stop_after_attempt(max(1, policy.max_attempts)),
        wait=wait_fixed(policy.delay),
        sleep=sleep,
        reraise=True,
    ):
        with attempt:
            if policy.timeout and policy.timeout > 0:
                return await asyncio.wait_for(fn(), timeout=policy.timeout)
            return await fn()
    raise RuntimeError("unreachable")  # pragma: no cover
