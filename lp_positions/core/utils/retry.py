"""Backoff for liquidity service calls that fail on a flaky network."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from loguru import logger

from lp_positions.core.errors import is_network_error, is_user_rejection

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    attempts: int = 3
    base_delay_s: float = 0.25
    max_delay_s: float | None = 2.0

    def __post_init__(self) -> None:
        if self.attempts < 1:
            raise ValueError("attempts must be >= 1")

    def delay_after(self, failures: int) -> float:
        """Sleep before the next attempt, doubling per failure (1-based)."""
        delay_s = self.base_delay_s * 2 ** (failures - 1)
        if self.max_delay_s is not None:
            delay_s = min(delay_s, self.max_delay_s)
        return delay_s


DEFAULT_RETRY_POLICY = RetryPolicy()


def is_transient_error(exc: Exception) -> bool:
    """Network-looking failures are retried; user rejections never are."""
    return is_network_error(exc) and not is_user_rejection(exc)


async def retry_async(
    fn: Callable[[], Awaitable[T]],
    *,
    label: str = "request",
    policy: RetryPolicy = DEFAULT_RETRY_POLICY,
    should_retry: Callable[[Exception], bool] = is_transient_error,
    on_retry: Callable[[int, Exception, float], None] | None = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    log = logger.bind(component="retry", operation=label)
    failures = 0
    while True:
        try:
            return await fn()
        except Exception as exc:  # noqa: BLE001
            failures += 1
            if failures >= policy.attempts or not should_retry(exc):
                if failures > 1:
                    log.warning(f"{label} gave up after {failures} attempts: {exc}")
                raise

            delay_s = policy.delay_after(failures)
            log.warning(
                f"{label} attempt {failures}/{policy.attempts} failed ({exc}); "
                f"retrying in {delay_s:.2f}s"
            )
            if on_retry is not None:
                on_retry(failures, exc, delay_s)
            await sleep(delay_s)
