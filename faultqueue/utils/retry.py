"""Retry and backoff helpers for outbound HTTP calls."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
import random
from typing import Awaitable, Callable, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class RetryDirective:
    """Instruction returned from a classifier to ``with_retry``."""

    retry: bool
    delay_override_ms: int | None = None


@dataclass(slots=True, frozen=True)
class RetryPolicy:
    """Attempt budget and backoff shape for a single outbound call."""

    attempts: int = 1
    base_ms: int = 250
    jitter_pct: int = 20
    timeout_ms: int | None = None

    def delay_for(self, attempt: int) -> int:
        """Nominal delay in milliseconds before retrying after ``attempt``."""

        return max(1, int(self.base_ms)) * (2 ** max(0, attempt - 1))


AsyncFactory = Callable[[], Awaitable[T]]
Classifier = Callable[[Exception], RetryDirective | bool]


def _jitter(delay_ms: int, jitter_pct: int, rng: random.Random) -> float:
    delay = max(0, int(delay_ms))
    pct = max(0, int(jitter_pct))
    if delay <= 0 or pct <= 0:
        return float(delay)
    spread = delay * pct / 100.0
    return rng.uniform(max(0.0, delay - spread), delay + spread)


def _as_directive(result: RetryDirective | bool) -> RetryDirective:
    if isinstance(result, RetryDirective):
        return result
    if isinstance(result, bool):
        return RetryDirective(retry=result)
    raise TypeError("classifier must return a boolean or RetryDirective")


async def with_retry(
    async_fn: AsyncFactory[T],
    *,
    policy: RetryPolicy,
    classify_err: Classifier,
    rng: random.Random | None = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Execute ``async_fn`` with retries, exponential backoff and jitter."""

    max_attempts = max(1, int(policy.attempts))
    timeout = policy.timeout_ms
    generator = rng or random.Random()

    for attempt in range(1, max_attempts + 1):
        try:
            call = async_fn()
            if timeout is not None and timeout > 0:
                return await asyncio.wait_for(call, timeout / 1000.0)
            return await call
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            directive = _as_directive(classify_err(exc))
            if not directive.retry or attempt >= max_attempts:
                raise
            delay_ms = directive.delay_override_ms
            if delay_ms is None:
                delay_ms = policy.delay_for(attempt)
            jittered_ms = _jitter(delay_ms, policy.jitter_pct, generator)
            if jittered_ms > 0:
                await sleep(jittered_ms / 1000.0)
    raise RuntimeError("Retry loop exited unexpectedly")


__all__ = ["RetryDirective", "RetryPolicy", "with_retry"]
