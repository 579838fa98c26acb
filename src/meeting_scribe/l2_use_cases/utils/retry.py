"""Retry with exponential backoff and jitter.

Delays are in seconds. Sleeping is cooperative (``asyncio.sleep`` by
default) so a waiting retry never blocks sibling tasks.
"""

from __future__ import annotations

import asyncio
import logging
import math
import random
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import TypeVar

from meeting_scribe.l1_entities.errors import (
    AuthError,
    InputValidationError,
    RetryExhaustedError,
    TransportError,
    TransportErrorKind,
)
from meeting_scribe.l1_entities.retry_policy import RetryPolicy

log = logging.getLogger('msc.retry')

T = TypeVar('T')

RetryCallback = Callable[[int, float, BaseException], None]
CountdownCallback = Callable[[int], None]
SleepFn = Callable[[float], Awaitable[None]]


def compute_backoff_delay(attempt: int, policy: RetryPolicy, rand: Callable[[], float] = random.random) -> float:
    """Delay before retrying after the *attempt*-th failure (0-based).

    ``min(base * 2**attempt, max) + jitter`` where jitter is additive, so the
    result lies in ``[capped, capped * (1 + jitter_factor)]``.
    """
    capped = min(policy.base_delay * (2**attempt), policy.max_delay)
    jitter = capped * policy.jitter_factor * rand()
    return capped + jitter


def parse_retry_after(value: str | None, now: datetime | None = None) -> float | None:
    """Parse a Retry-After header: integer seconds or an HTTP date. None if absent or unparseable."""
    if not value:
        return None
    value = value.strip()
    try:
        return max(0.0, float(int(value)))
    except ValueError:
        pass
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    return max(0.0, (when - now).total_seconds())


def is_retryable(error: BaseException, policy: RetryPolicy) -> bool:
    """Classify *error* against *policy*.

    Network failures and transport timeouts retry; statuses retry when listed
    in the policy. Auth and validation errors, and bare timeouts (no
    recovery path), never retry.
    """
    if isinstance(error, (AuthError, InputValidationError)):
        return False
    if isinstance(error, TransportError):
        if error.kind in (TransportErrorKind.NETWORK, TransportErrorKind.TIMEOUT):
            return True
        return error.status_code in policy.retryable_status_codes
    if isinstance(error, TimeoutError):
        return False
    if isinstance(error, ConnectionError):
        return True
    status = getattr(error, 'status_code', None)
    return isinstance(status, int) and status in policy.retryable_status_codes


async def sleep_with_countdown(
    delay: float,
    on_countdown: CountdownCallback | None = None,
    sleep: SleepFn = asyncio.sleep,
) -> None:
    """Sleep for *delay* seconds, reporting whole seconds remaining about once per second."""
    if on_countdown is None:
        await sleep(delay)
        return
    remaining = delay
    while remaining > 0:
        on_countdown(math.ceil(remaining))
        step = min(1.0, remaining)
        await sleep(step)
        remaining = round(remaining - step, 6)
    on_countdown(0)


class RetryExecutor:
    """Runs an async operation up to ``policy.max_retries + 1`` times.

    Holds no per-call state, so one executor can serve concurrent calls with
    different policies. ``sleep`` and ``rand`` are injectable for tests.
    """

    def __init__(
        self,
        sleep: SleepFn = asyncio.sleep,
        rand: Callable[[], float] = random.random,
    ) -> None:
        self._sleep = sleep
        self._rand = rand

    def delay_for(self, attempt: int, error: BaseException, policy: RetryPolicy) -> float:
        hint = getattr(error, 'retry_after', None)
        if hint is not None and hint > 0:
            return float(hint)
        return compute_backoff_delay(attempt, policy, self._rand)

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        policy: RetryPolicy,
        on_retry: RetryCallback | None = None,
        on_countdown: CountdownCallback | None = None,
    ) -> T:
        """Return the first successful result.

        Non-retryable errors propagate unchanged. When every attempt fails
        with a retryable error, raises RetryExhaustedError wrapping the last one.
        """
        for attempt in range(policy.max_attempts):
            try:
                return await operation()
            except Exception as e:
                if not is_retryable(e, policy):
                    log.info('Not retrying %s: %s', type(e).__name__, e)
                    raise
                if attempt == policy.max_retries:
                    raise RetryExhaustedError(policy.max_attempts, e) from e
                delay = self.delay_for(attempt, e, policy)
                log.warning(
                    'Attempt %d/%d failed (%s: %s), retrying in %.1fs',
                    attempt + 1,
                    policy.max_attempts,
                    type(e).__name__,
                    e,
                    delay,
                )
                if on_retry is not None:
                    on_retry(attempt + 1, delay, e)
                await sleep_with_countdown(delay, on_countdown, self._sleep)
