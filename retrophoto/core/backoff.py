"""Shared exponential backoff with jitter.

Used by the restore upload client for optional in-call retries; retries
across drain cycles are left to the platform's sync reschedule.
"""

from __future__ import annotations

import asyncio
import random


def backoff_delay(attempt: int, backoff_base: float = 0.5, max_delay: float = 30.0) -> float:
    """Return the un-jittered delay for a 0-indexed attempt."""
    return min(max_delay, max(0.0, backoff_base * (2**attempt)))


async def sleep_backoff(
    attempt: int,
    backoff_base: float = 0.5,
    max_delay: float = 30.0,
) -> None:
    """Sleep with exponential backoff and jitter.

    Delay formula: ``min(max_delay, backoff_base * 2^attempt) * (1 + uniform(-0.25, 0.25))``

    Args:
        attempt: Current attempt number (0-indexed).
        backoff_base: Base delay in seconds. Defaults to 0.5.
        max_delay: Maximum base delay in seconds. Defaults to 30.0.
    """
    jitter = 1.0 + random.uniform(-0.25, 0.25)
    await asyncio.sleep(backoff_delay(attempt, backoff_base, max_delay) * jitter)
