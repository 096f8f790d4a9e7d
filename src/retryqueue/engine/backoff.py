"""Retry backoff calculation."""

from __future__ import annotations

DEFAULT_BACKOFF_COEFFICIENT = 1.5


def compute_backoff_ms(
    retry_count: int,
    backoff_ms: float,
    coefficient: float = DEFAULT_BACKOFF_COEFFICIENT,
    retry_limit: int = -1,
) -> float:
    """Delay in milliseconds before a failed record becomes eligible again.

    ``retry_count`` is the number of failures recorded before this one. Once it
    has reached ``retry_limit`` there is no point waiting: the next pass sends
    the record straight to failure notification. A negative limit never
    short-circuits.
    """
    if retry_limit >= 0 and retry_count == retry_limit:
        return 0
    return backoff_ms * (retry_count + 1) ** coefficient
