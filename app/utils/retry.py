"""Backoff and status classification helpers for provider retries.

The retry loop itself lives in the subject generator; this module only
decides how long to wait between attempts and how to describe a failed
status code in logs.
"""

import random
from typing import Optional, Set

# HTTP status codes that signal a quota or rate limit problem
QUOTA_STATUS_CODES: Set[int] = {
    402,  # Payment required (credits exhausted)
    429,  # Rate limit
}

# HTTP status codes that signal a transient provider failure
TRANSIENT_STATUS_CODES: Set[int] = {
    500,  # Server error
    502,  # Bad gateway
    503,  # Service unavailable
    504,  # Gateway timeout
}

MAX_BACKOFF_SECONDS = 30.0


def compute_backoff_delay(
    attempt: int,
    base_delay: float,
    max_jitter: float,
    rng: Optional[random.Random] = None,
) -> float:
    """Exponential backoff with jitter for the given zero-based attempt.

    Args:
        attempt: Index of the attempt that just failed (0 for the first)
        base_delay: Base delay in seconds
        max_jitter: Maximum random jitter in seconds
        rng: Optional random source (tests pass a seeded instance)

    Returns:
        Delay in seconds, capped at MAX_BACKOFF_SECONDS
    """
    if base_delay <= 0 and max_jitter <= 0:
        return 0.0
    jitter = (rng or random).random() * max_jitter
    return min(base_delay * (2**attempt) + jitter, MAX_BACKOFF_SECONDS)


def classify_status(status_code: Optional[int]) -> str:
    """Short label for a provider status code, used in log lines."""
    if status_code is None:
        return "network"
    if status_code in QUOTA_STATUS_CODES:
        return "quota"
    if status_code in TRANSIENT_STATUS_CODES:
        return "transient"
    if 400 <= status_code < 500:
        return "client"
    return "unexpected"
