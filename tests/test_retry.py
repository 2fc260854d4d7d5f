"""Tests for backoff delays and status classification."""

import random

import pytest

from app.utils.retry import (
    MAX_BACKOFF_SECONDS,
    QUOTA_STATUS_CODES,
    TRANSIENT_STATUS_CODES,
    classify_status,
    compute_backoff_delay,
)


# Tests for compute_backoff_delay


def test_backoff_doubles_per_attempt():
    """Test exponential growth without jitter."""
    assert compute_backoff_delay(0, 1.0, 0) == 1.0
    assert compute_backoff_delay(1, 1.0, 0) == 2.0
    assert compute_backoff_delay(2, 1.0, 0) == 4.0


def test_backoff_is_capped():
    """Test the delay never exceeds the cap."""
    assert compute_backoff_delay(10, 1.0, 0) == MAX_BACKOFF_SECONDS


def test_jitter_stays_within_bound():
    """Test jitter adds at most max_jitter seconds."""
    rng = random.Random(1)
    delays = [compute_backoff_delay(0, 1.0, 0.5, rng) for _ in range(50)]

    assert all(1.0 <= d <= 1.5 for d in delays)
    assert len(set(delays)) > 1


def test_seeded_jitter_is_reproducible():
    """Test a seeded random source gives the same delay."""
    first = compute_backoff_delay(1, 0.5, 0.5, random.Random(7))
    second = compute_backoff_delay(1, 0.5, 0.5, random.Random(7))

    assert first == second


def test_zero_delay_configuration():
    """Test retries can be made immediate."""
    assert compute_backoff_delay(3, 0, 0) == 0.0


# Tests for classify_status


@pytest.mark.parametrize(
    "status,expected",
    [
        (None, "network"),
        (402, "quota"),
        (429, "quota"),
        (500, "transient"),
        (503, "transient"),
        (400, "client"),
        (401, "client"),
        (404, "client"),
        (302, "unexpected"),
        (200, "unexpected"),
    ],
)
def test_classify_status(status, expected):
    """Test status codes map to log labels."""
    assert classify_status(status) == expected


def test_status_code_sets_are_disjoint():
    """Test no code is both quota and transient."""
    assert not QUOTA_STATUS_CODES & TRANSIENT_STATUS_CODES
