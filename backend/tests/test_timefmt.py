"""
Sunny Video Backend: Expiry & Relative-Time Helper Tests
==========================================================
"""

from datetime import datetime, timedelta

import pytest

from conftest import FIXED_NOW
from sunnyvideo.timefmt import (
    compute_expires_at,
    ensure_aware,
    format_expiry,
    format_time_ago,
    is_expired,
)


@pytest.mark.parametrize(
    "age, label",
    [
        (timedelta(seconds=0), "Just now"),
        (timedelta(seconds=59), "Just now"),
        (timedelta(minutes=1), "1m ago"),
        (timedelta(minutes=59, seconds=59), "59m ago"),
        (timedelta(hours=1), "1h ago"),
        (timedelta(hours=23, minutes=59), "23h ago"),
        (timedelta(hours=24), "1d ago"),
        (timedelta(days=3, hours=5), "3d ago"),
    ],
)
def test_format_time_ago(age, label):
    assert format_time_ago(FIXED_NOW - age, FIXED_NOW) == label


@pytest.mark.parametrize(
    "remaining, label",
    [
        (timedelta(hours=24), "1d left"),
        (timedelta(hours=23, minutes=59), "23h left"),
        (timedelta(hours=1), "1h left"),
        (timedelta(minutes=59, seconds=59), "59m left"),
        (timedelta(seconds=30), "0m left"),
        (timedelta(minutes=-5), "0m left"),
    ],
)
def test_format_expiry(remaining, label):
    assert format_expiry(FIXED_NOW + remaining, FIXED_NOW) == label


def test_expired_from_the_expiry_instant():
    expires_at = compute_expires_at(FIXED_NOW, 24)

    assert not is_expired(expires_at, expires_at - timedelta(microseconds=1))
    assert is_expired(expires_at, expires_at)
    assert is_expired(expires_at, expires_at + timedelta(seconds=1))


def test_naive_datetimes_are_utc():
    naive = datetime(2025, 1, 15, 12, 0, 0)

    assert ensure_aware(naive) == FIXED_NOW
    assert format_time_ago(naive - timedelta(minutes=5), FIXED_NOW) == "5m ago"
    assert compute_expires_at(naive, 1) == FIXED_NOW + timedelta(hours=1)
