"""
Sunny Video Backend: Expiry & Relative-Time Helpers
=====================================================

What:  Pure timestamp arithmetic for message expiry and the inbox labels
       ("5m ago", "3h left").
How:   All comparisons happen on timezone-aware UTC datetimes. Naive values
       (e.g. from drivers that strip tzinfo) are interpreted as UTC.

Every function takes an optional `now` so callers can evaluate a whole page
of messages against one instant, and tests can pin time.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_aware(value: datetime) -> datetime:
    """Attach UTC to a naive datetime; convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def compute_expires_at(created_at: datetime, ttl_hours: int) -> datetime:
    return ensure_aware(created_at) + timedelta(hours=ttl_hours)


def is_expired(expires_at: datetime, now: Optional[datetime] = None) -> bool:
    """A message is expired from the instant `expires_at` is reached."""
    now = ensure_aware(now or utcnow())
    return ensure_aware(expires_at) <= now


def format_time_ago(value: datetime, now: Optional[datetime] = None) -> str:
    """
    Label for how long ago something happened.

        < 1 minute   → "Just now"
        < 60 minutes → "{m}m ago"
        < 24 hours   → "{h}h ago"
        otherwise    → "{d}d ago"
    """
    now = ensure_aware(now or utcnow())
    diff_minutes = int((now - ensure_aware(value)).total_seconds() // 60)

    if diff_minutes < 1:
        return "Just now"
    if diff_minutes < 60:
        return f"{diff_minutes}m ago"

    diff_hours = diff_minutes // 60
    if diff_hours < 24:
        return f"{diff_hours}h ago"

    return f"{diff_hours // 24}d ago"


def format_expiry(expires_at: datetime, now: Optional[datetime] = None) -> str:
    """
    Label for the time remaining before expiry.

        < 60 minutes → "{m}m left"
        < 24 hours   → "{h}h left"
        otherwise    → "{d}d left"

    Minutes are floored, so the last minute reads "0m left".
    """
    now = ensure_aware(now or utcnow())
    diff_minutes = int((ensure_aware(expires_at) - now).total_seconds() // 60)

    if diff_minutes < 60:
        return f"{max(diff_minutes, 0)}m left"

    diff_hours = diff_minutes // 60
    if diff_hours < 24:
        return f"{diff_hours}h left"

    return f"{diff_hours // 24}d left"
