"""
Shared datetime helpers.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional


def ensure_utc(dt: datetime) -> datetime:
    """Return a timezone-aware UTC datetime."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO 8601 timestamp and normalize it to UTC."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        # The registry emits seven fractional digits, which fromisoformat rejects on older Pythons.
        head, sep, tail = value.replace("Z", "+00:00").partition(".")
        if not sep:
            return None
        digits = "".join(ch for ch in tail if ch.isdigit())
        offset = tail[len(digits):]
        try:
            parsed = datetime.fromisoformat(f"{head}.{digits[:6]}{offset}")
        except ValueError:
            return None
    return ensure_utc(parsed)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def elapsed_days(since: datetime, now: Optional[datetime] = None) -> float:
    """Fractional days between since and now."""
    now = ensure_utc(now) if now is not None else utc_now()
    return (now - ensure_utc(since)).total_seconds() / 86400
