from __future__ import annotations

from datetime import date, datetime, timezone


def utc_day(now_utc: datetime) -> date:
    """Calendar day used for the free-tier boundary (UTC, as YYYY-MM-DD)."""
    if now_utc.tzinfo is None:
        raise ValueError("now_utc must be timezone-aware")
    return now_utc.astimezone(timezone.utc).date()
