"""UTC clock helpers; every persisted timestamp is timezone-aware UTC."""

from __future__ import annotations

import datetime as dt


def utcnow() -> dt.datetime:
    """Return the current time as an aware UTC datetime."""
    return dt.datetime.now(dt.UTC)


def seconds_ago(seconds: float) -> dt.datetime:
    """Return the aware UTC instant *seconds* before now."""
    return utcnow() - dt.timedelta(seconds=seconds)
