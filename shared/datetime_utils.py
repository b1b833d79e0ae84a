"""
Date/time helpers — framework-agnostic.

Every stateful component takes an injectable ``Clock`` (a zero-argument
callable returning an aware UTC datetime) so tests can move time forward
without sleeping.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def hour_bucket(moment: datetime) -> datetime:
    """Floor *moment* to the start of its UTC hour.

    Naive datetimes are assumed to be UTC.
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).replace(minute=0, second=0, microsecond=0)


def seconds_until(moment: datetime, now: datetime) -> int:
    """Whole seconds from *now* until *moment*, never negative."""
    return max(0, int((moment - now).total_seconds()))
