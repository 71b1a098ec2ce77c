"""Accounting window math.

All boundaries are computed in UTC so every deployment agrees on where a
month (or day) starts. Aware datetimes in other zones are converted first;
naive datetimes are taken to already be UTC.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from enum import Enum, unique


@unique
class UsagePeriod(Enum):
    """Windows over which usage is summed."""

    MONTHLY = "monthly"
    LAST_30_DAYS = "last_30_days"


# Period label stored on every ledger row.
LEDGER_PERIOD = UsagePeriod.MONTHLY.value


def utc_now() -> datetime:
    return datetime.now(UTC)


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC)


def day_start(moment: datetime) -> datetime:
    """00:00 UTC of the day containing ``moment``."""
    m = _as_utc(moment)
    return datetime(m.year, m.month, m.day, tzinfo=UTC)


def month_start(moment: datetime) -> datetime:
    """00:00 UTC on the first day of the month containing ``moment``."""
    m = _as_utc(moment)
    return datetime(m.year, m.month, 1, tzinfo=UTC)


def window_start(period: UsagePeriod, moment: datetime) -> datetime:
    """Start of the accounting window for ``period`` as seen at ``moment``."""
    if period is UsagePeriod.MONTHLY:
        return month_start(moment)
    return day_start(moment) - timedelta(days=30)
