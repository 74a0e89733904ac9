"""Period window utilities.

All windows are computed in UTC. Daily windows are calendar days, weekly
windows start on Monday, monthly windows are calendar months.
"""

from datetime import datetime, timedelta, UTC

from dateutil.relativedelta import relativedelta

from spendguard.domain.entities import LimitPeriod, PeriodWindow
from spendguard.domain.errors import ValidationError


def as_utc(at: datetime) -> datetime:
    """Return an aware UTC datetime. Naive values are taken to be UTC."""
    if at.tzinfo is None:
        return at.replace(tzinfo=UTC)
    return at.astimezone(UTC)


def window_for(period: LimitPeriod, at: datetime) -> PeriodWindow:
    """Compute the window of ``period`` that contains ``at``.

    Args:
        period: Limit period
        at: Instant inside the window

    Returns:
        PeriodWindow with an inclusive start and exclusive end
    """
    day = as_utc(at).replace(hour=0, minute=0, second=0, microsecond=0)

    if period == LimitPeriod.DAILY:
        start = day
        end = start + timedelta(days=1)
    elif period == LimitPeriod.WEEKLY:
        start = day - timedelta(days=day.weekday())
        end = start + timedelta(days=7)
    elif period == LimitPeriod.MONTHLY:
        start = day.replace(day=1)
        end = start + relativedelta(months=1)
    else:
        raise ValidationError(f"Unknown limit period '{period}'")

    return PeriodWindow(period=period, start=start, end=end)


def parse_period(value: str) -> LimitPeriod:
    """Parse a period name such as 'weekly' into a LimitPeriod.

    Raises:
        ValidationError: If the name is not a known period
    """
    try:
        return LimitPeriod(value.strip().lower())
    except ValueError:
        valid = ", ".join(p.value for p in LimitPeriod)
        raise ValidationError(f"Invalid period '{value}'. Valid periods: {valid}")
