"""
Calendar resolver - billable working days for a leave range.

count_working_days is pure: the same inputs always give the same result.
The state machine relies on that to recompute a request's days at approval
and compare them with the value stored at submission.
"""
from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable, Optional, Tuple

from sqlalchemy.orm import Session

from leave_engine.core.config import settings
from leave_engine.core.exceptions import InvalidRange
from leave_engine.services.holiday_service import get_holidays_in_range

DEFAULT_WEEKEND: Tuple[int, ...] = (5, 6)  # Saturday, Sunday
HALF_DAY = Decimal("0.5")
FULL_DAY = Decimal("1")


def iter_dates(start_date: date, end_date: date):
    """Yield every date from start_date to end_date inclusive"""
    current = start_date
    while current <= end_date:
        yield current
        current += timedelta(days=1)


def is_working_day(check_date: date, holidays: Iterable[date], weekend: Iterable[int]) -> bool:
    return check_date.weekday() not in weekend and check_date not in holidays


def count_working_days(
    start_date: date,
    end_date: date,
    holidays: Iterable[date] = (),
    weekend: Iterable[int] = DEFAULT_WEEKEND,
    start_half_day: bool = False,
    end_half_day: bool = False,
    entity_id: Optional[int] = None,
) -> Decimal:
    """
    Count billable days between start_date and end_date (inclusive).

    Weekend weekdays and holiday dates are excluded. A half-day flag on the
    first or last day takes 0.5 off that day, but only when the day is itself
    billable. For a single-day range either flag makes it a half day.

    Raises:
        InvalidRange: if end_date is before start_date
    """
    if end_date < start_date:
        raise InvalidRange(
            f"end_date {end_date} is before start_date {start_date}",
            entity_id=entity_id,
        )

    holiday_set = frozenset(holidays)
    weekend_set = frozenset(weekend)

    total = Decimal("0")
    for current in iter_dates(start_date, end_date):
        if is_working_day(current, holiday_set, weekend_set):
            total += FULL_DAY

    if start_date == end_date:
        if (start_half_day or end_half_day) and total > 0:
            return HALF_DAY
        return total

    if start_half_day and is_working_day(start_date, holiday_set, weekend_set):
        total -= HALF_DAY
    if end_half_day and is_working_day(end_date, holiday_set, weekend_set):
        total -= HALF_DAY
    return total


def resolve_days(
    db: Session,
    start_date: date,
    end_date: date,
    start_half_day: bool = False,
    end_half_day: bool = False,
    entity_id: Optional[int] = None,
) -> Decimal:
    """
    Count billable days using the current holiday calendar and the configured weekend.

    Holidays are read on every call, so calendar changes apply without a restart.
    """
    if end_date < start_date:
        raise InvalidRange(
            f"end_date {end_date} is before start_date {start_date}",
            entity_id=entity_id,
        )
    holidays = get_holidays_in_range(db, start_date, end_date)
    return count_working_days(
        start_date,
        end_date,
        holidays=holidays,
        weekend=settings.get_weekend_days(),
        start_half_day=start_half_day,
        end_half_day=end_half_day,
        entity_id=entity_id,
    )
