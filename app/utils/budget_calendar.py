"""
Calendar math for the weekday / weekend budget model.

Every function here works on a date that has already been resolved into the
local calendar; no timezone conversion happens below ``resolve_current_local_date``.
"""
from __future__ import annotations

import calendar
import re
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, Tuple

from app.core.errors import ClockResolutionError, InvalidDate
from app.utils.clock import LocalDate
from app.utils.registry import BudgetConfig

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class DayKind(str, Enum):
    WEEKDAY = "weekday"
    WEEKEND = "weekend"


def classify_day(day: date) -> DayKind:
    # date.weekday(): Monday=0 ... Saturday=5, Sunday=6
    if day.weekday() >= 5:
        return DayKind.WEEKEND
    return DayKind.WEEKDAY


def daily_budget_for(day: date, config: BudgetConfig) -> Decimal:
    if classify_day(day) is DayKind.WEEKEND:
        return config.weekend_daily_budget
    return config.weekday_daily_budget


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def count_weekdays_and_weekends(year: int, month: int) -> Tuple[int, int]:
    """Return ``(weekday_count, weekend_count)`` for the given month."""
    weekdays = 0
    weekends = 0
    for day in range(1, days_in_month(year, month) + 1):
        if classify_day(date(year, month, day)) is DayKind.WEEKEND:
            weekends += 1
        else:
            weekdays += 1
    return weekdays, weekends


def monthly_daily_bucket_budget(year: int, month: int, config: BudgetConfig) -> Decimal:
    weekdays, weekends = count_weekdays_and_weekends(year, month)
    return weekdays * config.weekday_daily_budget + weekends * config.weekend_daily_budget


def parse_local_date(value: str) -> date:
    """
    Parse a strict ``YYYY-MM-DD`` string. Alternate ISO forms (week dates,
    compact dates, offsets) are rejected.
    """
    if not isinstance(value, str) or not _DATE_RE.match(value):
        raise InvalidDate(value)
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        raise InvalidDate(value) from e


def resolve_current_local_date(clock, timezone_name: str, now: Optional[datetime] = None) -> LocalDate:
    instant = now if now is not None else clock.now()
    local = clock.to_local_calendar_date(instant, timezone_name)
    if local is None or not all((local.year, local.month, local.day)):
        raise ClockResolutionError(f"Failed to compute local date for {timezone_name}")
    return local
