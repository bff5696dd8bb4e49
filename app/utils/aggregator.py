from __future__ import annotations

import logging
import math
import re
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional, Sequence, Tuple

from app.core.errors import InvalidMonth
from app.db.base import BUCKET_DATE, BUCKET_MONTH, Storage
from app.models.summary import CategoryTotals, DailySummary, MonthlySummary
from app.utils.budget_calendar import (
    count_weekdays_and_weekends,
    daily_budget_for,
    monthly_daily_bucket_budget,
    parse_local_date,
    resolve_current_local_date,
)
from app.utils.clock import LocalDate, month_key
from app.utils.registry import BudgetConfig, CategoryKind

logger = logging.getLogger(__name__)

_INT_RE = re.compile(r"^-?[0-9]+$")


class BudgetAggregator:
    """
    Combines stored expense sums with the calendar and the budget table into
    daily and monthly summaries. Nothing is cached between calls; every
    summary reads storage afresh.
    """

    def __init__(self, storage: Storage, config: BudgetConfig, clock, timezone: str) -> None:
        self._storage = storage
        self._config = config
        self._clock = clock
        self._timezone = timezone

    @property
    def timezone(self) -> str:
        return self._timezone

    def sum_by_category(self, bucket: str, bucket_kind: str, categories: Sequence[str]) -> CategoryTotals:
        if not categories:
            return CategoryTotals(total=Decimal("0"), per_category={})

        rows = self._storage.sum_by_category(bucket, bucket_kind, list(categories))
        found = {row["category"]: Decimal(str(row["total"])) for row in rows}
        per_category = {name: found[name] for name in categories if name in found}
        total = sum(per_category.values(), Decimal("0"))
        return CategoryTotals(total=total, per_category=per_category)

    def daily_summary(self, date_str: Optional[str] = None, now: Optional[datetime] = None) -> DailySummary:
        if date_str:
            local = LocalDate.from_date(parse_local_date(date_str))
        else:
            local = resolve_current_local_date(self._clock, self._timezone, now)

        budget = daily_budget_for(local.to_date(), self._config)
        spent = self.sum_by_category(
            local.date_key, BUCKET_DATE, self._config.categories_of_kind(CategoryKind.DAILY)
        )
        return DailySummary(
            date=local.date_key,
            timezone=self._timezone,
            budget_daily=budget,
            spent_daily=spent.total,
            remaining_daily=budget - spent.total,
            by_category=spent.per_category,
        )

    def monthly_summary(
        self,
        year: Any = None,
        month: Any = None,
        now: Optional[datetime] = None,
    ) -> MonthlySummary:
        y, m = self._resolve_year_month(year, month, now)
        bucket = month_key(y, m)

        weekdays, weekends = count_weekdays_and_weekends(y, m)
        monthly_daily_budget = monthly_daily_bucket_budget(y, m, self._config)

        daily = self.sum_by_category(bucket, BUCKET_MONTH, self._config.categories_of_kind(CategoryKind.DAILY))
        monthly = self.sum_by_category(bucket, BUCKET_MONTH, self._config.categories_of_kind(CategoryKind.MONTHLY))
        other = self.sum_by_category(bucket, BUCKET_MONTH, self._config.categories_of_kind(CategoryKind.OTHER))

        fixed_budgets = self._config.fixed_monthly_budgets()
        total_budget_tracked = monthly_daily_budget + self._config.fixed_budget_total()
        # "other" spend is informational and stays out of the tracked totals
        total_spent_tracked = daily.total + monthly.total
        logger.debug(f"Monthly summary {bucket}: budget={total_budget_tracked} spent={total_spent_tracked}")

        return MonthlySummary(
            year=y,
            month=m,
            timezone=self._timezone,
            weekdays=weekdays,
            weekends=weekends,
            weekday_daily_budget=self._config.weekday_daily_budget,
            weekend_daily_budget=self._config.weekend_daily_budget,
            monthly_daily_budget=monthly_daily_budget,
            fixed_monthly_budgets=fixed_budgets,
            spent_daily=daily.total,
            spent_daily_by_category=daily.per_category,
            spent_monthly=monthly.total,
            spent_monthly_by_category=monthly.per_category,
            spent_other=other.total,
            spent_other_by_category=other.per_category,
            total_budget_tracked=total_budget_tracked,
            total_spent_tracked=total_spent_tracked,
            remaining_tracked=total_budget_tracked - total_spent_tracked,
        )

    def _resolve_year_month(self, year: Any, month: Any, now: Optional[datetime]) -> Tuple[int, int]:
        if year is None or month is None:
            current = resolve_current_local_date(self._clock, self._timezone, now)
            year = current.year if year is None else year
            month = current.month if month is None else month

        y = _as_int(year)
        m = _as_int(month)
        if y is None or m is None or not 1 <= m <= 12 or not 1 <= y <= 9999:
            raise InvalidMonth(year, month)
        return y, m


def _as_int(value: Any) -> Optional[int]:
    """Coerce query-string or numeric input to an int; None when not a finite integer."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not math.isfinite(value) or not value.is_integer():
            return None
        return int(value)
    if isinstance(value, str):
        text = value.strip()
        if not _INT_RE.match(text):
            return None
        return int(text)
    return None
