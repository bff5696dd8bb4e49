from typing import Dict

from pydantic import BaseModel

from app.models.expense import Money


class CategoryTotals(BaseModel):
    total: Money
    per_category: Dict[str, Money] = {}


class DailySummary(BaseModel):
    date: str
    timezone: str
    budget_daily: Money
    spent_daily: Money
    remaining_daily: Money
    by_category: Dict[str, Money] = {}


class MonthlySummary(BaseModel):
    year: int
    month: int
    timezone: str
    weekdays: int
    weekends: int
    weekday_daily_budget: Money
    weekend_daily_budget: Money
    monthly_daily_budget: Money
    fixed_monthly_budgets: Dict[str, Money]
    spent_daily: Money
    spent_daily_by_category: Dict[str, Money]
    spent_monthly: Money
    spent_monthly_by_category: Dict[str, Money]
    spent_other: Money
    spent_other_by_category: Dict[str, Money]
    total_budget_tracked: Money
    total_spent_tracked: Money
    remaining_tracked: Money
