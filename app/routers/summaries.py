from typing import Optional

from fastapi import APIRouter, Depends

from app.core.deps import get_aggregator
from app.models.summary import DailySummary, MonthlySummary
from app.utils.aggregator import BudgetAggregator

router = APIRouter()


@router.get("/daily", response_model=DailySummary)
def daily_summary(date: Optional[str] = None, aggregator: BudgetAggregator = Depends(get_aggregator)):
    """
    Daily-bucket budget vs spend. ``date`` must follow YYYY-MM-DD; defaults to today
    in the configured timezone.
    """
    return aggregator.daily_summary(date)


@router.get("/monthly", response_model=MonthlySummary)
def monthly_summary(
    year: Optional[str] = None,
    month: Optional[str] = None,
    aggregator: BudgetAggregator = Depends(get_aggregator),
):
    """
    Tracked budget vs spend for a month. ``year``/``month`` default to the current
    local month; an invalid month is a 400, not a 422.
    """
    return aggregator.monthly_summary(year, month)
