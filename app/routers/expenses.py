import logging
from typing import Dict, List

from fastapi import APIRouter, Depends, HTTPException, status

from app.core.config import settings
from app.core.deps import get_budget_config, get_clock, get_storage
from app.db.base import Storage
from app.models.expense import ExpenseCreate, ExpenseInDB, ExpensePublic
from app.utils.budget_calendar import resolve_current_local_date
from app.utils.registry import BudgetConfig, CategoryKind

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/expenses", response_model=ExpensePublic, status_code=status.HTTP_201_CREATED)
def create_expense(
    expense: ExpenseCreate,
    storage: Storage = Depends(get_storage),
    config: BudgetConfig = Depends(get_budget_config),
    clock=Depends(get_clock),
):
    if expense.user_id not in settings.allowed_user_ids:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User not allowed")

    # UnknownCategory is mapped to a 400 by the app-level handler
    config.kind_of(expense.category)

    recorded_at = clock.now()
    local = resolve_current_local_date(clock, settings.TIMEZONE, recorded_at)
    expense_id = storage.insert_expense(
        expense.user_id,
        expense.category,
        expense.amount,
        recorded_at,
        local.date_key,
        local.month_key,
    )
    logger.info(f"Recorded expense {expense_id} via API for user {expense.user_id}")

    expense_db = ExpenseInDB(
        expense_id=expense_id,
        recorded_at_utc=recorded_at.isoformat(),
        local_date=local.date_key,
        local_month=local.month_key,
        user_id=expense.user_id,
        category=expense.category,
        amount=expense.amount,
    )
    return ExpensePublic(**expense_db.model_dump())


@router.get("/categories")
def list_categories(config: BudgetConfig = Depends(get_budget_config)) -> List[Dict]:
    return [
        {
            "name": category.name,
            "kind": category.kind.value,
            "monthly_budget": float(config.monthly_budget_for(category.name)) if category.kind is CategoryKind.MONTHLY else None,
        }
        for category in config.categories
    ]
