from decimal import Decimal, DecimalException
from typing import Annotated
from uuid import uuid4

from boto3.dynamodb.types import DYNAMODB_CONTEXT
from pydantic import BaseModel, Field, PlainSerializer, field_validator

# Decimals stay exact in memory and are emitted as JSON numbers.
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


def is_storable_amount(value: Decimal) -> bool:
    """True when the amount is finite and fits a DynamoDB number (38 digits, exponent -130..125) exactly."""
    if not value.is_finite():
        return False
    try:
        DYNAMODB_CONTEXT.create_decimal(value)
    except DecimalException:
        return False
    return True


class ExpenseCreate(BaseModel):
    user_id: int
    category: str
    amount: Money

    @field_validator("amount")
    @classmethod
    def amount_must_be_storable(cls, value: Decimal) -> Decimal:
        if not is_storable_amount(value):
            raise ValueError("amount must be a finite number with at most 38 significant digits")
        return value


class ExpenseInDB(BaseModel):
    expense_id: str = Field(default_factory=lambda: uuid4().hex)
    recorded_at_utc: str
    local_date: str   # YYYY-MM-DD in the budget timezone
    local_month: str  # YYYY-MM in the budget timezone
    user_id: int
    category: str
    amount: Money


class ExpensePublic(BaseModel):
    expense_id: str
    recorded_at_utc: str
    local_date: str
    category: str
    amount: Money
