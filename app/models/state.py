"""
Conversation state for the /add flow.

Only ``AwaitingAmount`` carries a category, so a pending category without the
matching step cannot be represented.
"""
from dataclasses import dataclass
from typing import Dict, Optional, Union

STEP_CHOOSE_CATEGORY = "choose_category"
STEP_AWAIT_AMOUNT = "await_amount"


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class ChoosingCategory:
    pass


@dataclass(frozen=True)
class AwaitingAmount:
    category: str


ConversationState = Union[Idle, ChoosingCategory, AwaitingAmount]


def state_from_row(row: Optional[Dict]) -> ConversationState:
    """Rebuild a state from its persisted ``{step, category}`` row (absent row is Idle)."""
    if not row:
        return Idle()
    step = row.get("step")
    if step == STEP_CHOOSE_CATEGORY:
        return ChoosingCategory()
    if step == STEP_AWAIT_AMOUNT and row.get("category"):
        return AwaitingAmount(category=row["category"])
    return Idle()


def state_to_row(state: ConversationState) -> Optional[Dict]:
    """Return the ``{step, category}`` row to persist, or None when the row should be cleared."""
    if isinstance(state, ChoosingCategory):
        return {"step": STEP_CHOOSE_CATEGORY, "category": None}
    if isinstance(state, AwaitingAmount):
        return {"step": STEP_AWAIT_AMOUNT, "category": state.category}
    return None
