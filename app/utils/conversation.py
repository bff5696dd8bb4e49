"""
Conversation flow for recording expenses over chat.

``next_step`` is the pure transition for free-text input; ``ConversationService``
loads the user's state, applies the transition and performs the side effects
(expense insert, state write, reply) in that order.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, Optional, Set

from app.core.errors import ClockResolutionError, StorageError
from app.db.base import Storage
from app.models.expense import is_storable_amount
from app.models.state import (
    AwaitingAmount,
    ChoosingCategory,
    ConversationState,
    Idle,
    state_from_row,
    state_to_row,
)
from app.utils import formatting
from app.utils.aggregator import BudgetAggregator
from app.utils.budget_calendar import resolve_current_local_date
from app.utils.registry import BudgetConfig, CategoryKind
from app.utils.telegram import build_category_keyboard

logger = logging.getLogger(__name__)

_AMOUNT_RE = re.compile(r"^[+-]?([0-9]+(\.[0-9]*)?|\.[0-9]+)([eE][+-]?[0-9]+)?$")


def parse_amount(text: str) -> Optional[Decimal]:
    """Return the amount as a Decimal, or None if the text is not a plain number that storage can hold exactly."""
    text = (text or "").strip()
    if not _AMOUNT_RE.match(text):
        return None
    try:
        amount = Decimal(text)
    except InvalidOperation:
        return None
    return amount if is_storable_amount(amount) else None


@dataclass(frozen=True)
class Step:
    state: ConversationState
    reply: str
    show_keyboard: bool = False
    record_category: Optional[str] = None
    record_amount: Optional[Decimal] = None

    @property
    def records_expense(self) -> bool:
        return self.record_category is not None


def next_step(state: ConversationState, text: str, config: BudgetConfig) -> Step:
    if isinstance(state, ChoosingCategory):
        if config.has_category(text):
            return Step(state=AwaitingAmount(category=text), reply=formatting.amount_prompt(text))
        return Step(state=state, reply=formatting.CHOOSE_CATEGORY_AGAIN, show_keyboard=True)

    if isinstance(state, AwaitingAmount):
        # a category dropped from the config since the state was saved cannot be recorded
        if not config.has_category(state.category):
            return Step(state=ChoosingCategory(), reply=formatting.CHOOSE_CATEGORY_AGAIN, show_keyboard=True)
        amount = parse_amount(text)
        if amount is None:
            return Step(state=state, reply=formatting.INVALID_AMOUNT)
        return Step(
            state=Idle(),
            reply=formatting.recorded_message(state.category, amount),
            record_category=state.category,
            record_amount=amount,
        )

    if isinstance(state, Idle):
        return Step(state=state, reply=formatting.USAGE_HINT)

    raise TypeError(f"Unhandled conversation state: {state!r}")


class ConversationService:
    def __init__(
        self,
        storage: Storage,
        messenger,
        aggregator: BudgetAggregator,
        config: BudgetConfig,
        clock,
        timezone: str,
        allowed_user_ids: Set[int],
    ) -> None:
        self._storage = storage
        self._messenger = messenger
        self._aggregator = aggregator
        self._config = config
        self._clock = clock
        self._timezone = timezone
        self._allowed_user_ids = set(allowed_user_ids)
        self._commands: Dict[str, Callable[[int, int], None]] = {
            "/start": self._handle_start,
            "/add": self._handle_add,
            "/today": self._handle_today,
            "/month": self._handle_month,
        }

    def handle_update(self, update: Dict[str, Any]) -> None:
        message = update.get("message") or update.get("edited_message")
        if not message:
            return

        user_id = (message.get("from") or {}).get("id")
        chat_id = (message.get("chat") or {}).get("id")
        if not user_id or not chat_id:
            return

        if user_id not in self._allowed_user_ids:
            logger.info(f"Ignoring update from user {user_id} (not on allow-list)")
            return

        text = (message.get("text") or "").strip()
        try:
            if text.startswith("/"):
                self.handle_command(user_id, chat_id, text)
            else:
                self.handle_text(user_id, chat_id, text)
        except (StorageError, ClockResolutionError) as e:
            logger.error(f"Aborting interaction for user {user_id}: {e}", exc_info=True)
            self._send(chat_id, formatting.GENERIC_FAILURE)
            raise

    def handle_command(self, user_id: int, chat_id: int, text: str) -> None:
        # Any command abandons an in-progress entry.
        self._storage.clear_user_state(user_id)

        command = text.split()[0].split("@", 1)[0]
        handler = self._commands.get(command)
        if handler is None:
            self._send(chat_id, formatting.UNKNOWN_COMMAND)
            return
        handler(user_id, chat_id)

    def handle_text(self, user_id: int, chat_id: int, text: str, now: Optional[datetime] = None) -> Step:
        state = state_from_row(self._storage.get_user_state(user_id))
        step = next_step(state, text, self._config)

        if step.records_expense:
            recorded_at = now or self._clock.now()
            local = resolve_current_local_date(self._clock, self._timezone, recorded_at)
            expense_id = self._storage.insert_expense(
                user_id,
                step.record_category,
                step.record_amount,
                recorded_at,
                local.date_key,
                local.month_key,
            )
            logger.info(f"Recorded expense {expense_id} for user {user_id}: {step.record_category} {step.record_amount}")

        if step.state != state:
            self._persist_state(user_id, step.state)

        keyboard = build_category_keyboard(self._config) if step.show_keyboard else None
        self._send(chat_id, step.reply, keyboard)
        return step

    def _persist_state(self, user_id: int, state: ConversationState) -> None:
        row = state_to_row(state)
        if row is None:
            self._storage.clear_user_state(user_id)
        else:
            self._storage.set_user_state(user_id, row["step"], row["category"])

    def _handle_start(self, user_id: int, chat_id: int) -> None:
        self._send(chat_id, formatting.start_message(self._timezone), build_category_keyboard(self._config))

    def _handle_add(self, user_id: int, chat_id: int) -> None:
        self._persist_state(user_id, ChoosingCategory())
        self._send(chat_id, formatting.CHOOSE_CATEGORY, build_category_keyboard(self._config))

    def _handle_today(self, user_id: int, chat_id: int) -> None:
        summary = self._aggregator.daily_summary()
        text = formatting.daily_summary_message(summary, self._config.categories_of_kind(CategoryKind.DAILY))
        self._send(chat_id, text)

    def _handle_month(self, user_id: int, chat_id: int) -> None:
        summary = self._aggregator.monthly_summary()
        self._send(chat_id, formatting.monthly_summary_message(summary))

    def _send(self, chat_id: int, text: str, keyboard: Optional[Dict[str, Any]] = None) -> None:
        # Delivery failures are logged by the messenger and never undo recorded work.
        self._messenger.send_text(chat_id, text, keyboard)
