from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from app.core.errors import StorageError
from app.db.base import BUCKET_DATE, Storage
from app.utils.aggregator import BudgetAggregator
from app.utils.clock import SystemClock
from app.utils.conversation import ConversationService
from app.utils.registry import build_budget_config

TIMEZONE = "Asia/Singapore"
ALLOWED_USER = 111
CHAT_ID = 999


class InMemoryStorage(Storage):
    def __init__(self):
        self.expenses = []
        self.states = {}
        self.fail_writes = False
        self.fail_state_writes = False
        self.fail_reads = False
        self.sum_calls = 0

    def insert_expense(self, user_id, category, amount, recorded_at, local_date, local_month):
        if self.fail_writes:
            raise StorageError("write failed")
        expense_id = uuid4().hex
        self.expenses.append({
            "expense_id": expense_id,
            "recorded_at_utc": recorded_at.isoformat(),
            "local_date": local_date,
            "local_month": local_month,
            "user_id": user_id,
            "category": category,
            "amount": Decimal(amount),
        })
        return expense_id

    def sum_by_category(self, bucket_key, bucket_kind, categories):
        if self.fail_reads:
            raise StorageError("read failed")
        self.sum_calls += 1
        field = "local_date" if bucket_kind == BUCKET_DATE else "local_month"
        totals = {}
        for item in self.expenses:
            if item[field] == bucket_key and item["category"] in categories:
                totals[item["category"]] = totals.get(item["category"], Decimal("0")) + item["amount"]
        return [{"category": name, "total": total} for name, total in totals.items()]

    def get_user_state(self, user_id):
        if self.fail_reads:
            raise StorageError("read failed")
        row = self.states.get(user_id)
        return dict(row) if row else None

    def set_user_state(self, user_id, step, category):
        if self.fail_writes or self.fail_state_writes:
            raise StorageError("write failed")
        self.states[user_id] = {"step": step, "category": category}

    def clear_user_state(self, user_id):
        if self.fail_writes or self.fail_state_writes:
            raise StorageError("write failed")
        self.states.pop(user_id, None)


class RecordingMessenger:
    def __init__(self):
        self.sent = []

    def send_text(self, chat_id, text, keyboard=None):
        self.sent.append({"chat_id": chat_id, "text": text, "keyboard": keyboard})
        return True

    @property
    def last_text(self):
        return self.sent[-1]["text"] if self.sent else None


class FixedClock(SystemClock):
    def __init__(self, instant):
        self.instant = instant

    def now(self):
        return self.instant


@pytest.fixture
def budget_config():
    return build_budget_config({
        "categories": [
            {"name": "Meals", "kind": "daily"},
            {"name": "Drinks", "kind": "daily"},
            {"name": "Groceries", "kind": "monthly"},
            {"name": "Utilities", "kind": "monthly"},
            {"name": "Other", "kind": "other"},
        ],
        "weekday_daily_budget": 50,
        "weekend_daily_budget": 80,
        "monthly_budgets": {"Groceries": 300, "Utilities": 150},
    })


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def messenger():
    return RecordingMessenger()


@pytest.fixture
def clock():
    # 2025-03-14 20:00 UTC is Saturday 2025-03-15 04:00 in Singapore
    return FixedClock(datetime(2025, 3, 14, 20, 0, tzinfo=timezone.utc))


@pytest.fixture
def aggregator(storage, budget_config, clock):
    return BudgetAggregator(storage=storage, config=budget_config, clock=clock, timezone=TIMEZONE)


@pytest.fixture
def conversation(storage, messenger, aggregator, budget_config, clock):
    return ConversationService(
        storage=storage,
        messenger=messenger,
        aggregator=aggregator,
        config=budget_config,
        clock=clock,
        timezone=TIMEZONE,
        allowed_user_ids={ALLOWED_USER},
    )


def make_update(text, user_id=ALLOWED_USER, chat_id=CHAT_ID):
    return {
        "update_id": 1,
        "message": {
            "message_id": 1,
            "from": {"id": user_id},
            "chat": {"id": chat_id},
            "text": text,
        },
    }


@pytest.fixture(name="make_update")
def make_update_fixture():
    return make_update
