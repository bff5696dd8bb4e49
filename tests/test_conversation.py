from decimal import Decimal

import pytest

from app.core.errors import ClockResolutionError, StorageError
from app.models.state import (
    AwaitingAmount,
    ChoosingCategory,
    Idle,
    state_from_row,
    state_to_row,
)
from app.utils import formatting
from app.utils.conversation import ConversationService, next_step, parse_amount

USER = 111
CHAT = 999


@pytest.mark.parametrize("text,expected", [
    ("12.50", Decimal("12.50")),
    ("-5", Decimal("-5")),
    ("+3", Decimal("3")),
    (" 7 ", Decimal("7")),
    (".5", Decimal("0.5")),
    ("1e2", Decimal("100")),
])
def test_parse_amount_valid(text, expected):
    assert parse_amount(text) == expected


@pytest.mark.parametrize("text", ["abc", "", "NaN", "nan", "Infinity", "-inf", "12,50", "1_000", "0x10", "12.5.1",
    "1e200", "1e-200", "1234567890123456789012345678901234567890", "1.0000000000000000000000000000000000000001"])
def test_parse_amount_invalid(text):
    assert parse_amount(text) is None


def test_state_row_round_trip():
    assert state_from_row(None) == Idle()
    assert state_to_row(Idle()) is None
    assert state_from_row(state_to_row(ChoosingCategory())) == ChoosingCategory()
    assert state_from_row(state_to_row(AwaitingAmount("Meals"))) == AwaitingAmount("Meals")
    # a step without its category cannot become AwaitingAmount
    assert state_from_row({"step": "await_amount", "category": None}) == Idle()


def test_next_step_transitions(budget_config):
    step = next_step(ChoosingCategory(), "Meals", budget_config)
    assert step.state == AwaitingAmount("Meals")

    step = next_step(ChoosingCategory(), "meals", budget_config)
    assert step.state == ChoosingCategory()
    assert step.show_keyboard

    step = next_step(AwaitingAmount("Meals"), "abc", budget_config)
    assert step.state == AwaitingAmount("Meals")
    assert not step.records_expense

    step = next_step(AwaitingAmount("Meals"), "12.50", budget_config)
    assert step.state == Idle()
    assert step.record_category == "Meals"
    assert step.record_amount == Decimal("12.50")

    step = next_step(Idle(), "hello", budget_config)
    assert step.state == Idle()
    assert step.reply == formatting.USAGE_HINT


def test_next_step_is_deterministic(budget_config):
    assert next_step(ChoosingCategory(), "Meals", budget_config) == next_step(ChoosingCategory(), "Meals", budget_config)


def test_full_add_flow(conversation, storage, messenger, make_update):
    conversation.handle_update(make_update("/add"))
    assert storage.states[USER] == {"step": "choose_category", "category": None}
    assert messenger.last_text == formatting.CHOOSE_CATEGORY
    assert messenger.sent[-1]["keyboard"]["keyboard"][0] == ["Meals", "Drinks", "Groceries"]

    conversation.handle_update(make_update("Pizza"))
    assert storage.states[USER]["step"] == "choose_category"
    assert messenger.last_text == formatting.CHOOSE_CATEGORY_AGAIN

    conversation.handle_update(make_update("Meals"))
    assert storage.states[USER] == {"step": "await_amount", "category": "Meals"}
    assert "*Meals*" in messenger.last_text

    conversation.handle_update(make_update("abc"))
    assert storage.states[USER] == {"step": "await_amount", "category": "Meals"}
    assert storage.expenses == []
    assert messenger.last_text == formatting.INVALID_AMOUNT

    conversation.handle_update(make_update("12.50"))
    assert USER not in storage.states
    assert len(storage.expenses) == 1
    expense = storage.expenses[0]
    assert expense["category"] == "Meals"
    assert expense["amount"] == Decimal("12.50")
    assert expense["local_date"] == "2025-03-15"
    assert expense["local_month"] == "2025-03"
    assert expense["user_id"] == USER
    assert messenger.last_text.startswith("Recorded *12.50* in category *Meals*")


def test_negative_amount_is_recorded(conversation, storage, make_update):
    storage.states[USER] = {"step": "await_amount", "category": "Groceries"}
    conversation.handle_update(make_update("-5"))
    assert storage.expenses[0]["amount"] == Decimal("-5")


def test_command_resets_in_progress_entry(conversation, storage, messenger, make_update):
    storage.states[USER] = {"step": "await_amount", "category": "Meals"}
    conversation.handle_update(make_update("/today"))
    assert USER not in storage.states
    assert storage.expenses == []
    assert "Today's Daily Budget" in messenger.last_text


def test_unknown_command(conversation, storage, messenger, make_update):
    storage.states[USER] = {"step": "choose_category", "category": None}
    conversation.handle_update(make_update("/delete everything"))
    assert USER not in storage.states
    assert messenger.last_text == formatting.UNKNOWN_COMMAND


def test_command_with_bot_suffix(conversation, storage, make_update):
    conversation.handle_update(make_update("/add@budget_bot"))
    assert storage.states[USER]["step"] == "choose_category"


def test_idle_free_text_gets_hint(conversation, storage, messenger, make_update):
    conversation.handle_update(make_update("hello"))
    assert storage.states == {}
    assert messenger.last_text == formatting.USAGE_HINT


def test_start_sends_keyboard(conversation, messenger, make_update):
    conversation.handle_update(make_update("/start"))
    assert "budgetbot" in messenger.last_text
    assert messenger.sent[-1]["keyboard"]["one_time_keyboard"] is True


def test_month_command(conversation, storage, messenger, make_update):
    storage.states[USER] = {"step": "await_amount", "category": "Meals"}
    conversation.handle_update(make_update("12"))
    conversation.handle_update(make_update("/month"))
    text = messenger.last_text
    assert "`2025-03`" in text
    assert "Spent (daily categories):* 12.00" in text
    assert "• Groceries: 0.00 / 300.00" in text


def test_non_members_are_silently_dropped(conversation, storage, messenger, make_update):
    conversation.handle_update(make_update("/add", user_id=222))
    assert storage.states == {}
    assert messenger.sent == []


def test_updates_without_message_or_sender_are_ignored(conversation, messenger):
    conversation.handle_update({"update_id": 5})
    conversation.handle_update({"update_id": 6, "message": {"chat": {"id": CHAT}, "text": "/add"}})
    assert messenger.sent == []


def test_edited_message_is_handled(conversation, storage):
    conversation.handle_update({
        "update_id": 7,
        "edited_message": {"from": {"id": USER}, "chat": {"id": CHAT}, "text": "/add"},
    })
    assert storage.states[USER]["step"] == "choose_category"


def test_duplicate_delivery_repeats_the_insert(conversation, storage, make_update):
    storage.states[USER] = {"step": "await_amount", "category": "Meals"}
    conversation.handle_update(make_update("10"))
    # the replayed message arrives after the state was reset, so it is only a hint
    conversation.handle_update(make_update("10"))
    assert len(storage.expenses) == 1

    storage.states[USER] = {"step": "await_amount", "category": "Meals"}
    conversation.handle_update(make_update("10"))
    assert len(storage.expenses) == 2


def test_failed_insert_keeps_state_and_sends_no_confirmation(conversation, storage, messenger, make_update):
    storage.states[USER] = {"step": "await_amount", "category": "Meals"}
    storage.fail_writes = True

    with pytest.raises(StorageError):
        conversation.handle_update(make_update("12.50"))

    assert storage.states[USER] == {"step": "await_amount", "category": "Meals"}
    assert storage.expenses == []
    assert not any(m["text"].startswith("Recorded") for m in messenger.sent)
    assert messenger.last_text == formatting.GENERIC_FAILURE


def test_failed_summary_read_aborts(conversation, storage, messenger, make_update):
    storage.fail_reads = True
    with pytest.raises(StorageError):
        conversation.handle_update(make_update("/today"))
    assert messenger.last_text == formatting.GENERIC_FAILURE


def test_oversized_amount_is_reprompted(conversation, storage, messenger, make_update):
    storage.states[USER] = {"step": "await_amount", "category": "Meals"}

    for text in ("1e200", "1.0000000000000000000000000000000000000001"):
        conversation.handle_update(make_update(text))
        assert messenger.last_text == formatting.INVALID_AMOUNT

    assert storage.expenses == []
    assert storage.states[USER] == {"step": "await_amount", "category": "Meals"}


def test_removed_category_is_not_recorded(budget_config):
    step = next_step(AwaitingAmount("Yachts"), "12.50", budget_config)
    assert step.state == ChoosingCategory()
    assert step.show_keyboard
    assert not step.records_expense


def test_stale_category_in_saved_state_asks_again(conversation, storage, messenger, make_update):
    storage.states[USER] = {"step": "await_amount", "category": "Yachts"}

    conversation.handle_update(make_update("12.50"))

    assert storage.expenses == []
    assert storage.states[USER] == {"step": "choose_category", "category": None}
    assert messenger.last_text == formatting.CHOOSE_CATEGORY_AGAIN
    assert messenger.sent[-1]["keyboard"] is not None


def test_failed_category_state_write_sends_no_amount_prompt(conversation, storage, messenger, make_update):
    storage.states[USER] = {"step": "choose_category", "category": None}
    storage.fail_state_writes = True

    with pytest.raises(StorageError):
        conversation.handle_update(make_update("Meals"))

    assert storage.states[USER] == {"step": "choose_category", "category": None}
    assert not any(m["text"] == formatting.amount_prompt("Meals") for m in messenger.sent)
    assert messenger.last_text == formatting.GENERIC_FAILURE


def test_failed_state_clear_after_insert_sends_no_confirmation(conversation, storage, messenger, make_update):
    storage.states[USER] = {"step": "await_amount", "category": "Meals"}
    storage.fail_state_writes = True

    with pytest.raises(StorageError):
        conversation.handle_update(make_update("12.50"))

    # the insert landed before the state write failed
    assert len(storage.expenses) == 1
    assert storage.states[USER] == {"step": "await_amount", "category": "Meals"}
    assert not any(m["text"].startswith("Recorded") for m in messenger.sent)
    assert messenger.last_text == formatting.GENERIC_FAILURE


def test_unresolvable_timezone_aborts_without_recording(storage, messenger, aggregator, budget_config, clock, make_update):
    conversation = ConversationService(
        storage=storage,
        messenger=messenger,
        aggregator=aggregator,
        config=budget_config,
        clock=clock,
        timezone="Mars/Olympus_Mons",
        allowed_user_ids={USER},
    )
    storage.states[USER] = {"step": "await_amount", "category": "Meals"}

    with pytest.raises(ClockResolutionError):
        conversation.handle_update(make_update("12.50"))

    assert storage.expenses == []
    assert storage.states[USER] == {"step": "await_amount", "category": "Meals"}
    assert messenger.last_text == formatting.GENERIC_FAILURE
