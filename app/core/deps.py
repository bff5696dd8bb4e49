"""
Application-wide collaborators, built lazily once per process and injected
into routers with ``Depends`` (tests swap them via ``app.dependency_overrides``).
"""
from functools import lru_cache

from fastapi import Depends

from app.core.config import settings
from app.db.base import Storage
from app.db.dynamo import DynamoStorage
from app.utils.aggregator import BudgetAggregator
from app.utils.clock import SystemClock
from app.utils.conversation import ConversationService
from app.utils.registry import BudgetConfig, load_budget_config
from app.utils.telegram import TelegramMessenger


@lru_cache
def get_budget_config() -> BudgetConfig:
    return load_budget_config(settings.BUDGET_CONFIG_JSON)


@lru_cache
def get_clock() -> SystemClock:
    return SystemClock()


@lru_cache
def get_storage() -> Storage:
    return DynamoStorage.from_settings()


@lru_cache
def get_messenger() -> TelegramMessenger:
    return TelegramMessenger(
        token=settings.TELEGRAM_BOT_TOKEN,
        api_base=settings.TELEGRAM_API_BASE,
        timeout=settings.TELEGRAM_TIMEOUT,
    )


def get_aggregator(
    storage: Storage = Depends(get_storage),
    config: BudgetConfig = Depends(get_budget_config),
    clock: SystemClock = Depends(get_clock),
) -> BudgetAggregator:
    return BudgetAggregator(storage=storage, config=config, clock=clock, timezone=settings.TIMEZONE)


def get_conversation(
    storage: Storage = Depends(get_storage),
    messenger: TelegramMessenger = Depends(get_messenger),
    aggregator: BudgetAggregator = Depends(get_aggregator),
    config: BudgetConfig = Depends(get_budget_config),
    clock: SystemClock = Depends(get_clock),
) -> ConversationService:
    return ConversationService(
        storage=storage,
        messenger=messenger,
        aggregator=aggregator,
        config=config,
        clock=clock,
        timezone=settings.TIMEZONE,
        allowed_user_ids=settings.allowed_user_ids,
    )
