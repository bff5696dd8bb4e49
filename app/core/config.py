from typing import Optional, Set

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    # App settings
    PROJECT_NAME: str = "BudgetBot"
    API_PREFIX: str = "/api"
    DEBUG: bool = Field(default=False)
    LOG_LEVEL: str = Field(default="INFO")

    # DynamoDB
    DYNAMO_REGION: str = Field(default="ap-southeast-1")
    DYNAMO_EXPENSES_TABLE: str = Field(default="budgetbot-expenses")
    DYNAMO_USER_STATE_TABLE: str = Field(default="budgetbot-user-state")
    DYNAMO_ENDPOINT_URL: Optional[str] = Field(default=None)  # local DynamoDB

    # Telegram
    TELEGRAM_BOT_TOKEN: str = Field(default="")
    TELEGRAM_API_BASE: str = "https://api.telegram.org"
    TELEGRAM_WEBHOOK_SECRET: str = Field(default="")
    TELEGRAM_HEADER_SECRET: str = Field(default="")
    TELEGRAM_TIMEOUT: float = 10.0
    ALLOWED_USER_IDS: str = Field(default="")  # comma-separated numeric IDs

    # Budget model
    TIMEZONE: str = "Asia/Singapore"
    BUDGET_CONFIG_JSON: str = Field(default="config/budget.json")

    @property
    def allowed_user_ids(self) -> Set[int]:
        return parse_allowed_user_ids(self.ALLOWED_USER_IDS)


def parse_allowed_user_ids(raw: str) -> Set[int]:
    """Parse a comma-separated allow-list, skipping blanks and non-numeric entries."""
    ids = set()
    for part in (raw or "").split(","):
        part = part.strip()
        if not part:
            continue
        try:
            ids.add(int(part))
        except ValueError:
            continue
    return ids


settings = Settings()
