from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional, Sequence

BUCKET_DATE = "date"
BUCKET_MONTH = "month"


class Storage(ABC):
    """
    Persistence collaborator for expenses and per-user conversation state.

    Implementations raise ``StorageError`` on any backend failure; they never
    return partial results.
    """

    @abstractmethod
    def insert_expense(
        self,
        user_id: int,
        category: str,
        amount: Decimal,
        recorded_at: datetime,
        local_date: str,
        local_month: str,
    ) -> str:
        """Append an expense and return its generated id."""

    @abstractmethod
    def sum_by_category(self, bucket_key: str, bucket_kind: str, categories: Sequence[str]) -> List[Dict]:
        """
        Return ``[{"category": ..., "total": Decimal}]`` for expenses whose
        local date (``bucket_kind == "date"``) or local month (``"month"``)
        equals ``bucket_key``. Categories without rows are omitted.
        """

    @abstractmethod
    def get_user_state(self, user_id: int) -> Optional[Dict]:
        """Return ``{"step": ..., "category": ...}`` or None."""

    @abstractmethod
    def set_user_state(self, user_id: int, step: str, category: Optional[str]) -> None:
        ...

    @abstractmethod
    def clear_user_state(self, user_id: int) -> None:
        ...
