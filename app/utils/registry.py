from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple

from app.core.errors import ConfigurationError, UnknownCategory

logger = logging.getLogger(__name__)


class CategoryKind(str, Enum):
    DAILY = "daily"      # shares the weekday/weekend daily pool
    MONTHLY = "monthly"  # has its own fixed monthly cap
    OTHER = "other"      # uncapped, informational only


@dataclass(frozen=True)
class Category:
    name: str
    kind: CategoryKind


DEFAULT_CATEGORIES: Tuple[Tuple[str, str], ...] = (
    ("Meals", "daily"),
    ("Drinks", "daily"),
    ("Groceries", "monthly"),
    ("Utilities", "monthly"),
    ("Transport", "monthly"),
    ("Declan", "monthly"),
    ("Myat", "monthly"),
    ("Other", "other"),
)
DEFAULT_WEEKDAY_DAILY_BUDGET = "50.00"
DEFAULT_WEEKEND_DAILY_BUDGET = "80.00"
DEFAULT_MONTHLY_BUDGETS: Dict[str, str] = {
    "Groceries": "300.00",
    "Utilities": "150.00",
    "Transport": "218.00",
    "Declan": "100.00",
    "Myat": "200.00",
}


@dataclass(frozen=True)
class BudgetConfig:
    """
    Process-wide category registry and budget table.

    Built once at startup and shared by reference; the category tuple keeps
    declaration order, which is also the order used for summary breakdowns
    and the category keyboard.
    """

    categories: Tuple[Category, ...]
    weekday_daily_budget: Decimal
    weekend_daily_budget: Decimal
    monthly_budget_by_category: Mapping[str, Decimal] = field(default_factory=dict)

    def __post_init__(self):
        names = [c.name for c in self.categories]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ConfigurationError(f"Duplicate category names: {', '.join(duplicates)}")
        object.__setattr__(self, "categories", tuple(self.categories))
        object.__setattr__(
            self,
            "monthly_budget_by_category",
            MappingProxyType(dict(self.monthly_budget_by_category)),
        )
        object.__setattr__(self, "_by_name", MappingProxyType({c.name: c for c in self.categories}))

    def kind_of(self, name: str) -> CategoryKind:
        category = self._by_name.get(name)
        if category is None:
            raise UnknownCategory(name)
        return category.kind

    def has_category(self, name: str) -> bool:
        return name in self._by_name

    def categories_of_kind(self, kind: CategoryKind) -> List[str]:
        return [c.name for c in self.categories if c.kind == kind]

    def all_category_names(self) -> List[str]:
        return [c.name for c in self.categories]

    def keyboard_rows(self, width: int = 3) -> List[List[str]]:
        names = self.all_category_names()
        return [names[i:i + width] for i in range(0, len(names), width)]

    def monthly_budget_for(self, name: str) -> Decimal:
        return self.monthly_budget_by_category.get(name, Decimal("0"))

    def fixed_monthly_budgets(self) -> Dict[str, Decimal]:
        """Budget per monthly-kind category, in declaration order; missing entries are 0."""
        return {name: self.monthly_budget_for(name) for name in self.categories_of_kind(CategoryKind.MONTHLY)}

    def fixed_budget_total(self) -> Decimal:
        return sum(self.fixed_monthly_budgets().values(), Decimal("0"))

    def budget_mismatches(self) -> Tuple[List[str], List[str]]:
        """Return ``(monthly categories without a budget, budgets for non-monthly names)``."""
        monthly = self.categories_of_kind(CategoryKind.MONTHLY)
        missing = [name for name in monthly if name not in self.monthly_budget_by_category]
        extra = [name for name in self.monthly_budget_by_category if name not in monthly]
        return missing, extra


def _to_decimal(value: Any, label: str) -> Decimal:
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise ConfigurationError(f"{label} is not a number: {value!r}") from e
    if not amount.is_finite():
        raise ConfigurationError(f"{label} must be finite: {value!r}")
    return amount


def build_budget_config(data: Mapping[str, Any]) -> BudgetConfig:
    """
    Build a BudgetConfig from a plain mapping shaped like ``config/budget.json``::

        {
          "categories": [{"name": "Meals", "kind": "daily"}, ...],
          "weekday_daily_budget": 50,
          "weekend_daily_budget": 80,
          "monthly_budgets": {"Groceries": 300}
        }
    """
    raw_categories = data.get("categories")
    if not raw_categories:
        raise ConfigurationError("Budget config must declare at least one category")

    categories = []
    for entry in raw_categories:
        try:
            name = entry["name"]
            kind = CategoryKind(entry["kind"])
        except (KeyError, TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid category entry: {entry!r}") from e
        categories.append(Category(name=name, kind=kind))

    monthly = {
        name: _to_decimal(amount, f"Monthly budget for {name}")
        for name, amount in (data.get("monthly_budgets") or {}).items()
    }

    config = BudgetConfig(
        categories=tuple(categories),
        weekday_daily_budget=_to_decimal(data.get("weekday_daily_budget"), "weekday_daily_budget"),
        weekend_daily_budget=_to_decimal(data.get("weekend_daily_budget"), "weekend_daily_budget"),
        monthly_budget_by_category=monthly,
    )

    missing, extra = config.budget_mismatches()
    if missing:
        logger.warning(f"Monthly categories without a budget (treated as 0): {', '.join(missing)}")
    if extra:
        logger.warning(f"Budgets configured for non-monthly categories (ignored): {', '.join(extra)}")
    return config


def default_budget_config() -> BudgetConfig:
    return build_budget_config({
        "categories": [{"name": name, "kind": kind} for name, kind in DEFAULT_CATEGORIES],
        "weekday_daily_budget": DEFAULT_WEEKDAY_DAILY_BUDGET,
        "weekend_daily_budget": DEFAULT_WEEKEND_DAILY_BUDGET,
        "monthly_budgets": DEFAULT_MONTHLY_BUDGETS,
    })


def load_budget_config(path: Optional[str | Path] = None) -> BudgetConfig:
    """Load the budget config from JSON, falling back to the built-in defaults."""
    if not path:
        return default_budget_config()

    config_file = Path(path)
    if not config_file.exists():
        logger.info(f"Budget config {config_file} not found, using built-in defaults")
        return default_budget_config()

    try:
        with config_file.open() as fp:
            data = json.load(fp, parse_float=Decimal)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Budget config {config_file} is not valid JSON: {e}") from e
    return build_budget_config(data)
