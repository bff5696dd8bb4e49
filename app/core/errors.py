"""
Error taxonomy shared by the budget engine, the conversation flow and the
storage / messaging adapters.
"""


class BudgetBotError(Exception):
    """Base class for every error raised by the application."""


class ConfigurationError(BudgetBotError):
    """The category / budget configuration could not be loaded."""


class ValidationFailure(BudgetBotError):
    """Client input rejected before any storage mutation."""


class UnknownCategory(ValidationFailure):
    def __init__(self, name: str):
        super().__init__(f"Unknown category: {name}")
        self.name = name


class InvalidDate(ValidationFailure):
    def __init__(self, value: str):
        super().__init__("Invalid date format, use YYYY-MM-DD")
        self.value = value


class InvalidMonth(ValidationFailure):
    def __init__(self, year, month):
        super().__init__("Invalid year or month")
        self.year = year
        self.month = month


class ClockResolutionError(BudgetBotError):
    """The current local calendar date could not be determined."""


class StorageError(BudgetBotError):
    """Raised by the storage adapter when a read or write fails."""


class DeliveryError(BudgetBotError):
    """Raised by the messaging adapter when an outbound message fails."""
