import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from app.core.errors import ClockResolutionError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LocalDate:
    """A calendar date already resolved in the target timezone."""

    year: int
    month: int
    day: int

    @classmethod
    def from_date(cls, value: date) -> "LocalDate":
        return cls(year=value.year, month=value.month, day=value.day)

    def to_date(self) -> date:
        return date(self.year, self.month, self.day)

    @property
    def date_key(self) -> str:
        return f"{self.year:04d}-{self.month:02d}-{self.day:02d}"

    @property
    def month_key(self) -> str:
        return month_key(self.year, self.month)


def month_key(year: int, month: int) -> str:
    return f"{year:04d}-{month:02d}"


class SystemClock:
    """Wall clock plus timezone conversion backed by the IANA database."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def to_local_calendar_date(self, instant: datetime, timezone_name: str) -> LocalDate:
        if instant.tzinfo is None:
            raise ClockResolutionError("Instant must be timezone-aware")
        try:
            zone = ZoneInfo(timezone_name)
        except (ZoneInfoNotFoundError, ValueError) as e:
            logger.error(f"Cannot resolve timezone {timezone_name!r}: {e}")
            raise ClockResolutionError(f"Unknown timezone: {timezone_name}") from e

        local = instant.astimezone(zone)
        return LocalDate(year=local.year, month=local.month, day=local.day)
