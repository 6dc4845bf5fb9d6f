"""Clock port so hold expiry and token expiry can be tested deterministically."""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone

from themepark_booking.domain.dates import as_utc


class Clock(ABC):
    @abstractmethod
    def now(self) -> datetime:
        """Current time, timezone-aware UTC."""
        raise NotImplementedError

    def today(self) -> datetime:
        return self.now().replace(hour=0, minute=0, second=0, microsecond=0)


class SystemClock(Clock):
    """Real wall clock."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FakeClock(Clock):
    """
    Fixed clock for tests.

    Naive datetimes passed in are assumed to be UTC.
    """

    def __init__(self, fixed_time: datetime | None = None):
        self._fixed_time = as_utc(fixed_time or datetime.now(timezone.utc))

    def now(self) -> datetime:
        return self._fixed_time

    def set_time(self, new_time: datetime) -> None:
        self._fixed_time = as_utc(new_time)

    def advance(self, seconds: int = 0, minutes: int = 0, hours: int = 0, days: int = 0) -> None:
        delta = timedelta(seconds=seconds, minutes=minutes, hours=hours, days=days)
        self._fixed_time = self._fixed_time + delta
