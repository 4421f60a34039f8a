"""
Time provider abstraction for deterministic testing

"Today" decides which month is active, which subscriptions are due soon
and what date a cancelled subscription ends on, so it is injectable.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Protocol


class TimeProvider(Protocol):
    """Protocol for time providers - allows deterministic testing"""

    def now(self) -> datetime:
        """Return current UTC datetime"""
        ...


class RealTimeProvider:
    """Production time provider using system clock"""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class TestTimeProvider:
    """
    Controllable time provider for deterministic tests

    Allows tests to freeze time and advance it day by day.
    """

    def __init__(self, initial_time: datetime | None = None) -> None:
        """
        Initialize with optional fixed time

        Args:
            initial_time: Starting time (defaults to Unix epoch)
        """
        self._current_time = initial_time or datetime(1970, 1, 1, tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self._current_time

    def set_time(self, dt: datetime) -> None:
        self._current_time = dt

    def advance_days(self, days: int) -> None:
        self._current_time += timedelta(days=days)


def today(provider: TimeProvider) -> date:
    """Calendar date of the provider's current instant"""
    return provider.now().date()


default_time_provider: TimeProvider = RealTimeProvider()
