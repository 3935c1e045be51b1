from datetime import (
    date,
    datetime,
    timedelta,
    timezone,
)
from time import monotonic


class Clock:
    """Source of the current time, injected into all services which need to know "now".

    Timestamps are naive UTC datetimes, as stored in the internal database.
    """

    def now(self) -> datetime:
        """Current UTC time without timezone information."""
        return datetime.now(timezone.utc).replace(tzinfo=None)

    def today(self) -> date:
        """Current UTC date, used as reference date of forecasts."""
        return self.now().date()

    def monotonic(self) -> float:
        """Monotonic seconds, only meaningful as difference between two calls."""
        return monotonic()


class FixedClock(Clock):
    """Clock which stands still unless explicitly advanced, for deterministic tests.

    Args:
        now: Time returned by :meth:`now`.
    """

    def __init__(self, now: datetime) -> None:
        self._now = now
        self._monotonic = 0.0

    def now(self) -> datetime:
        """Fixed time, see :meth:`advance`."""
        return self._now

    def monotonic(self) -> float:
        """Seconds advanced since creation."""
        return self._monotonic

    def advance(self, seconds: float) -> None:
        """Move the clock forward by the given number of seconds."""
        self._now += timedelta(seconds=seconds)
        self._monotonic += seconds
