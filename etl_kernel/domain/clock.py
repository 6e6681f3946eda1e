"""
Clock -- injectable time source.

Responsibility:
    Job executors and listeners receive a Clock instead of calling
    ``datetime.now()`` directly, so run timestamps and durations are
    deterministic under test.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone


class Clock(ABC):
    """
    Abstract clock interface.

    Guarantees:
        ``now()`` returns a timezone-aware UTC ``datetime``.
    """

    @abstractmethod
    def now(self) -> datetime:
        """Get the current time."""
        ...


class SystemClock(Clock):
    """Production clock that returns actual system time."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Test clock with controlled time.

    Guarantees:
        - ``now()`` returns the same value on repeated calls until
          ``advance()`` or ``set_time()`` is called.
        - With ``step_seconds`` set, every ``now()`` call advances the clock
          by that many seconds after reading it.
    """

    def __init__(
        self,
        fixed_time: datetime | None = None,
        step_seconds: float = 0,
    ):
        self._fixed_time = fixed_time or datetime(
            2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc
        )
        self._advance_seconds = 0.0
        self._step_seconds = step_seconds

    def now(self) -> datetime:
        current = self._fixed_time + timedelta(seconds=self._advance_seconds)
        self._advance_seconds += self._step_seconds
        return current

    def set_time(self, time: datetime) -> None:
        """Set the clock to a specific time."""
        self._fixed_time = time
        self._advance_seconds = 0.0

    def advance(self, seconds: float = 1) -> None:
        """Advance the clock by the specified seconds."""
        self._advance_seconds += seconds
