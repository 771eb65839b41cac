"""
Data models for recurring schedules.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List


@dataclass(frozen=True)
class Recurrence:
    """
    A fixed recurrence frequency.

    The parser stores the exact number of nanoseconds; ``frequency`` is
    the same value at ``timedelta`` (microsecond) resolution.
    """
    nanoseconds: int

    def __post_init__(self):
        if self.nanoseconds < 1000:
            raise ValueError(f"Recurrence frequency must be at least 1us, got {self.nanoseconds}ns")

    @property
    def frequency(self) -> timedelta:
        return timedelta(microseconds=self.nanoseconds // 1000)

    def next_occurrence(self, previous: datetime) -> datetime:
        """Return the occurrence following ``previous``."""
        return previous + self.frequency

    def first_after(self, anchor: datetime, now: datetime) -> datetime:
        """Step forward from ``anchor`` until strictly after ``now``."""
        occurrence = anchor
        if occurrence <= now:
            # Skip whole periods at once
            steps = (now - occurrence) // self.frequency
            occurrence += self.frequency * steps
        while occurrence <= now:
            occurrence = self.next_occurrence(occurrence)
        return occurrence

    def occurrences(self, anchor: datetime, now: datetime, count: int) -> List[datetime]:
        """List the next ``count`` occurrences after ``now``."""
        result = []
        occurrence = self.first_after(anchor, now)
        for _ in range(count):
            result.append(occurrence)
            occurrence = self.next_occurrence(occurrence)
        return result

    def __str__(self):
        return f"every {self.frequency}"


@dataclass(frozen=True)
class Event:
    """A tick observed at or after a due occurrence."""
    timestamp: datetime
