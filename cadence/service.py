"""
Scheduler facade.

A Scheduler holds the anchor time from which occurrences are counted and
turns expressions plus handlers into independently running schedules:

    scheduler = cadence.new(datetime.now())
    cancel = scheduler.schedule("@every 10s", handle_event)
    ...
    cancel()

Each call to schedule() starts its own loop; schedules created from the
same Scheduler share nothing but the anchor.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from cadence.config import SchedulerConfig
from cadence.expression import parse
from cadence.loop import ErrorCallback, Handler, ScheduleHandle, ScheduleLoop
from cadence.models import Recurrence

logger = logging.getLogger(__name__)


def _as_utc(value: datetime) -> datetime:
    """Convert to aware UTC; naive values are taken as local time."""
    return value.astimezone(timezone.utc)


class Scheduler:
    """
    Schedules handlers against a fixed start time.

    The start time is immutable after construction and may be shared by
    any number of schedules.
    """

    def __init__(self, start: datetime, config: Optional[SchedulerConfig] = None):
        """
        Initialize scheduler.

        Args:
            start: Anchor for the first occurrence of every schedule
            config: Scheduler configuration (loaded from default locations if None)
        """
        self._start = _as_utc(start)
        self.config = config or SchedulerConfig()

    @property
    def start(self) -> datetime:
        return self._start

    def parse(self, expr: str) -> Recurrence:
        """Parse an expression using the configured matching mode."""
        return parse(expr, strict=self.config.strict_expressions)

    def schedule(
        self,
        expr: str,
        handler: Handler,
        on_error: Optional[ErrorCallback] = None,
        name: Optional[str] = None
    ) -> ScheduleHandle:
        """
        Run a handler at each occurrence of an expression.

        Args:
            expr: Interval expression ("@hourly", "@every 1m30s", ...)
            handler: Called with an Event for each occurrence; raising stops the schedule
            on_error: Optional callable notified with the handler's exception
            name: Optional name used in log messages

        Returns:
            Callable handle that cancels the schedule

        Raises:
            InvalidExpressionError: If the expression is not recognised
            DurationParseError: If the @every duration cannot be represented
            ValueError: If the scheduler configuration is invalid
        """
        errors = self.config.validate()
        if errors:
            raise ValueError(f"Invalid configuration: {'; '.join(errors)}")

        recurrence = self.parse(expr)

        loop = ScheduleLoop(
            recurrence,
            self._start,
            handler,
            on_error=on_error,
            misfire_grace_time=self.config.misfire_grace_time,
            name=name
        )
        logger.info(f"Scheduled '{expr}' as {loop.name}")

        return ScheduleHandle(loop)

    def preview(self, expr: str, count: int = 5, now: Optional[datetime] = None) -> List[datetime]:
        """
        List upcoming occurrences of an expression without scheduling it.

        Args:
            expr: Interval expression
            count: Number of occurrences to return
            now: Reference time (defaults to the current time)

        Returns:
            Aware UTC datetimes strictly after ``now``
        """
        recurrence = self.parse(expr)
        reference = _as_utc(now) if now else datetime.now(timezone.utc)
        return recurrence.occurrences(self._start, reference, count)

    def __repr__(self):
        return f"Scheduler(start={self._start.isoformat()})"


def new(start: datetime, config: Optional[SchedulerConfig] = None) -> Scheduler:
    """Create a Scheduler anchored at ``start``."""
    return Scheduler(start, config=config)
