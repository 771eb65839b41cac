"""
Scheduling loop for a single recurring handler.

Each loop owns a private APScheduler BackgroundScheduler with one worker
thread and a single interval job whose period equals the recurrence
frequency. Every tick is compared against the tracked occurrence; the
handler runs only when the tick has reached it.

Policies:
- Handler invocations of one loop never overlap (max_instances=1).
- A tick that arrives while the handler is still running is skipped,
  not queued (coalesce=True).
- A handler that raises stops the loop permanently. The exception is
  recorded on the loop and passed to on_error, never re-raised.
- Stopping is a single guarded transition; cancel and handler failure
  may race and only the first one tears the timer down.
"""

import itertools
import logging
import threading
from datetime import datetime, timezone
from typing import Callable, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.events import EVENT_JOB_MISSED, EVENT_JOB_MAX_INSTANCES

from cadence.models import Event, Recurrence

logger = logging.getLogger(__name__)

Handler = Callable[[Event], None]
ErrorCallback = Callable[[BaseException], None]

STATE_ACTIVE = 'active'
STATE_STOPPED = 'stopped'

REASON_CANCELLED = 'cancelled'
REASON_FAILED = 'failed'

_loop_ids = itertools.count(1)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ScheduleLoop:
    """
    Drives one handler from a periodic timer until stopped.

    The loop starts running as soon as it is constructed.
    """

    def __init__(
        self,
        recurrence: Recurrence,
        start: datetime,
        handler: Handler,
        on_error: Optional[ErrorCallback] = None,
        misfire_grace_time: Optional[int] = None,
        name: Optional[str] = None
    ):
        """
        Initialize and start the loop.

        Args:
            recurrence: Parsed recurrence frequency
            start: Aware anchor from which occurrences are counted
            handler: Callable invoked with an Event for each due tick
            on_error: Optional callable notified when the handler raises
            misfire_grace_time: Seconds a late tick may still run (None = always)
            name: Name used for the timer job and in log messages
        """
        self.recurrence = recurrence
        self.handler = handler
        self.on_error = on_error
        self.name = name or f"schedule-{next(_loop_ids)}"

        self.invocations = 0
        self.reason: Optional[str] = None
        self.error: Optional[BaseException] = None

        self._state = STATE_ACTIVE
        self._lock = threading.Lock()
        self._stopped = threading.Event()

        now = _utcnow()
        self.next_occurrence = recurrence.first_after(start, now)
        self._first_tick = now + recurrence.frequency

        self.scheduler = BackgroundScheduler(
            executors={'default': ThreadPoolExecutor(1)},
            job_defaults={
                'coalesce': True,
                'max_instances': 1,
                'misfire_grace_time': misfire_grace_time
            },
            timezone=timezone.utc,
            daemon=True
        )
        self._setup_event_listeners()
        self.scheduler.add_job(
            self._on_tick,
            'interval',
            seconds=recurrence.frequency.total_seconds(),
            start_date=self._first_tick,
            id=self.name,
            name=self.name
        )
        self.scheduler.start()

        logger.info(
            f"[{self.name}] Started {recurrence}, "
            f"first occurrence at {self.next_occurrence.isoformat()}"
        )

    def _setup_event_listeners(self):
        """Log ticks the timer could not deliver."""

        def tick_skipped_listener(event):
            logger.warning(f"[{self.name}] Tick skipped, handler still running")

        def tick_missed_listener(event):
            logger.warning(f"[{self.name}] Tick missed its run time")

        self.scheduler.add_listener(tick_skipped_listener, EVENT_JOB_MAX_INSTANCES)
        self.scheduler.add_listener(tick_missed_listener, EVENT_JOB_MISSED)

    @property
    def active(self) -> bool:
        return self._state == STATE_ACTIVE

    def _tick_time(self, observed: datetime) -> datetime:
        """Return the timer fire time of the latest tick at or before ``observed``."""
        frequency = self.recurrence.frequency
        return self._first_tick + frequency * ((observed - self._first_tick) // frequency)

    def _on_tick(self):
        if not self.active:
            return

        timestamp = self._tick_time(_utcnow())
        if timestamp < self.next_occurrence:
            logger.debug(
                f"[{self.name}] Tick at {timestamp.isoformat()} precedes "
                f"occurrence {self.next_occurrence.isoformat()}"
            )
            return

        self.invocations += 1
        logger.debug(f"[{self.name}] Dispatching event #{self.invocations} at {timestamp.isoformat()}")

        try:
            self.handler(Event(timestamp))
        except BaseException as e:
            logger.error(f"[{self.name}] Handler raised exception: {e}", exc_info=True)
            self._stop(REASON_FAILED, error=e)
            return

        self.next_occurrence = self.recurrence.next_occurrence(timestamp)

    def _stop(self, reason: str, error: Optional[BaseException] = None) -> bool:
        """
        Move the loop to its terminal state.

        Returns:
            True if this call stopped the loop, False if it was already stopped
        """
        with self._lock:
            if self._state == STATE_STOPPED:
                return False
            self._state = STATE_STOPPED
            self.reason = reason
            self.error = error

        try:
            self.scheduler.shutdown(wait=False)
            logger.info(f"[{self.name}] Stopped ({reason}) after {self.invocations} invocation(s)")

            if error is not None and self.on_error is not None:
                try:
                    self.on_error(error)
                except Exception as e:
                    logger.error(f"[{self.name}] Error callback raised exception: {e}", exc_info=True)
        finally:
            self._stopped.set()

        return True

    def cancel(self) -> bool:
        """Stop the loop. Safe to call any number of times."""
        return self._stop(REASON_CANCELLED)

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the loop stops; returns False if the timeout expired."""
        return self._stopped.wait(timeout)


class ScheduleHandle:
    """
    Cancellation handle returned for a running schedule.

    Calling the handle (or ``cancel()``) stops the schedule; further calls
    are no-ops. The remaining members report how the schedule ended.
    """

    def __init__(self, loop: ScheduleLoop):
        self._loop = loop

    def __call__(self):
        self.cancel()

    def cancel(self):
        self._loop.cancel()

    @property
    def name(self) -> str:
        return self._loop.name

    @property
    def active(self) -> bool:
        return self._loop.active

    @property
    def stopped(self) -> bool:
        return not self._loop.active

    @property
    def reason(self) -> Optional[str]:
        """'cancelled' or 'failed' once stopped, otherwise None."""
        return self._loop.reason

    @property
    def error(self) -> Optional[BaseException]:
        """Exception raised by the handler, if it stopped the schedule."""
        return self._loop.error

    @property
    def invocations(self) -> int:
        return self._loop.invocations

    @property
    def next_occurrence(self) -> Optional[datetime]:
        if not self._loop.active:
            return None
        return self._loop.next_occurrence

    def wait(self, timeout: Optional[float] = None) -> bool:
        return self._loop.wait(timeout)

    def __repr__(self):
        state = STATE_ACTIVE if self.active else f"{STATE_STOPPED}:{self.reason}"
        return f"ScheduleHandle(name={self.name!r}, state={state}, invocations={self.invocations})"
