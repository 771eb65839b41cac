"""
cadence

Run a callable at fixed intervals described by short expressions.

Main Components:
- Scheduler / new: anchor time and schedule() entry point
- parse: expression parser (@hourly, @daily, @every 1h30m, ...)
- ScheduleHandle: cancellation handle with termination status
- command_handler: run shell commands on a schedule
"""

from cadence.config import SchedulerConfig
from cadence.expression import (
    parse,
    ExpressionError,
    InvalidExpressionError,
    DurationParseError,
)
from cadence.jobs import CommandExecutor, JobExecutionError, command_handler
from cadence.loop import ScheduleHandle
from cadence.models import Event, Recurrence
from cadence.service import Scheduler, new

__version__ = "0.1.0"

__all__ = [
    # Scheduling
    "Scheduler",
    "new",
    "ScheduleHandle",
    # Expressions
    "parse",
    "Recurrence",
    "ExpressionError",
    "InvalidExpressionError",
    "DurationParseError",
    # Models
    "Event",
    # Configuration
    "SchedulerConfig",
    # Commands
    "CommandExecutor",
    "JobExecutionError",
    "command_handler",
]
