"""
Interval expression parsing.

Supported expressions:
- Predefined: @yearly, @monthly, @weekly, @daily, @hourly
- Custom: "@every " followed by duration components with no separators,
  e.g. "@every 10s" or "@every 10h20m5s100ms1200ns"

Predefined tokens are fixed approximations (@monthly is always 30 days).
"""

import logging
import re

from cadence.models import Recurrence

logger = logging.getLogger(__name__)

NANOSECOND = 1
MICROSECOND = 1000 * NANOSECOND
MILLISECOND = 1000 * MICROSECOND
SECOND = 1000 * MILLISECOND
MINUTE = 60 * SECOND
HOUR = 60 * MINUTE

# Largest representable duration (signed 64-bit nanoseconds, ~292 years)
MAX_DURATION = (1 << 63) - 1

UNITS = {
    'ns': NANOSECOND,
    'us': MICROSECOND,
    'µs': MICROSECOND,
    'ms': MILLISECOND,
    's': SECOND,
    'm': MINUTE,
    'h': HOUR,
}

PREDEFINED = {
    '@yearly': 365 * 24 * HOUR,
    '@monthly': 30 * 24 * HOUR,
    '@weekly': 7 * 24 * HOUR,
    '@daily': 24 * HOUR,
    '@hourly': HOUR,
}

_PATTERN = (
    r'(?P<predefined>@(?:yearly|monthly|weekly|daily|hourly))'
    r'|(?P<custom>@every (?:\d+(?:ns|us|µs|ms|s|m|h))+)'
)
EXPRESSION_RE = re.compile(_PATTERN, re.ASCII)
COMPONENT_RE = re.compile(r'(\d+)(ns|us|µs|ms|s|m|h)', re.ASCII)


class ExpressionError(ValueError):
    """Base class for expression parsing failures."""
    pass


class InvalidExpressionError(ExpressionError):
    """Raised when an expression matches no supported form."""

    def __init__(self, expr: str, reason: str = "invalid expression"):
        self.expr = expr
        super().__init__(f"{reason}: {expr!r}")


class DurationParseError(ExpressionError):
    """Raised when the duration of an @every expression cannot be represented."""

    def __init__(self, duration: str, reason: str):
        self.duration = duration
        super().__init__(f"{reason}: {duration!r}")


def parse_duration(duration: str) -> int:
    """
    Parse a run of duration components into nanoseconds.

    Args:
        duration: Components such as "1h30m" or "250ms10us"

    Returns:
        Total duration in nanoseconds

    Raises:
        DurationParseError: If the string is malformed or overflows
    """
    if not duration:
        raise DurationParseError(duration, "invalid duration")

    total = 0
    position = 0
    for match in COMPONENT_RE.finditer(duration):
        if match.start() != position:
            raise DurationParseError(duration, "invalid duration")
        position = match.end()

        value, unit = match.groups()
        total += int(value) * UNITS[unit]
        if total > MAX_DURATION:
            raise DurationParseError(duration, "duration out of range")

    if position != len(duration):
        raise DurationParseError(duration, "invalid duration")

    return total


def parse(expr: str, strict: bool = True) -> Recurrence:
    """
    Parse an interval expression into a Recurrence.

    Args:
        expr: Expression such as "@daily" or "@every 1h30m"
        strict: If True the whole input must be an expression; if False
            the first matching substring is used

    Returns:
        Recurrence for the expression

    Raises:
        InvalidExpressionError: If the expression is not recognised or
            resolves to a zero (or sub-microsecond) frequency
        DurationParseError: If the @every duration cannot be represented
    """
    if strict:
        match = EXPRESSION_RE.fullmatch(expr)
    else:
        match = EXPRESSION_RE.search(expr)
    if match is None:
        raise InvalidExpressionError(expr)

    nanoseconds = 0
    predefined = match.group('predefined')
    custom = match.group('custom')

    if predefined:
        nanoseconds = PREDEFINED[predefined]
    elif custom:
        nanoseconds = parse_duration(custom[len('@every '):])

    if nanoseconds == 0:
        raise InvalidExpressionError(expr)
    if nanoseconds < MICROSECOND:
        raise InvalidExpressionError(expr, "frequency below timer resolution")

    if not strict and match.group(0) != expr:
        logger.debug(f"Lenient match '{match.group(0)}' used for expression '{expr}'")

    return Recurrence(nanoseconds)
