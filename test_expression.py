"""Tests for interval expression parsing."""

from datetime import timedelta

import pytest

from cadence.expression import (
    HOUR,
    MAX_DURATION,
    DurationParseError,
    ExpressionError,
    InvalidExpressionError,
    parse,
    parse_duration,
)


@pytest.mark.parametrize("expr, expected", [
    ("@yearly", timedelta(days=365)),
    ("@monthly", timedelta(days=30)),
    ("@weekly", timedelta(days=7)),
    ("@daily", timedelta(hours=24)),
    ("@hourly", timedelta(hours=1)),
])
def test_predefined_frequencies(expr, expected):
    assert parse(expr).frequency == expected


def test_every_single_component():
    assert parse("@every 1h").frequency == timedelta(seconds=3600)
    assert parse("@every 10s").frequency == timedelta(seconds=10)


def test_every_multiple_components_exact():
    recurrence = parse("@every 10h20m5s100ms1200ns")
    expected = (10 * 3600 + 20 * 60 + 5) * 10**9 + 100 * 10**6 + 1200
    assert recurrence.nanoseconds == expected
    assert recurrence.frequency == timedelta(hours=10, minutes=20, seconds=5, milliseconds=100, microseconds=1)


def test_every_repeated_units_are_summed():
    assert parse("@every 1m1m30s").frequency == timedelta(minutes=2, seconds=30)


def test_every_micro_units():
    assert parse("@every 1500us").nanoseconds == 1_500_000
    assert parse("@every 1500µs").nanoseconds == 1_500_000


def test_ms_is_not_read_as_minutes():
    assert parse("@every 5ms").frequency == timedelta(milliseconds=5)


@pytest.mark.parametrize("expr", [
    "invalid",
    "",
    "@every",
    "@every ",
    "@every 10",
    "@every 1.5h",
    "@every 1h 30m",
    "@every -1s",
    "@every 1d",
    "@minutely",
    "@HOURLY",
])
def test_invalid_expressions(expr):
    with pytest.raises(ExpressionError):
        parse(expr)


def test_zero_frequency_rejected():
    with pytest.raises(InvalidExpressionError):
        parse("@every 0s")
    with pytest.raises(InvalidExpressionError):
        parse("@every 0h0m0s")


def test_sub_microsecond_frequency_rejected():
    with pytest.raises(InvalidExpressionError):
        parse("@every 999ns")


def test_surrounding_text_rejected_by_default():
    for expr in ("foo @hourly bar", "@hourly ", " @hourly", "@every 10s!", "@hourly\n"):
        with pytest.raises(InvalidExpressionError):
            parse(expr)


def test_lenient_mode_accepts_first_match():
    assert parse("foo @hourly bar", strict=False).frequency == timedelta(hours=1)
    assert parse("run @every 2m please", strict=False).frequency == timedelta(minutes=2)


def test_lenient_mode_still_rejects_no_match():
    with pytest.raises(InvalidExpressionError):
        parse("nothing here", strict=False)


def test_overflow_is_duration_error():
    with pytest.raises(DurationParseError):
        parse("@every 9999999999999h")


def test_parse_duration_bounds():
    assert parse_duration("2562047h") == 2562047 * HOUR
    assert parse_duration("2562047h") <= MAX_DURATION
    with pytest.raises(DurationParseError):
        parse_duration("2562048h")


@pytest.mark.parametrize("duration", ["", "10", "h", "1h x", "1h-2m"])
def test_parse_duration_malformed(duration):
    with pytest.raises(DurationParseError):
        parse_duration(duration)


def test_errors_are_value_errors():
    with pytest.raises(ValueError):
        parse("invalid")
