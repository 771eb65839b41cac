"""Tests for the Scheduler facade."""

import time
from datetime import datetime, timedelta, timezone

import pytest

import cadence
from cadence.expression import InvalidExpressionError
from cadence.service import Scheduler, new


def test_new_scheduler(config):
    start = datetime.now(timezone.utc)
    scheduler = new(start, config=config)
    assert isinstance(scheduler, Scheduler)
    assert scheduler.start == start


def test_naive_start_is_local_time(config):
    start = datetime.now()
    scheduler = Scheduler(start, config=config)
    assert scheduler.start.tzinfo is not None
    assert scheduler.start == start.astimezone(timezone.utc)


def test_schedule_valid(scheduler):
    calls = []

    cancel = scheduler.schedule("@every 1s", calls.append)
    time.sleep(2.5)
    cancel()

    assert len(calls) >= 2
    assert all(isinstance(event, cadence.Event) for event in calls)


def test_schedule_invalid_expression(scheduler):
    with pytest.raises(InvalidExpressionError):
        scheduler.schedule("invalid", lambda event: None)


def test_handler_error_stops_execution(scheduler):
    count = []

    def handler(event):
        count.append(event)
        raise RuntimeError("stop execution")

    cancel = scheduler.schedule("@every 1s", handler)
    time.sleep(2.5)
    cancel()

    assert len(count) == 1
    assert cancel.reason == 'failed'


def test_parse_custom_duration(scheduler):
    cancel = scheduler.schedule("@every 10h20m5s100ms1200ns", lambda event: None)
    try:
        assert cancel.active
    finally:
        cancel()


def test_yearly_cancelled_immediately(scheduler):
    calls = []
    cancel = scheduler.schedule("@yearly", calls.append)
    assert cancel is not None
    expected = scheduler.start + timedelta(days=365)
    assert cancel.next_occurrence == expected

    cancel()
    time.sleep(0.2)
    assert calls == []
    assert cancel.reason == 'cancelled'


def test_schedules_are_independent(scheduler):
    first_calls = []
    second_calls = []

    first = scheduler.schedule("@every 1s", first_calls.append)
    second = scheduler.schedule("@every 1s", second_calls.append)
    first()
    time.sleep(1.5)
    second()

    assert first_calls == []
    assert len(second_calls) >= 1
    assert first.name != second.name


def test_lenient_expressions_from_config(config):
    config.strict_expressions = False
    scheduler = Scheduler(datetime.now(), config=config)
    assert scheduler.parse("run @hourly").frequency == timedelta(hours=1)


def test_preview(config):
    start = datetime(2025, 1, 1, tzinfo=timezone.utc)
    scheduler = Scheduler(start, config=config)
    now = start + timedelta(minutes=30)

    assert scheduler.preview("@hourly", count=2, now=now) == [
        start + timedelta(hours=1),
        start + timedelta(hours=2),
    ]


def test_preview_invalid_expression(scheduler):
    with pytest.raises(InvalidExpressionError):
        scheduler.preview("@every")


def test_schedule_with_grace_time(config):
    config.misfire_grace_time = 2
    scheduler = Scheduler(datetime.now(), config=config)
    calls = []

    cancel = scheduler.schedule("@every 1s", calls.append)
    time.sleep(1.5)
    cancel()

    assert len(calls) >= 1


def test_schedule_rejects_invalid_grace_time(config):
    config.misfire_grace_time = 0.5
    scheduler = Scheduler(datetime.now(), config=config)

    with pytest.raises(ValueError, match="misfire_grace_time"):
        scheduler.schedule("@every 1s", lambda event: None)
