"""Tests for the recurrence model."""

from datetime import datetime, timedelta, timezone

import pytest

from cadence.expression import SECOND
from cadence.models import Event, Recurrence

T0 = datetime(2025, 1, 1, tzinfo=timezone.utc)


def test_next_occurrence_adds_frequency():
    recurrence = Recurrence(90 * SECOND)
    assert recurrence.next_occurrence(T0) == T0 + timedelta(seconds=90)


def test_first_after_is_strictly_after_now():
    recurrence = Recurrence(10 * SECOND)
    assert recurrence.first_after(T0, T0) == T0 + timedelta(seconds=10)
    assert recurrence.first_after(T0, T0 + timedelta(seconds=25)) == T0 + timedelta(seconds=30)
    assert recurrence.first_after(T0, T0 + timedelta(seconds=30)) == T0 + timedelta(seconds=40)


def test_first_after_future_anchor_is_anchor():
    recurrence = Recurrence(10 * SECOND)
    anchor = T0 + timedelta(hours=1)
    assert recurrence.first_after(anchor, T0) == anchor


def test_first_after_distant_anchor():
    recurrence = Recurrence(1 * SECOND)
    now = T0 + timedelta(days=3650, microseconds=1)
    assert recurrence.first_after(T0, now) == T0 + timedelta(days=3650, seconds=1)


def test_occurrences():
    recurrence = Recurrence(60 * SECOND)
    result = recurrence.occurrences(T0, T0 + timedelta(seconds=1), 3)
    assert result == [
        T0 + timedelta(minutes=1),
        T0 + timedelta(minutes=2),
        T0 + timedelta(minutes=3),
    ]


def test_values_are_immutable():
    with pytest.raises(AttributeError):
        Recurrence(SECOND).nanoseconds = 2
    with pytest.raises(AttributeError):
        Event(T0).timestamp = T0


@pytest.mark.parametrize("nanoseconds", [0, 500, 999, -SECOND])
def test_sub_microsecond_recurrence_rejected(nanoseconds):
    with pytest.raises(ValueError):
        Recurrence(nanoseconds)
