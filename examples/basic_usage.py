#!/usr/bin/env python3
"""
Basic Usage Examples for cadence

Demonstrates scheduling callables, stopping them, and finding out why
a schedule ended.
"""

import logging
import time
from datetime import datetime

import cadence


def example_1_every_second():
    """Example 1: Print a line every second for a few seconds"""
    print("\n" + "=" * 60)
    print("Example 1: @every 1s")
    print("=" * 60)

    scheduler = cadence.new(datetime.now())

    cancel = scheduler.schedule("@every 1s", lambda event: print(f"  tick at {event.timestamp}"))
    time.sleep(3.5)
    cancel()

    print(f"Stopped after {cancel.invocations} invocation(s)")


def example_2_stop_on_error():
    """Example 2: A handler that raises stops its schedule"""
    print("\n" + "=" * 60)
    print("Example 2: Handler failure")
    print("=" * 60)

    scheduler = cadence.new(datetime.now())

    def handler(event):
        raise RuntimeError("upstream unavailable")

    handle = scheduler.schedule(
        "@every 1s",
        handler,
        on_error=lambda error: print(f"  notified: {error}")
    )
    handle.wait(timeout=5)

    print(f"Reason: {handle.reason}, error: {handle.error!r}")


def example_3_preview():
    """Example 3: Preview occurrences without scheduling"""
    print("\n" + "=" * 60)
    print("Example 3: Next occurrences of @every 1h30m")
    print("=" * 60)

    scheduler = cadence.new(datetime(2025, 1, 1))
    for occurrence in scheduler.preview("@every 1h30m", count=4):
        print(f"  {occurrence.astimezone().isoformat()}")


def example_4_invalid_expression():
    """Example 4: Invalid expressions fail immediately"""
    print("\n" + "=" * 60)
    print("Example 4: Invalid expression")
    print("=" * 60)

    scheduler = cadence.new(datetime.now())
    try:
        scheduler.schedule("@every other tuesday", lambda event: None)
    except cadence.ExpressionError as e:
        print(f"  rejected: {e}")


if __name__ == "__main__":
    logging.basicConfig(level=logging.WARNING)

    example_1_every_second()
    example_2_stop_on_error()
    example_3_preview()
    example_4_invalid_expression()
