"""Tests for the wall-clock timestamp source."""

from __future__ import annotations

import time

from record.clock import epoch_ns, format_epoch_ns


def test_epoch_ns_is_integer_nanoseconds_since_epoch():
    before = time.time_ns()
    value = epoch_ns()
    after = time.time_ns()

    assert isinstance(value, int)
    assert before <= value <= after


def test_epoch_ns_does_not_decrease_between_calls():
    samples = [epoch_ns() for _ in range(1000)]
    assert all(a <= b for a, b in zip(samples, samples[1:]))


def test_format_epoch_ns_keeps_nanosecond_precision():
    assert format_epoch_ns(0) == "1970-01-01T00:00:00.000000000Z"
    assert format_epoch_ns(1_700_000_000_123_456_789) == "2023-11-14T22:13:20.123456789Z"
