"""Wall-clock source for frame timestamps."""

from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Callable

# A clock returns integer nanoseconds since the Unix epoch.
Clock = Callable[[], int]


def epoch_ns() -> int:
    """Return the current wall-clock instant in nanoseconds since the epoch.

    Follows the system clock, so values can step backwards if the clock is
    adjusted while recording.
    """
    return time.time_ns()


def format_epoch_ns(timestamp_ns: int) -> str:
    """Render an epoch-nanosecond timestamp as ISO-8601 UTC for logs."""
    seconds, nanos = divmod(timestamp_ns, 1_000_000_000)
    stamp = datetime.fromtimestamp(seconds, tz=timezone.utc)
    return f"{stamp:%Y-%m-%dT%H:%M:%S}.{nanos:09d}Z"


__all__ = ["Clock", "epoch_ns", "format_epoch_ns"]
