"""Timestamped video recording."""

from .clock import epoch_ns
from .ledger import TimestampLedger, load_ledger
from .paths import derive_ledger_path
from .session import (
    RecordingSession,
    RecordingSummary,
    SessionState,
    StopReason,
    StopToken,
    create_session,
)
from .sink import FrameSink, OpenCVVideoSink

__all__ = [
    "FrameSink",
    "OpenCVVideoSink",
    "RecordingSession",
    "RecordingSummary",
    "SessionState",
    "StopReason",
    "StopToken",
    "TimestampLedger",
    "create_session",
    "derive_ledger_path",
    "epoch_ns",
    "load_ledger",
]
