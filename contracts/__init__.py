"""Shared data contracts for timestamped recording."""

from .types import Frame, SessionConfig, TimestampEntry

__all__ = ["Frame", "SessionConfig", "TimestampEntry"]
