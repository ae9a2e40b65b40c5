"""Core data contracts for capture, encoding and timestamp recording."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict


@dataclass(frozen=True)
class Frame:
    camera_id: str
    sequence: int
    image: Any


@dataclass(frozen=True)
class TimestampEntry:
    """One ledger record pairing an encoded frame with its wall-clock instant."""

    frame_index: int
    timestamp_ns: int

    def to_record(self) -> Dict[str, int]:
        return {"frame": self.frame_index, "timestamp_ns": self.timestamp_ns}


@dataclass(frozen=True)
class SessionConfig:
    """Resolved parameters of one recording session.

    Attributes:
        output_video_path: Video container file being written
        ledger_path: Sibling JSON file receiving the timestamp ledger
        camera_id: Device identifier the frame source was opened with
        width: Frame width reported by the device
        height: Frame height reported by the device
        fps: Queried frame rate, or the configured default when the
            device reports a non-positive rate
        container: Container format tag (e.g. "mp4")
    """

    output_video_path: Path
    ledger_path: Path
    camera_id: int
    width: int
    height: int
    fps: float
    container: str
