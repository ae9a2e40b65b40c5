"""Camera abstraction for frame source backends."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Tuple

from contracts import Frame


@dataclass(frozen=True)
class CameraStats:
    frames_read: int
    empty_reads: int
    fps_avg: float


class CameraDevice(ABC):
    @abstractmethod
    def open(self, camera_id: int) -> None:
        """Open a camera, raising DeviceUnavailableError on failure."""

    @abstractmethod
    def query_geometry(self) -> Tuple[int, int]:
        """Return the device's native (width, height)."""

    @abstractmethod
    def query_rate(self) -> float:
        """Return the reported frame rate; non-positive when unknown."""

    @abstractmethod
    def read_frame(self) -> Optional[Frame]:
        """Pull the next frame.

        Returns None for a transient empty read. Sources with a finite
        number of frames raise EndOfStream once exhausted.
        """

    @abstractmethod
    def get_stats(self) -> CameraStats:
        """Return capture diagnostics."""

    @abstractmethod
    def close(self) -> None:
        """Close the camera. Safe to call more than once."""

    @property
    @abstractmethod
    def is_open(self) -> bool:
        """Whether the device is currently held open."""
