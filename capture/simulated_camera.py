"""Simulated camera backend for hardware-free recording and tests."""

from __future__ import annotations

import time
from typing import Optional, Tuple

import numpy as np

from contracts import Frame
from exceptions import DeviceUnavailableError, EndOfStream

from .camera_device import CameraDevice, CameraStats


class SimulatedCamera(CameraDevice):
    """Synthesizes BGR frames at a fixed rate.

    Args:
        frame_count: Frames delivered before EndOfStream; None never ends
        width: Frame width in pixels
        height: Frame height in pixels
        fps: Reported rate; also paces read_frame when ``realtime`` is set
        empty_every: Return an empty read before every Nth frame (0 disables)
        realtime: Sleep between reads to honour ``fps``
        available: When False, open() fails like an unplugged device
    """

    def __init__(
        self,
        frame_count: Optional[int] = None,
        width: int = 640,
        height: int = 480,
        fps: float = 30.0,
        empty_every: int = 0,
        realtime: bool = False,
        available: bool = True,
    ) -> None:
        self._frame_count = frame_count
        self._width = width
        self._height = height
        self._fps = fps
        self._empty_every = empty_every
        self._realtime = realtime
        self._available = available
        self._camera_id: Optional[int] = None
        self._opened = False
        self._frame_index = 0
        self._empty_reads = 0
        self._pending_empty = False
        self._last_frame_time = time.monotonic()

    @property
    def is_open(self) -> bool:
        return self._opened

    def open(self, camera_id: int) -> None:
        if not self._available:
            raise DeviceUnavailableError(
                f"Simulated camera {camera_id} is unavailable", camera_id=str(camera_id)
            )
        self._camera_id = camera_id
        self._opened = True
        self._frame_index = 0
        self._empty_reads = 0

    def query_geometry(self) -> Tuple[int, int]:
        return self._width, self._height

    def query_rate(self) -> float:
        return self._fps

    def read_frame(self) -> Optional[Frame]:
        if not self._opened:
            raise RuntimeError("Camera not opened.")
        if self._frame_count is not None and self._frame_index >= self._frame_count:
            raise EndOfStream("Simulated stream exhausted", camera_id=str(self._camera_id))

        if self._empty_every > 0:
            if (self._frame_index + 1) % self._empty_every == 0 and not self._pending_empty:
                self._pending_empty = True
                self._empty_reads += 1
                return None
            self._pending_empty = False

        if self._realtime and self._fps > 0:
            target_delay = 1.0 / self._fps
            elapsed = time.monotonic() - self._last_frame_time
            if elapsed < target_delay:
                time.sleep(target_delay - elapsed)
        self._last_frame_time = time.monotonic()
        self._frame_index += 1

        # Dark blue-gray with a brightness ramp so consecutive frames differ
        image = np.zeros((self._height, self._width, 3), dtype=np.uint8)
        image[:, :, 0] = 40
        image[:, :, 1] = 30
        image[:, :, 2] = self._frame_index % 256

        return Frame(
            camera_id=str(self._camera_id) if self._camera_id is not None else "sim",
            sequence=self._frame_index,
            image=image,
        )

    def get_stats(self) -> CameraStats:
        return CameraStats(
            frames_read=self._frame_index,
            empty_reads=self._empty_reads,
            fps_avg=float(self._fps),
        )

    def close(self) -> None:
        self._opened = False
