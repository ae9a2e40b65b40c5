"""OpenCV-based camera backend."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Optional, Tuple

import cv2

from contracts import Frame
from exceptions import DeviceUnavailableError, OperationTimeoutError
from log_config.logger import get_logger

from .camera_device import CameraDevice, CameraStats
from .timeout_utils import run_with_timeout

logger = get_logger(__name__)

_API_PREFERENCES = {
    "any": "CAP_ANY",
    "dshow": "CAP_DSHOW",
    "msmf": "CAP_MSMF",
    "v4l2": "CAP_V4L2",
    "avfoundation": "CAP_AVFOUNDATION",
    "gstreamer": "CAP_GSTREAMER",
}


def api_preference(backend: str) -> int:
    """Map a backend name to the cv2 capture API constant."""
    attr = _API_PREFERENCES.get(backend.lower())
    if attr is None:
        raise ValueError(f"Unknown capture backend: {backend}")
    return getattr(cv2, attr, cv2.CAP_ANY)


@dataclass
class _Stats:
    last_frame_ns: int = 0
    frames: int = 0
    empty: int = 0
    fps_avg: float = 0.0


class OpenCVCamera(CameraDevice):
    def __init__(
        self,
        backend: str = "any",
        open_timeout_s: float = 5.0,
        release_timeout_s: float = 2.0,
    ) -> None:
        self._api = api_preference(backend)
        self._open_timeout_s = open_timeout_s
        self._release_timeout_s = release_timeout_s
        self._camera_id: Optional[int] = None
        self._capture: Optional[cv2.VideoCapture] = None
        self._stats = _Stats()

    @property
    def is_open(self) -> bool:
        return self._capture is not None

    def open(self, camera_id: int) -> None:
        """Open camera by index.

        Args:
            camera_id: Camera index (0 is the system default camera)

        Raises:
            DeviceUnavailableError: If the camera fails to open or the open
                call does not return within the configured timeout
        """
        self._camera_id = camera_id
        self._stats = _Stats()
        logger.info(f"Opening OpenCV camera index {camera_id}")

        def _open_camera():
            capture = cv2.VideoCapture(camera_id, self._api)
            if not capture.isOpened():
                capture.release()
                raise DeviceUnavailableError(
                    f"Cannot open camera {camera_id} - camera may be in use or not found",
                    camera_id=str(camera_id),
                )
            return capture

        try:
            self._capture = run_with_timeout(
                _open_camera,
                timeout_seconds=self._open_timeout_s,
                error_message=f"OpenCV camera {camera_id} open timed out",
                error_type=DeviceUnavailableError,
                on_late_result=self._release_late_capture,
            )
        except DeviceUnavailableError as e:
            logger.error(f"Failed to open OpenCV camera index {camera_id}: {e}")
            self._capture = None
            if e.camera_id is None:
                e.camera_id = str(camera_id)
            raise
        except cv2.error as e:
            logger.error(f"Failed to open OpenCV camera index {camera_id}: {e}")
            self._capture = None
            raise DeviceUnavailableError(str(e), camera_id=str(camera_id)) from e

        logger.info(f"Successfully opened OpenCV camera index {camera_id}")

    def _release_late_capture(self, capture: cv2.VideoCapture) -> None:
        # Open returned after the timeout; nobody owns this handle
        logger.warning(f"Releasing camera {self._camera_id} that opened after the timeout")
        try:
            capture.release()
        except cv2.error as e:
            logger.error(f"Camera {self._camera_id}: Error releasing late capture: {e}")

    def query_geometry(self) -> Tuple[int, int]:
        if self._capture is None:
            raise RuntimeError("Camera not opened.")
        width = int(self._capture.get(cv2.CAP_PROP_FRAME_WIDTH))
        height = int(self._capture.get(cv2.CAP_PROP_FRAME_HEIGHT))
        return width, height

    def query_rate(self) -> float:
        if self._capture is None:
            raise RuntimeError("Camera not opened.")
        return float(self._capture.get(cv2.CAP_PROP_FPS))

    def read_frame(self) -> Optional[Frame]:
        if self._capture is None:
            raise RuntimeError("Camera not opened.")
        ok, image = self._capture.read()
        if not ok or image is None or image.size == 0:
            self._stats.empty += 1
            return None

        now_ns = time.monotonic_ns()
        if self._stats.last_frame_ns:
            delta_s = (now_ns - self._stats.last_frame_ns) / 1e9
            if delta_s > 0:
                fps_instant = 1.0 / delta_s
                self._stats.fps_avg = (
                    (self._stats.fps_avg * self._stats.frames) + fps_instant
                ) / (self._stats.frames + 1)
        self._stats.frames += 1
        self._stats.last_frame_ns = now_ns
        return Frame(
            camera_id=str(self._camera_id),
            sequence=self._stats.frames,
            image=image,
        )

    def get_stats(self) -> CameraStats:
        return CameraStats(
            frames_read=self._stats.frames,
            empty_reads=self._stats.empty,
            fps_avg=self._stats.fps_avg,
        )

    def close(self) -> None:
        """Close camera and release resources.

        Note:
            - Idempotent - safe to call multiple times
            - Uses timeout to prevent hanging on release
        """
        if self._capture is None:
            logger.debug(f"Camera {self._camera_id}: Already closed")
            return

        logger.info(f"Camera {self._camera_id}: Closing")
        capture = self._capture

        try:
            run_with_timeout(
                capture.release,
                timeout_seconds=self._release_timeout_s,
                error_message=f"Camera {self._camera_id} release timed out",
            )
            logger.info(f"Camera {self._camera_id}: Closed successfully")

        except (OperationTimeoutError, cv2.error) as e:
            logger.error(f"Camera {self._camera_id}: Error during close: {e}")

        finally:
            # Always clear capture reference
            self._capture = None
