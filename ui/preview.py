"""OpenCV preview window with a stop key."""

from __future__ import annotations

import cv2

from log_config.logger import get_logger

logger = get_logger(__name__)


class PreviewWindow:
    """Shows recorded frames and reports when a stop key is pressed.

    Args:
        window_name: Title of the preview window
        stop_keys: Characters that request the recording to stop
    """

    def __init__(self, window_name: str, stop_keys: str = "qQ") -> None:
        self._window_name = window_name
        self._stop_keys = {ord(key) for key in stop_keys}
        self._shown = False
        self._disabled = False

    @property
    def window_name(self) -> str:
        return self._window_name

    @property
    def disabled(self) -> bool:
        return self._disabled

    def show(self, image) -> bool:
        """Render one frame; return True if a stop key was pressed.

        Headless OpenCV builds raise on imshow; the preview then turns itself
        off for the rest of the session.
        """
        if self._disabled:
            return False
        try:
            cv2.imshow(self._window_name, image)
            key = cv2.waitKey(1) & 0xFF
        except cv2.error as e:
            logger.warning(f"Preview unavailable, continuing without it: {e}")
            self._disabled = True
            return False
        self._shown = True
        return key in self._stop_keys

    def close(self) -> None:
        if not self._shown:
            return
        self._shown = False
        try:
            cv2.destroyWindow(self._window_name)
            cv2.waitKey(1)
        except cv2.error as e:
            logger.debug(f"Preview window already gone: {e}")
