"""Video frame sinks that encode frames into a container file."""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Sequence, Tuple

import cv2

from contracts import Frame
from exceptions import EncoderInitError, FrameWriteError
from log_config.logger import get_logger

logger = get_logger(__name__)


class FrameSink(ABC):
    @abstractmethod
    def open(self, path: Path, container: str, fps: float, width: int, height: int) -> None:
        """Open the sink, raising EncoderInitError on failure."""

    @abstractmethod
    def write(self, frame: Frame) -> None:
        """Encode one frame, raising FrameWriteError if it is not accepted."""

    @abstractmethod
    def release(self) -> None:
        """Flush buffered data and close the container. Safe to call twice."""

    @property
    @abstractmethod
    def is_open(self) -> bool:
        """Whether the sink currently accepts frames."""


class OpenCVVideoSink(FrameSink):
    """cv2.VideoWriter sink with per-container codec fallback.

    Args:
        codecs: Mapping of container tag to FourCC codes, tried in order
        color: Encode 3-channel BGR; grayscale input is converted
    """

    def __init__(self, codecs: dict, color: bool = True) -> None:
        self._codecs = {name.lower(): tuple(fourccs) for name, fourccs in codecs.items()}
        self._color = color
        self._writer: Optional[cv2.VideoWriter] = None
        self._path: Optional[Path] = None
        self._size: Tuple[int, int] = (0, 0)
        self._codec: Optional[str] = None
        self._frames_written = 0

    @property
    def is_open(self) -> bool:
        return self._writer is not None

    @property
    def codec(self) -> Optional[str]:
        return self._codec

    @property
    def frames_written(self) -> int:
        return self._frames_written

    def open(self, path: Path, container: str, fps: float, width: int, height: int) -> None:
        """Open video writer with codec fallback.

        Args:
            path: Output video file path
            container: Container format tag selecting the codec list
            fps: Frames per second
            width: Frame width
            height: Frame height

        Raises:
            EncoderInitError: If no configured codec opens for this path,
                container and geometry
        """
        if self._writer is not None:
            raise EncoderInitError(f"Video writer already open for {self._path}")
        if width <= 0 or height <= 0:
            raise EncoderInitError(f"Invalid frame size {width}x{height} for {path}")

        codec_list: Sequence[str] = self._codecs.get(container.lower(), ())
        if not codec_list:
            raise EncoderInitError(f"No codecs configured for container '{container}'")

        for codec_name in codec_list:
            fourcc = cv2.VideoWriter_fourcc(*codec_name)
            writer = cv2.VideoWriter(str(path), fourcc, float(fps), (width, height), self._color)

            if writer.isOpened():
                self._writer = writer
                self._path = Path(path)
                self._size = (width, height)
                self._codec = codec_name
                self._frames_written = 0
                logger.info(f"Video writer opened: {path} ({codec_name}, {width}x{height} @ {fps:g}fps)")
                return

            logger.debug(f"Codec {codec_name} failed for {path}, trying next")
            writer.release()

        logger.error(f"Cannot open video writer for {path} (tried {', '.join(codec_list)})")
        raise EncoderInitError(
            f"Cannot open video writer for {path} with codecs {', '.join(codec_list)}"
        )

    def write(self, frame: Frame) -> None:
        if self._writer is None:
            raise FrameWriteError("Video writer is not open")

        image = frame.image
        height, width = image.shape[:2]
        if (width, height) != self._size:
            raise FrameWriteError(
                f"Frame {frame.sequence} is {width}x{height}, writer expects "
                f"{self._size[0]}x{self._size[1]}"
            )
        if self._color and image.ndim == 2:
            image = cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)

        try:
            self._writer.write(image)
        except cv2.error as e:
            raise FrameWriteError(f"Video write failed for frame {frame.sequence}: {e}") from e
        self._frames_written += 1

    def release(self) -> None:
        if self._writer is None:
            return
        writer = self._writer
        self._writer = None
        try:
            writer.release()
        finally:
            logger.info(f"Video writer released: {self._path} ({self._frames_written} frames)")


__all__ = ["FrameSink", "OpenCVVideoSink"]
