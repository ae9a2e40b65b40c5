"""Recording session: capture, timestamp and encode frames in lockstep.

A session walks through ``UNINITIALIZED -> INITIALIZED -> RECORDING ->
STOPPED``. While recording, every frame pulled from the camera is stamped
with the wall clock immediately before it is handed to the video sink, and
the (frame index, timestamp) pair is appended to the timestamp ledger only
once the sink has accepted the frame. Entry ``i`` of the ledger therefore
describes the ``i``-th frame in the video file.

Stopping releases the sink, flushes the ledger to the JSON file next to the
video and closes the camera. Stop runs on every exit path out of the capture
loop, including errors, and when a ``with`` block holding the session ends.
"""

from __future__ import annotations

import math
import threading
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Union

from capture import CameraDevice, OpenCVCamera
from configs.settings import AppConfig, load_config
from contracts import SessionConfig
from exceptions import (
    CaptureStalledError,
    EncoderInitError,
    EndOfStream,
    FrameWriteError,
    InvalidOutputExtensionError,
    LedgerWriteError,
    NotInitializedError,
    SessionStateError,
)
from log_config.logger import get_logger, log_performance
from ui.preview import PreviewWindow

from .clock import Clock, epoch_ns, format_epoch_ns
from .ledger import TimestampLedger
from .paths import container_of, derive_ledger_path, ensure_parent_dir
from .sink import FrameSink, OpenCVVideoSink

logger = get_logger(__name__)


class SessionState(Enum):
    """Recording session lifecycle states."""
    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"
    RECORDING = "recording"
    STOPPED = "stopped"


class StopReason(Enum):
    """Why a session left the capture loop."""
    NOT_STARTED = "not_started"
    STOP_REQUESTED = "stop_requested"
    END_OF_STREAM = "end_of_stream"
    FRAME_LIMIT = "frame_limit"
    WRITE_FAILED = "write_failed"
    CAPTURE_STALLED = "capture_stalled"
    ERROR = "error"

    @property
    def is_failure(self) -> bool:
        return self in (StopReason.WRITE_FAILED, StopReason.CAPTURE_STALLED, StopReason.ERROR)


class StopToken:
    """Cancellation flag polled once per capture loop iteration.

    Safe to set from another thread or from a signal handler.
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._source: Optional[str] = None

    def request_stop(self, source: str = "request") -> None:
        if not self._event.is_set():
            self._source = source
            self._event.set()

    def is_set(self) -> bool:
        return self._event.is_set()

    @property
    def source(self) -> Optional[str]:
        return self._source


@dataclass(frozen=True)
class RecordingSummary:
    frames_recorded: int
    empty_frames: int
    stop_reason: StopReason
    video_path: Path
    ledger_path: Path
    ledger_written: bool
    nominal_duration_s: float
    wall_duration_s: float


def resolve_frame_rate(rate: Optional[float], default_fps: float) -> float:
    """Return ``rate`` if it is a usable positive rate, else ``default_fps``."""
    if rate is None or not rate > 0 or math.isinf(rate):
        return float(default_fps)
    return float(rate)


class RecordingSession:
    """Owns one camera, one video sink and one timestamp ledger.

    Args:
        camera: Frame source, opened by ``initialize``
        sink: Video sink, opened by ``initialize``
        config: Application configuration (bundled defaults when None)
        clock: Returns wall-clock nanoseconds since the epoch
        preview: Optional live preview window
    """

    def __init__(
        self,
        camera: CameraDevice,
        sink: FrameSink,
        config: Optional[AppConfig] = None,
        clock: Clock = epoch_ns,
        preview: Optional[PreviewWindow] = None,
    ) -> None:
        self._camera = camera
        self._sink = sink
        self._config = config or load_config()
        self._clock = clock
        self._preview = preview

        self._state = SessionState.UNINITIALIZED
        self._session_config: Optional[SessionConfig] = None
        self._ledger = TimestampLedger()
        self._frame_count = 0
        self._empty_frames = 0
        self._stop_token = StopToken()
        self._loop_active = False
        self._summary: Optional[RecordingSummary] = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def session_config(self) -> Optional[SessionConfig]:
        return self._session_config

    @property
    def ledger(self) -> TimestampLedger:
        return self._ledger

    @property
    def frame_count(self) -> int:
        return self._frame_count

    @property
    def summary(self) -> Optional[RecordingSummary]:
        return self._summary

    def initialize(self, output_path: Union[str, Path], camera_id: int = 0) -> SessionConfig:
        """Open the camera and the video sink for ``output_path``.

        Args:
            output_path: Video file to write; its extension selects the container
            camera_id: Camera index

        Returns:
            The resolved session configuration

        Raises:
            SessionStateError: If the session was already initialized
            InvalidOutputExtensionError: If the extension is not a configured container
            DeviceUnavailableError: If the camera cannot be opened
            EncoderInitError: If the video sink cannot be opened

        On failure the session stays UNINITIALIZED and the camera is released.
        """
        if self._state is not SessionState.UNINITIALIZED:
            raise SessionStateError(f"Cannot initialize a session that is {self._state.value}")

        output_path = Path(output_path)
        container = container_of(output_path)
        if container not in self._config.encoder.containers:
            supported = ", ".join(f".{name}" for name in sorted(self._config.encoder.containers))
            raise InvalidOutputExtensionError(
                f"Unsupported video extension '{output_path.suffix}' (supported: {supported})"
            )
        ledger_path = derive_ledger_path(output_path)

        self._camera.open(camera_id)
        try:
            width, height = self._camera.query_geometry()
            reported_fps = self._camera.query_rate()
            fps = resolve_frame_rate(reported_fps, self._config.capture.default_fps)
            if fps != reported_fps:
                logger.warning(f"Camera reported {reported_fps} fps, using default {fps:g} fps")
            logger.info(f"Camera initialized: {width}x{height} @ {fps:g} fps")

            try:
                ensure_parent_dir(output_path)
            except OSError as e:
                raise EncoderInitError(f"Cannot create output directory for {output_path}: {e}") from e
            self._sink.open(output_path, container, fps, width, height)

        except Exception:
            self._camera.close()
            raise

        self._session_config = SessionConfig(
            output_video_path=output_path,
            ledger_path=ledger_path,
            camera_id=camera_id,
            width=width,
            height=height,
            fps=fps,
            container=container,
        )
        self._state = SessionState.INITIALIZED
        logger.info(f"Video writer initialized for: {output_path}")
        logger.info(f"Timestamps will be saved to: {ledger_path}")
        return self._session_config

    def start(
        self,
        stop_token: Optional[StopToken] = None,
        max_frames: Optional[int] = None,
    ) -> RecordingSummary:
        """Run the capture loop until stopped, then stop the session.

        Args:
            stop_token: Token polled once per frame; a private one when None
            max_frames: Stop after this many recorded frames

        Returns:
            Summary of the finished recording

        Raises:
            NotInitializedError: If the camera or video sink is not open
        """
        if (
            self._state is not SessionState.INITIALIZED
            or not self._camera.is_open
            or not self._sink.is_open
        ):
            logger.error("Camera or video writer not initialized")
            raise NotInitializedError(
                f"Camera or video writer not initialized (session is {self._state.value})"
            )
        if max_frames is not None and max_frames < 1:
            raise ValueError(f"max_frames must be positive, got {max_frames}")

        self._stop_token = stop_token or StopToken()
        self._ledger.reset()
        self._frame_count = 0
        self._empty_frames = 0
        self._state = SessionState.RECORDING
        logger.info("Starting recording...")

        reason = StopReason.ERROR
        self._loop_active = True
        try:
            reason = self._capture_loop(self._stop_token, max_frames)
        except FrameWriteError as e:
            logger.error(f"Recording aborted, frame not accepted by video writer: {e}")
            reason = StopReason.WRITE_FAILED
        except CaptureStalledError as e:
            logger.error(f"Recording aborted, camera stopped delivering frames: {e}")
            reason = StopReason.CAPTURE_STALLED
        except KeyboardInterrupt:
            logger.info("Recording interrupted")
            reason = StopReason.STOP_REQUESTED
        finally:
            self._loop_active = False
            self.stop(reason)

        return self._summary

    def request_stop(self) -> None:
        """Ask a running capture loop to finish after the current frame."""
        self._stop_token.request_stop("request_stop")

    def _capture_loop(self, token: StopToken, max_frames: Optional[int]) -> StopReason:
        progress_interval = self._config.recording.progress_interval
        max_empty = self._config.capture.max_consecutive_empty_frames
        consecutive_empty = 0

        while not token.is_set():
            try:
                frame = self._camera.read_frame()
            except EndOfStream:
                logger.info("Frame source reached end of stream")
                return StopReason.END_OF_STREAM

            if frame is None:
                self._empty_frames += 1
                consecutive_empty += 1
                logger.warning("Empty frame captured")
                if max_empty is not None and consecutive_empty >= max_empty:
                    raise CaptureStalledError(
                        f"{consecutive_empty} consecutive empty frames",
                        camera_id=str(self._session_config.camera_id),
                        empty_frames=consecutive_empty,
                    )
                continue
            consecutive_empty = 0

            # Stamp right before the encoder call, nothing blocking in between
            timestamp_ns = self._clock()
            self._sink.write(frame)
            self._ledger.append(timestamp_ns)
            self._frame_count += 1

            if self._preview is not None and self._preview.show(frame.image):
                token.request_stop("preview key")

            if token.is_set():
                break

            if max_frames is not None and self._frame_count >= max_frames:
                return StopReason.FRAME_LIMIT

            if self._frame_count % progress_interval == 0:
                logger.info(f"Recorded {self._frame_count} frames")

        logger.info(f"Stop requested ({token.source})")
        return StopReason.STOP_REQUESTED

    def stop(self, reason: StopReason = StopReason.STOP_REQUESTED) -> Optional[RecordingSummary]:
        """Finalize the video, flush the ledger and release the camera.

        A no-op returning the existing summary (or None) once stopped or before
        initialization. Called while the capture loop is running, it only
        requests the loop to stop; the loop then completes the stop itself.
        Stopping an initialized session that never recorded writes an empty
        ledger and reports NOT_STARTED, unless ERROR was passed.
        """
        if self._state in (SessionState.UNINITIALIZED, SessionState.STOPPED):
            return self._summary
        if self._loop_active:
            self._stop_token.request_stop("stop")
            return None
        if self._state is SessionState.INITIALIZED and reason is not StopReason.ERROR:
            reason = StopReason.NOT_STARTED

        logger.info(f"Stopping recording ({reason.value})")
        self._release_sink()
        self._close_preview()
        ledger_written = self._flush_ledger()
        self._close_camera()
        self._state = SessionState.STOPPED

        config = self._session_config
        self._summary = RecordingSummary(
            frames_recorded=self._frame_count,
            empty_frames=self._empty_frames,
            stop_reason=reason,
            video_path=config.output_video_path,
            ledger_path=config.ledger_path,
            ledger_written=ledger_written,
            nominal_duration_s=self._frame_count / config.fps,
            wall_duration_s=self._ledger.span_ns / 1e9,
        )

        logger.info("Recording finished!")
        logger.info(f"Total frames recorded: {self._frame_count}")
        if len(self._ledger):
            logger.info(
                f"First frame at {format_epoch_ns(self._ledger[0].timestamp_ns)}, "
                f"last at {format_epoch_ns(self._ledger[-1].timestamp_ns)}"
            )
        logger.info(f"Video saved to: {config.output_video_path}")
        if ledger_written:
            logger.info(f"Timestamps saved to: {config.ledger_path}")
        return self._summary

    def close(self) -> None:
        """Stop the session if it holds resources; safe in any state."""
        self.stop(StopReason.STOP_REQUESTED)

    def _release_sink(self) -> None:
        started = time.perf_counter()
        try:
            self._sink.release()
        except Exception as e:
            logger.error(f"Error releasing video writer: {e}")
        log_performance("video finalize", (time.perf_counter() - started) * 1000.0, threshold_ms=500.0)

    def _close_preview(self) -> None:
        if self._preview is not None:
            self._preview.close()

    def _flush_ledger(self) -> bool:
        try:
            self._ledger.write(self._session_config.ledger_path)
        except LedgerWriteError as e:
            logger.warning(f"Timestamps were not saved, video is kept: {e}")
            return False
        return True

    def _close_camera(self) -> None:
        stats = self._camera.get_stats()
        logger.debug(
            f"Camera stats: {stats.frames_read} frames read, {stats.empty_reads} empty reads, "
            f"{stats.fps_avg:.1f} fps average"
        )
        try:
            self._camera.close()
        except Exception as e:
            logger.error(f"Error closing camera: {e}")

    def __enter__(self) -> "RecordingSession":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop(StopReason.ERROR if exc_type is not None else StopReason.STOP_REQUESTED)


def create_session(
    config: AppConfig,
    camera: Optional[CameraDevice] = None,
    show_preview: Optional[bool] = None,
    clock: Clock = epoch_ns,
) -> RecordingSession:
    """Build a session wired to OpenCV devices from configuration.

    Args:
        config: Application configuration
        camera: Frame source; an OpenCVCamera per ``config.capture`` when None
        show_preview: Override ``config.preview.enabled``
        clock: Timestamp clock

    Returns:
        An uninitialized RecordingSession
    """
    if camera is None:
        camera = OpenCVCamera(
            backend=config.capture.backend,
            open_timeout_s=config.capture.open_timeout_s,
            release_timeout_s=config.capture.release_timeout_s,
        )
    sink = OpenCVVideoSink(config.encoder.containers, color=config.encoder.color)

    enabled = config.preview.enabled if show_preview is None else show_preview
    preview = PreviewWindow(config.preview.window_title, config.preview.stop_keys) if enabled else None

    return RecordingSession(camera, sink, config=config, clock=clock, preview=preview)


__all__ = [
    "RecordingSession",
    "RecordingSummary",
    "SessionState",
    "StopReason",
    "StopToken",
    "create_session",
    "resolve_frame_rate",
]
