"""Custom exception classes for the epoch recorder."""

from __future__ import annotations

from typing import Optional


class RecorderError(Exception):
    """Base exception for all recorder errors."""

    pass


class CameraError(RecorderError):
    """Base exception for frame source errors."""

    def __init__(self, message: str, camera_id: Optional[str] = None):
        self.camera_id = camera_id
        super().__init__(message)


class DeviceUnavailableError(CameraError):
    """Raised when the capture device cannot be opened."""

    pass


class EndOfStream(CameraError):
    """Raised by a frame source that has no more frames to deliver."""

    pass


class CaptureStalledError(CameraError):
    """Raised when too many consecutive empty frames were captured."""

    def __init__(self, message: str, camera_id: Optional[str] = None, empty_frames: int = 0):
        self.empty_frames = empty_frames
        super().__init__(message, camera_id=camera_id)


class RecordingError(RecorderError):
    """Base exception for recording-related errors."""

    pass


class EncoderInitError(RecordingError):
    """Raised when the video writer cannot be opened."""

    pass


class FrameWriteError(RecordingError):
    """Raised when a frame is not accepted by the video writer."""

    pass


class LedgerWriteError(RecordingError):
    """Raised when the timestamp ledger cannot be written."""

    pass


class InvalidLedgerError(RecordingError):
    """Raised when a persisted ledger file is malformed."""

    pass


class SessionStateError(RecorderError):
    """Raised when a session operation is not legal in the current state."""

    pass


class NotInitializedError(SessionStateError):
    """Raised when recording is started without an initialized session."""

    pass


class ConfigError(RecorderError):
    """Base exception for configuration errors."""

    pass


class InvalidConfigError(ConfigError):
    """Raised when configuration file is invalid or corrupted."""

    pass


class ConfigValidationError(ConfigError):
    """Raised when configuration fails schema validation."""

    def __init__(self, message: str, validation_errors: Optional[list] = None):
        self.validation_errors = validation_errors or []
        super().__init__(message)


class InvalidOutputExtensionError(ConfigError):
    """Raised when the output path does not name a supported container."""

    pass


class OperationTimeoutError(RecorderError):
    """Raised when a guarded device operation does not finish in time."""

    pass
