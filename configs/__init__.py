"""Recorder configuration."""

from .settings import (
    AppConfig,
    CaptureConfig,
    EncoderConfig,
    LoggingConfig,
    PreviewConfig,
    RecordingConfig,
    load_config,
)

__all__ = [
    "AppConfig",
    "CaptureConfig",
    "EncoderConfig",
    "LoggingConfig",
    "PreviewConfig",
    "RecordingConfig",
    "load_config",
]
