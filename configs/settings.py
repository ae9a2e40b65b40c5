"""Configuration loading for the epoch recorder."""

from __future__ import annotations

import copy
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml

from configs.validator import validate_config
from exceptions import InvalidConfigError
from log_config.logger import get_logger

logger = get_logger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).with_name("default.yaml")


@dataclass(frozen=True)
class CaptureConfig:
    backend: str
    default_fps: float
    open_timeout_s: float = 5.0
    release_timeout_s: float = 2.0
    max_consecutive_empty_frames: Optional[int] = None  # None retries forever


@dataclass(frozen=True)
class EncoderConfig:
    containers: Dict[str, Tuple[str, ...]]
    color: bool = True


@dataclass(frozen=True)
class RecordingConfig:
    progress_interval: int = 30


@dataclass(frozen=True)
class PreviewConfig:
    enabled: bool = True
    window_title: str = "Recording - Press 'q' to stop"
    stop_keys: str = "qQ"


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"
    log_dir: Optional[str] = None


@dataclass(frozen=True)
class AppConfig:
    capture: CaptureConfig
    encoder: EncoderConfig
    recording: RecordingConfig
    preview: PreviewConfig
    logging: LoggingConfig


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def _read_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise InvalidConfigError(f"Configuration file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text())
    except yaml.YAMLError as e:
        logger.error(f"Failed to parse YAML configuration: {e}")
        raise InvalidConfigError(f"Failed to parse configuration file: {e}")
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise InvalidConfigError(f"Configuration root must be a mapping: {path}")
    return data


def build_config(data: Dict[str, Any]) -> AppConfig:
    """Validate a configuration mapping and build AppConfig.

    Args:
        data: Complete configuration mapping

    Returns:
        Validated AppConfig instance

    Raises:
        ConfigError: If configuration is invalid
    """
    data = copy.deepcopy(data)
    validate_config(data)

    try:
        encoder_data = data["encoder"]
        containers = {
            str(name).lower(): tuple(codecs) for name, codecs in encoder_data["containers"].items()
        }
        config = AppConfig(
            capture=CaptureConfig(**data["capture"]),
            encoder=EncoderConfig(containers=containers, color=encoder_data.get("color", True)),
            recording=RecordingConfig(**data.get("recording", {})),
            preview=PreviewConfig(**data.get("preview", {})),
            logging=LoggingConfig(**data.get("logging", {})),
        )
    except (KeyError, TypeError, ValueError) as e:
        logger.error(f"Failed to construct configuration objects: {e}")
        raise InvalidConfigError(f"Failed to construct configuration: {e}")

    return config


def load_config(path: Optional[Path] = None) -> AppConfig:
    """Load configuration, overlaying an optional user file on the defaults.

    Args:
        path: User configuration file; only the bundled defaults when None

    Returns:
        Validated AppConfig instance

    Raises:
        ConfigError: If configuration is invalid or cannot be loaded
    """
    data = _read_yaml(DEFAULT_CONFIG_PATH)
    if path is not None:
        logger.info(f"Loading configuration from {path}")
        data = _deep_merge(data, _read_yaml(Path(path)))

    config = build_config(data)
    logger.debug(
        f"Configuration loaded: containers={sorted(config.encoder.containers)}, "
        f"default_fps={config.capture.default_fps}"
    )
    return config
