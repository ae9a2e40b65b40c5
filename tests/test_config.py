from pathlib import Path

import pytest
import yaml

from configs.settings import DEFAULT_CONFIG_PATH, build_config, load_config
from exceptions import ConfigValidationError, InvalidConfigError


def _write_yaml(path: Path, data) -> Path:
    path.write_text(yaml.safe_dump(data))
    return path


def test_load_default_config() -> None:
    config = load_config()

    assert config.capture.backend == "any"
    assert config.capture.default_fps == 30.0
    assert config.capture.max_consecutive_empty_frames is None
    assert config.encoder.containers.get("mp4") == ("mp4v",)
    assert config.encoder.containers.get("avi") == ("MJPG", "XVID")
    assert config.encoder.containers.get("mkv") is None
    assert config.recording.progress_interval == 30
    assert config.preview.stop_keys == "qQ"
    assert config.logging.level == "INFO"


def test_user_config_overrides_defaults(tmp_path: Path) -> None:
    user = _write_yaml(
        tmp_path / "user.yaml",
        {
            "capture": {"default_fps": 60, "max_consecutive_empty_frames": 50},
            "preview": {"enabled": False},
        },
    )

    config = load_config(user)

    assert config.capture.default_fps == 60
    assert config.capture.max_consecutive_empty_frames == 50
    assert config.capture.open_timeout_s == 5.0
    assert config.preview.enabled is False
    assert config.preview.window_title == "Recording - Press 'q' to stop"


def test_user_containers_merge_with_defaults(tmp_path: Path) -> None:
    user = _write_yaml(tmp_path / "user.yaml", {"encoder": {"containers": {"mp4": ["avc1", "mp4v"]}}})

    config = load_config(user)

    assert config.encoder.containers.get("mp4") == ("avc1", "mp4v")
    assert config.encoder.containers.get("avi") == ("MJPG", "XVID")


def test_empty_user_file_uses_defaults(tmp_path: Path) -> None:
    user = tmp_path / "empty.yaml"
    user.write_text("")

    assert load_config(user) == load_config()


def test_missing_user_file(tmp_path: Path) -> None:
    with pytest.raises(InvalidConfigError, match="not found"):
        load_config(tmp_path / "nope.yaml")


def test_malformed_yaml(tmp_path: Path) -> None:
    user = tmp_path / "bad.yaml"
    user.write_text("capture: [unclosed\n")

    with pytest.raises(InvalidConfigError):
        load_config(user)


def test_non_mapping_root(tmp_path: Path) -> None:
    user = tmp_path / "list.yaml"
    user.write_text("- 1\n- 2\n")

    with pytest.raises(InvalidConfigError, match="mapping"):
        load_config(user)


def test_invalid_value_rejected(tmp_path: Path) -> None:
    user = _write_yaml(tmp_path / "user.yaml", {"capture": {"default_fps": 0}})

    with pytest.raises(ConfigValidationError) as exc_info:
        load_config(user)

    assert any("default_fps" in msg for msg in exc_info.value.validation_errors)


def test_build_config_fills_schema_defaults() -> None:
    config = build_config(
        {
            "capture": {"default_fps": 25},
            "encoder": {"containers": {"avi": ["MJPG"]}},
            "recording": {},
        }
    )

    assert config.capture.backend == "any"
    assert config.capture.release_timeout_s == 2.0
    assert config.encoder.color is True
    assert config.recording.progress_interval == 30
    assert config.preview.enabled is True


def test_build_config_does_not_mutate_input() -> None:
    data = {
        "capture": {"default_fps": 25},
        "encoder": {"containers": {"avi": ["MJPG"]}},
        "recording": {},
    }
    build_config(data)
    assert data["recording"] == {}


def test_bundled_defaults_exist() -> None:
    assert DEFAULT_CONFIG_PATH.is_file()
