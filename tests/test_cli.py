"""Tests for the epoch-recorder command line."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from capture import SimulatedCamera
from exceptions import FrameWriteError
from log_config.logger import configure_logging
from record.cli import build_parser, main, parse_camera_id
from record.sink import FrameSink


class ListSink(FrameSink):
    def __init__(self, fail_on_write=None):
        self.frames = []
        self.fail_on_write = fail_on_write
        self._open = False

    @property
    def is_open(self):
        return self._open

    def open(self, path, container, fps, width, height):
        self._open = True

    def write(self, frame):
        if self.fail_on_write is not None and len(self.frames) + 1 == self.fail_on_write:
            raise FrameWriteError("encoder rejected frame")
        self.frames.append(frame)

    def release(self):
        self._open = False


@pytest.fixture
def sink():
    sink = ListSink()
    with patch("record.session.OpenCVVideoSink", return_value=sink):
        yield sink


def _records(video: Path):
    return json.loads(video.with_suffix(".json").read_text())


class TestParseCameraId:
    @pytest.mark.parametrize(
        "text, expected",
        [
            (None, (0, True)),
            ("0", (0, True)),
            ("2", (2, True)),
            (" 3 ", (3, True)),
            ("+1", (1, True)),
            ("-1", (-1, True)),
            ("abc", (0, False)),
            ("1abc", (0, False)),
            ("", (0, False)),
            ("-", (0, False)),
            ("1.5", (0, False)),
            ("²", (0, False)),
            ("1²", (0, False)),
            ("٣", (3, True)),
        ],
    )
    def test_parse(self, text, expected):
        assert tuple(parse_camera_id(text)) == expected


class TestArguments:
    def test_output_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])

    def test_frame_limits_are_exclusive(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["out.mp4", "--max-frames", "3", "--duration", "1"])

    @pytest.mark.parametrize("name", ["recording.avi", "recording.MP4", "recording", "mp4"])
    def test_output_must_end_with_mp4(self, tmp_path, capsys, name):
        assert main([str(tmp_path / name), "--simulate", "1", "--no-preview"]) == 1
        assert ".mp4 extension" in capsys.readouterr().err
        assert not any(tmp_path.iterdir())

    def test_non_positive_max_frames(self, tmp_path):
        assert main([str(tmp_path / "out.mp4"), "--max-frames", "0"]) == 1

    def test_non_positive_duration(self, tmp_path):
        assert main([str(tmp_path / "out.mp4"), "--duration", "-2"]) == 1

    def test_missing_config_file(self, tmp_path, capsys):
        code = main([str(tmp_path / "out.mp4"), "--config", str(tmp_path / "missing.yaml")])
        assert code == 1
        assert "not found" in capsys.readouterr().err


class TestRecording:
    def test_simulated_recording(self, tmp_path, capsys, sink):
        video = tmp_path / "session" / "recording.mp4"

        code = main([str(video), "--simulate", "5", "--no-preview"])

        assert code == 0
        out = capsys.readouterr().out
        assert "Recording finished!" in out
        assert "Total frames recorded: 5" in out
        assert f"Timestamps saved to: {video.with_suffix('.json')}" in out
        assert [r["frame"] for r in _records(video)] == [0, 1, 2, 3, 4]
        assert len(sink.frames) == 5

    def test_invalid_camera_id_falls_back_to_default(self, tmp_path, capsys, sink):
        video = tmp_path / "recording.mp4"

        code = main([str(video), "abc", "--simulate", "2", "--no-preview"])

        captured = capsys.readouterr()
        assert code == 0
        assert "Invalid camera ID 'abc'" in captured.err
        assert "Camera ID: 0" in captured.out

    def test_max_frames(self, tmp_path, sink):
        video = tmp_path / "recording.mp4"
        assert main([str(video), "--simulate", "10", "--max-frames", "3", "--no-preview"]) == 0
        assert len(_records(video)) == 3

    def test_duration(self, tmp_path, sink):
        video = tmp_path / "recording.mp4"
        assert main([str(video), "--simulate", "10", "--duration", "0.1", "--no-preview"]) == 0
        # 0.1 s at the simulated 30 fps
        assert len(_records(video)) == 3

    def test_zero_frame_simulation_writes_empty_ledger(self, tmp_path, sink):
        video = tmp_path / "recording.mp4"
        assert main([str(video), "--simulate", "0", "--no-preview"]) == 0
        assert _records(video) == []

    def test_unavailable_camera(self, tmp_path, sink):
        video = tmp_path / "recording.mp4"
        with patch("record.cli.SimulatedCamera", return_value=SimulatedCamera(available=False)):
            code = main([str(video), "--simulate", "5", "--no-preview"])

        assert code == 1
        assert not video.with_suffix(".json").exists()

    def test_write_failure_exits_nonzero(self, tmp_path, capsys):
        video = tmp_path / "recording.mp4"
        with patch("record.session.OpenCVVideoSink", return_value=ListSink(fail_on_write=3)):
            code = main([str(video), "--simulate", "5", "--no-preview"])

        assert code == 1
        assert "write_failed" in capsys.readouterr().err
        assert len(_records(video)) == 2

    def test_log_dir(self, tmp_path, sink):
        video = tmp_path / "recording.mp4"
        log_dir = tmp_path / "logs"

        assert main([str(video), "--simulate", "1", "--no-preview", "--log-dir", str(log_dir)]) == 0
        assert log_dir.is_dir()


@pytest.fixture(autouse=True)
def _reset_logging():
    yield
    configure_logging()
