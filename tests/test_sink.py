"""Unit tests for the OpenCV video sink and its codec fallback."""

import shutil
import tempfile
import unittest
from pathlib import Path
from unittest.mock import Mock, patch

import cv2
import numpy as np

from contracts import Frame
from exceptions import EncoderInitError, FrameWriteError
from record.sink import OpenCVVideoSink


def _frame(width=64, height=48, channels=3, sequence=1):
    shape = (height, width) if channels == 1 else (height, width, channels)
    return Frame(
        camera_id="0",
        sequence=sequence,
        image=np.zeros(shape, dtype=np.uint8),
    )


class TestCodecFallback(unittest.TestCase):
    """Test video codec selection per container."""

    def setUp(self):
        self.temp_dir = Path(tempfile.mkdtemp())
        self.sink = OpenCVVideoSink({"mp4": ["mp4v", "avc1"], "avi": ["MJPG"]})

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    @patch("cv2.VideoWriter")
    @patch("cv2.VideoWriter_fourcc")
    def test_first_codec_success(self, mock_fourcc, mock_writer_class):
        """First configured codec is used when it opens."""
        mock_writer = Mock()
        mock_writer.isOpened.return_value = True
        mock_writer_class.return_value = mock_writer

        self.sink.open(self.temp_dir / "test.mp4", "mp4", 30.0, 640, 480)

        self.assertTrue(self.sink.is_open)
        self.assertEqual(self.sink.codec, "mp4v")
        mock_fourcc.assert_called_once_with(*"mp4v")
        args = mock_writer_class.call_args[0]
        self.assertEqual(args[0], str(self.temp_dir / "test.mp4"))
        self.assertEqual(args[2], 30.0)
        self.assertEqual(args[3], (640, 480))
        self.assertTrue(args[4])

    @patch("cv2.VideoWriter")
    @patch("cv2.VideoWriter_fourcc")
    def test_fallback_to_second_codec(self, mock_fourcc, mock_writer_class):
        """Falls back to the next codec and releases the failed writer."""
        failed_writer = Mock()
        failed_writer.isOpened.return_value = False
        success_writer = Mock()
        success_writer.isOpened.return_value = True
        mock_writer_class.side_effect = [failed_writer, success_writer]

        self.sink.open(self.temp_dir / "test.mp4", "mp4", 30.0, 640, 480)

        self.assertEqual(self.sink.codec, "avc1")
        mock_fourcc.assert_any_call(*"mp4v")
        mock_fourcc.assert_any_call(*"avc1")
        failed_writer.release.assert_called_once()
        success_writer.release.assert_not_called()

    @patch("cv2.VideoWriter")
    @patch("cv2.VideoWriter_fourcc")
    def test_all_codecs_fail(self, mock_fourcc, mock_writer_class):
        """EncoderInitError when no codec opens; every writer released."""
        writers = [Mock(), Mock()]
        for writer in writers:
            writer.isOpened.return_value = False
        mock_writer_class.side_effect = writers

        with self.assertRaises(EncoderInitError):
            self.sink.open(self.temp_dir / "test.mp4", "mp4", 30.0, 640, 480)

        self.assertFalse(self.sink.is_open)
        for writer in writers:
            writer.release.assert_called_once()

    @patch("cv2.VideoWriter")
    def test_unknown_container_fails_without_opening(self, mock_writer_class):
        with self.assertRaises(EncoderInitError):
            self.sink.open(self.temp_dir / "test.mkv", "mkv", 30.0, 640, 480)
        mock_writer_class.assert_not_called()

    @patch("cv2.VideoWriter")
    def test_invalid_geometry_fails_without_opening(self, mock_writer_class):
        with self.assertRaises(EncoderInitError):
            self.sink.open(self.temp_dir / "test.mp4", "mp4", 30.0, 0, 480)
        mock_writer_class.assert_not_called()


class TestSinkWrite(unittest.TestCase):
    """Test frame writes and release."""

    def setUp(self):
        patcher = patch("cv2.VideoWriter")
        self.mock_writer_class = patcher.start()
        self.addCleanup(patcher.stop)
        self.writer = Mock()
        self.writer.isOpened.return_value = True
        self.mock_writer_class.return_value = self.writer

        self.sink = OpenCVVideoSink({"mp4": ["mp4v"]})
        self.sink.open(Path("out.mp4"), "mp4", 30.0, 64, 48)

    def test_write_passes_image_to_writer(self):
        frame = _frame()
        self.sink.write(frame)

        self.writer.write.assert_called_once_with(frame.image)
        self.assertEqual(self.sink.frames_written, 1)

    def test_grayscale_converted_to_bgr(self):
        self.sink.write(_frame(channels=1))

        written = self.writer.write.call_args[0][0]
        self.assertEqual(written.shape, (48, 64, 3))

    def test_geometry_mismatch_rejected(self):
        with self.assertRaises(FrameWriteError):
            self.sink.write(_frame(width=32, height=24))
        self.writer.write.assert_not_called()
        self.assertEqual(self.sink.frames_written, 0)

    def test_encoder_error_wrapped(self):
        self.writer.write.side_effect = cv2.error("encoder exploded")
        with self.assertRaises(FrameWriteError):
            self.sink.write(_frame())
        self.assertEqual(self.sink.frames_written, 0)

    def test_write_after_release_rejected(self):
        self.sink.release()
        with self.assertRaises(FrameWriteError):
            self.sink.write(_frame())

    def test_release_is_idempotent(self):
        self.sink.release()
        self.sink.release()

        self.writer.release.assert_called_once()
        self.assertFalse(self.sink.is_open)

    def test_open_twice_rejected(self):
        with self.assertRaises(EncoderInitError):
            self.sink.open(Path("other.mp4"), "mp4", 30.0, 64, 48)


class TestRealEncoding(unittest.TestCase):
    """Encode a few frames with the real OpenCV writer."""

    def test_writes_readable_avi(self):
        temp_dir = Path(tempfile.mkdtemp())
        self.addCleanup(shutil.rmtree, temp_dir, ignore_errors=True)
        path = temp_dir / "clip.avi"

        sink = OpenCVVideoSink({"avi": ["MJPG"]})
        try:
            sink.open(path, "avi", 30.0, 64, 48)
        except EncoderInitError:
            self.skipTest("MJPG encoder not available in this OpenCV build")
        for i in range(5):
            sink.write(_frame(sequence=i + 1))
        sink.release()

        capture = cv2.VideoCapture(str(path))
        try:
            self.assertTrue(capture.isOpened())
            self.assertEqual(int(capture.get(cv2.CAP_PROP_FRAME_COUNT)), 5)
        finally:
            capture.release()
