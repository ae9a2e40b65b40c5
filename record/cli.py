"""Command-line interface for recording video with epoch timestamps."""

from __future__ import annotations

import argparse
import math
import signal
import sys
from pathlib import Path
from typing import NamedTuple, Optional, Sequence

from capture import SimulatedCamera
from configs.settings import load_config
from exceptions import RecorderError
from log_config.logger import configure_logging, get_logger

from .session import StopToken, create_session

logger = get_logger(__name__)

REQUIRED_SUFFIX = ".mp4"
DEFAULT_CAMERA_ID = 0


class CameraIdParse(NamedTuple):
    value: int
    ok: bool


def parse_camera_id(text: Optional[str]) -> CameraIdParse:
    """Parse a camera index, falling back to the default camera.

    Returns the parsed value with ``ok=True``, or ``DEFAULT_CAMERA_ID`` with
    ``ok=False`` when ``text`` is not an integer. A missing argument is not
    an error.
    """
    if text is None:
        return CameraIdParse(DEFAULT_CAMERA_ID, True)
    stripped = text.strip()
    digits = stripped[1:] if stripped[:1] in ("+", "-") else stripped
    if not digits.isdecimal():
        return CameraIdParse(DEFAULT_CAMERA_ID, False)
    return CameraIdParse(int(stripped), True)


def has_required_suffix(output_file: str) -> bool:
    return output_file.endswith(REQUIRED_SUFFIX)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="epoch-recorder",
        description="Record camera video with a per-frame epoch timestamp ledger",
        epilog=(
            "Examples:\n"
            "  epoch-recorder recording.mp4\n"
            "  epoch-recorder /path/to/my_video.mp4 1"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("output", help="Path where the MP4 video will be saved")
    parser.add_argument("camera_id", nargs="?", help="Camera index (default: 0)")
    parser.add_argument("--config", type=Path, help="YAML file overriding the default configuration")
    parser.add_argument("--no-preview", action="store_true", help="Do not show the live preview window")
    limit = parser.add_mutually_exclusive_group()
    limit.add_argument("--max-frames", type=int, help="Stop after this many frames")
    limit.add_argument("--duration", type=float, help="Stop after this many seconds of video")
    parser.add_argument(
        "--simulate",
        type=int,
        metavar="N",
        help="Record N synthetic frames instead of opening a camera",
    )
    parser.add_argument("--log-dir", type=Path, help="Also write rotating log files to this directory")
    parser.add_argument("--log-level", help="Console log level (default from config)")
    return parser


def _frame_limit(args: argparse.Namespace, fps: float) -> Optional[int]:
    if args.max_frames is not None:
        return args.max_frames
    if args.duration is not None:
        return max(1, math.ceil(round(args.duration * fps, 6)))
    return None


def run(args: argparse.Namespace) -> int:
    if not has_required_suffix(args.output):
        print(f"Error: Output file must have {REQUIRED_SUFFIX} extension", file=sys.stderr)
        return 1
    if args.max_frames is not None and args.max_frames < 1:
        print("Error: --max-frames must be positive", file=sys.stderr)
        return 1
    if args.duration is not None and not args.duration > 0:
        print("Error: --duration must be positive", file=sys.stderr)
        return 1

    camera_id, ok = parse_camera_id(args.camera_id)
    if not ok:
        print(
            f"Error: Invalid camera ID '{args.camera_id}'. Using default camera ({DEFAULT_CAMERA_ID})",
            file=sys.stderr,
        )

    try:
        config = load_config(args.config)
    except RecorderError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    log_dir = args.log_dir or config.logging.log_dir
    configure_logging(args.log_level or config.logging.level, log_dir)

    print("RGB Recorder with Epoch Timestamps")
    print("===================================")
    print(f"Output file: {args.output}")
    print(f"Camera ID: {camera_id}")

    camera = None
    if args.simulate is not None:
        camera = SimulatedCamera(frame_count=args.simulate, realtime=True)
    session = create_session(config, camera=camera, show_preview=False if args.no_preview else None)

    token = StopToken()

    def _on_sigint(signum, frame):
        token.request_stop("SIGINT")

    with session:
        try:
            session_config = session.initialize(args.output, camera_id)
        except RecorderError as e:
            logger.error(f"Failed to initialize video recorder: {e}")
            return 1

        print("Press 'q' in the preview window or Ctrl+C to stop recording")
        previous_handler = signal.signal(signal.SIGINT, _on_sigint)
        try:
            summary = session.start(token, max_frames=_frame_limit(args, session_config.fps))
        finally:
            signal.signal(signal.SIGINT, previous_handler)

    print()
    print("Recording finished!")
    print(f"Total frames recorded: {summary.frames_recorded}")
    print(f"Video saved to: {summary.video_path}")
    if summary.ledger_written:
        print(f"Timestamps saved to: {summary.ledger_path}")
    else:
        print(f"Warning: timestamps could not be saved to {summary.ledger_path}", file=sys.stderr)

    if summary.stop_reason.is_failure:
        print(f"Recording ended early: {summary.stop_reason.value}", file=sys.stderr)
        return 1
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    return run(args)


if __name__ == "__main__":
    sys.exit(main())
