"""Output path helpers for video and timestamp ledger files."""

from __future__ import annotations

from pathlib import Path
from typing import Union

LEDGER_SUFFIX = ".json"


def derive_ledger_path(video_path: Union[str, Path]) -> Path:
    """Return the ledger file path that accompanies a video file.

    The ledger sits in the same directory as the video and shares its stem;
    only the final extension is replaced (``clip.v2.mp4`` -> ``clip.v2.json``).
    A path without an extension simply gains one, and a path without a name
    (``""`` or ``"/"``) yields a bare ``.json`` in that directory.

    Args:
        video_path: Video output path

    Returns:
        Ledger path
    """
    path = Path(video_path)
    return path.parent / f"{path.stem}{LEDGER_SUFFIX}"


def container_of(video_path: Union[str, Path]) -> str:
    """Return the container format tag for a path (its lower-cased extension)."""
    return Path(video_path).suffix.lstrip(".").lower()


def ensure_parent_dir(path: Path) -> Path:
    """Create the parent directory of ``path`` if it does not exist."""
    parent = path.parent
    if str(parent) not in ("", "."):
        parent.mkdir(parents=True, exist_ok=True)
    return parent


__all__ = ["LEDGER_SUFFIX", "container_of", "derive_ledger_path", "ensure_parent_dir"]
