"""Timestamp ledger pairing encoded frames with wall-clock instants."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Dict, Iterator, List, Tuple, Union

from jsonschema import Draft7Validator

from contracts import TimestampEntry
from exceptions import InvalidLedgerError, LedgerWriteError
from log_config.logger import get_logger

logger = get_logger(__name__)

LEDGER_SCHEMA = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "array",
    "items": {
        "type": "object",
        "required": ["frame", "timestamp_ns"],
        "properties": {
            "frame": {"type": "integer", "minimum": 0},
            "timestamp_ns": {"type": "integer"},
        },
        "additionalProperties": False,
    },
}


class TimestampLedger:
    """Append-only, in-memory sequence of timestamp entries.

    The position of an entry is its frame index: entry ``i`` always has
    ``frame_index == i``. The ledger is persisted once, with ``write``, when
    the owning session stops.
    """

    def __init__(self) -> None:
        self._entries: List[TimestampEntry] = []

    def append(self, timestamp_ns: int) -> TimestampEntry:
        entry = TimestampEntry(frame_index=len(self._entries), timestamp_ns=int(timestamp_ns))
        self._entries.append(entry)
        return entry

    def reset(self) -> None:
        self._entries.clear()

    @property
    def entries(self) -> Tuple[TimestampEntry, ...]:
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[TimestampEntry]:
        return iter(self._entries)

    def __getitem__(self, index: int) -> TimestampEntry:
        return self._entries[index]

    @property
    def span_ns(self) -> int:
        """Nanoseconds between the first and last entry (0 when fewer than two)."""
        if len(self._entries) < 2:
            return 0
        return self._entries[-1].timestamp_ns - self._entries[0].timestamp_ns

    def to_records(self) -> List[Dict[str, int]]:
        return [entry.to_record() for entry in self._entries]

    def write(self, path: Union[str, Path]) -> Path:
        """Write the whole ledger to ``path`` as a JSON array.

        The file is replaced atomically: records go to a temporary sibling
        which is then renamed over the destination.

        Args:
            path: Destination ledger file

        Returns:
            The written path

        Raises:
            LedgerWriteError: If the file cannot be written
        """
        path = Path(path)
        tmp_path = path.with_name(f".{path.name}.tmp")
        payload = _render(self.to_records())

        try:
            with open(tmp_path, "w", encoding="utf-8") as handle:
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_path, path)
        except OSError as e:
            logger.error(f"Cannot write timestamp ledger {path}: {e}")
            try:
                tmp_path.unlink()
            except OSError:
                pass
            raise LedgerWriteError(f"Cannot write timestamp ledger {path}: {e}") from e

        logger.debug(f"Wrote {len(self._entries)} timestamp records to {path}")
        return path


def _render(records: List[Dict[str, int]]) -> str:
    # One record per line
    if not records:
        return "[]\n"
    body = ",\n".join(f"  {json.dumps(record)}" for record in records)
    return f"[\n{body}\n]\n"


def load_ledger(path: Union[str, Path]) -> List[TimestampEntry]:
    """Read a persisted ledger back into timestamp entries.

    Args:
        path: Ledger file

    Returns:
        Entries in frame order

    Raises:
        InvalidLedgerError: If the file is not valid JSON, does not match the
            ledger schema, or its frame numbers are not 0, 1, 2, ...
    """
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise InvalidLedgerError(f"Cannot read timestamp ledger {path}: {e}") from e

    errors = sorted(Draft7Validator(LEDGER_SCHEMA).iter_errors(data), key=lambda err: list(err.path))
    if errors:
        first = errors[0]
        where = "/".join(str(p) for p in first.path) or "root"
        raise InvalidLedgerError(f"Invalid timestamp ledger {path} at {where}: {first.message}")

    entries = []
    for position, record in enumerate(data):
        if record["frame"] != position:
            raise InvalidLedgerError(
                f"Invalid timestamp ledger {path}: record {position} has frame {record['frame']}"
            )
        entries.append(TimestampEntry(frame_index=record["frame"], timestamp_ns=record["timestamp_ns"]))
    return entries


__all__ = ["LEDGER_SCHEMA", "TimestampLedger", "load_ledger"]
