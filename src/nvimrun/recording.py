"""Locate and decode asciicast recordings.

A recording is a header line (a JSON object declaring the terminal size)
followed by one JSON array per line, ``[time, code, data]``. The decoder reads
the file once and never writes to it.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Iterator

import jsonschema

from .errors import DecodeFailed, RecordingNotFound
from .schema import validate_event, validate_header

logger = logging.getLogger(__name__)

CAST_SUFFIX = ".cast"


class EventKind(str, Enum):
    INPUT = "i"
    OUTPUT = "o"
    MARKER = "m"
    RESIZE = "r"

    @property
    def label(self) -> str:
        return self.name


@dataclass(slots=True, frozen=True)
class Event:
    offset: float
    kind: EventKind
    payload: str

    def to_record(self) -> list[float | str]:
        return [self.offset, self.kind.value, self.payload]


@dataclass(slots=True, frozen=True)
class Recording:
    source: Path
    width: int
    height: int
    events: tuple[Event, ...] = field(default_factory=tuple)
    version: int = 2

    @property
    def name(self) -> str:
        return self.source.name

    @property
    def duration(self) -> float:
        return self.events[-1].offset if self.events else 0.0


@dataclass(slots=True, frozen=True)
class RecordingMeta:
    name: str
    path: Path
    size: int
    modified: datetime


def list_recordings(recordings_dir: Path) -> list[RecordingMeta]:
    """Recordings in ``recordings_dir``, most recently modified first."""

    if not recordings_dir.is_dir():
        return []
    entries: list[RecordingMeta] = []
    for path in recordings_dir.glob(f"*{CAST_SUFFIX}"):
        if not path.is_file():
            continue
        stat = path.stat()
        entries.append(
            RecordingMeta(
                name=path.name,
                path=path,
                size=stat.st_size,
                modified=datetime.fromtimestamp(stat.st_mtime),
            )
        )
    entries.sort(key=lambda meta: meta.modified, reverse=True)
    return entries


def resolve_recording(pattern: str | Path, recordings_dir: Path) -> Path:
    """Map an exact path or a name fragment to a recording file.

    Raises:
        RecordingNotFound: If nothing in ``recordings_dir`` matches.
    """
    candidate = Path(pattern)
    if candidate.is_file():
        return candidate

    needle = str(pattern)
    if not needle or not recordings_dir.is_dir():
        raise RecordingNotFound(needle)

    matches = [
        path
        for path in recordings_dir.iterdir()
        if path.is_file() and needle in path.name
    ]
    if not matches:
        raise RecordingNotFound(needle)
    return max(matches, key=lambda path: path.stat().st_mtime)


def decode_recording(path: Path) -> Recording:
    """Parse ``path`` into a :class:`Recording` with events in file order.

    asciicast v3 stores intervals between events; they are accumulated so
    every :class:`Event` carries an absolute offset either way.

    Raises:
        DecodeFailed: If the file is unreadable, empty, or malformed.
    """
    try:
        with path.open("r", encoding="utf-8", errors="replace") as handle:
            lines = iter(handle.readlines())
    except OSError as exc:
        msg = f"Cannot read recording {path}: {exc}"
        raise DecodeFailed(msg) from exc

    header_line = next(lines, "")
    header = _parse_header(path, header_line)
    version = int(header.get("version", 2))
    if "term" in header:
        width, height = int(header["term"]["cols"]), int(header["term"]["rows"])
    else:
        width, height = int(header["width"]), int(header["height"])

    events = tuple(_parse_events(path, lines, relative=version >= 3))
    logger.debug("Decoded %d events from %s", len(events), path)
    return Recording(source=path, width=width, height=height, events=events, version=version)


def _parse_header(path: Path, line: str) -> dict:
    if not line.strip():
        msg = f"Recording {path} is empty"
        raise DecodeFailed(msg)
    try:
        header = json.loads(line)
        validate_header(header)
    except (json.JSONDecodeError, jsonschema.ValidationError) as exc:
        msg = f"Malformed header in {path}: {_reason(exc)}"
        raise DecodeFailed(msg) from exc
    return header


def _parse_events(path: Path, lines: Iterator[str], *, relative: bool) -> Iterator[Event]:
    elapsed = 0.0
    for lineno, raw in enumerate(lines, start=2):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        try:
            record = json.loads(line)
            validate_event(record)
        except (json.JSONDecodeError, jsonschema.ValidationError) as exc:
            msg = f"Malformed event on line {lineno} of {path}: {_reason(exc)}"
            raise DecodeFailed(msg) from exc

        time_value, code, data = record
        if relative:
            elapsed += float(time_value)
            offset = elapsed
        else:
            offset = float(time_value)

        try:
            kind = EventKind(code)
        except ValueError:
            logger.debug("Skipping event with unknown code %r on line %d of %s", code, lineno, path)
            continue
        yield Event(offset=offset, kind=kind, payload=data)


def _reason(exc: Exception) -> str:
    if isinstance(exc, jsonschema.ValidationError):
        return exc.message
    return str(exc)
