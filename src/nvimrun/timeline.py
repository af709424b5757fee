"""Human and AI readable rendering of a decoded recording."""

from __future__ import annotations

import json
import logging
import re

from .recording import Event, EventKind, Recording
from .replay import ReplayUnavailable, ScreenReplayer, repr_escape

logger = logging.getLogger(__name__)

PREVIEW_LIMIT = 80
ELLIPSIS = "..."
FALLBACK_EVENT_LIMIT = 20

_ANSI_RE = re.compile(
    r"\x1b\][^\x07\x1b]*(?:\x07|\x1b\\)"  # OSC
    r"|\x1b\[[0-?]*[ -/]*[@-~]"  # CSI
    r"|\x1b[PX^_][^\x1b]*\x1b\\"  # DCS / SOS / PM / APC
    r"|\x1b[@-Z\\-_]"  # two-byte escapes
)
_WHITESPACE_RE = re.compile(r"\s+")


def strip_ansi(text: str) -> str:
    return _ANSI_RE.sub("", text)


def preview(payload: str, limit: int = PREVIEW_LIMIT) -> str:
    """Single-line, escape-free preview of ``payload`` capped at ``limit``.

    ``ELLIPSIS`` is appended only when characters were dropped.
    """
    text = strip_ansi(payload)
    text = _WHITESPACE_RE.sub(" ", text).strip()
    text = "".join(ch for ch in text if ch.isprintable())
    if len(text) > limit:
        return text[:limit] + ELLIPSIS
    return text


def format_event(event: Event) -> str:
    if event.kind is EventKind.OUTPUT:
        text = preview(event.payload)
    else:
        text = repr_escape(event.payload)
    return f"[{event.offset:6.2f}s] {event.kind.label}: {text}"


def render_timeline(recording: Recording, replayer: ScreenReplayer | None = None) -> str:
    """Header, one line per event, then the reconstructed final screen.

    When the replay cannot rebuild the screen the raw records of the first
    ``FALLBACK_EVENT_LIMIT`` events are shown instead.
    """
    replayer = replayer or ScreenReplayer()
    lines = [
        f"=== Recording: {recording.name} ===",
        f"Terminal size: {recording.width}x{recording.height}",
        "",
        "=== Session Timeline ===",
        "",
    ]
    lines.extend(format_event(event) for event in recording.events)
    lines.extend(["", "=== Final Screen State ===", ""])

    try:
        result = replayer.replay(recording)
    except ReplayUnavailable as exc:
        logger.warning("%s; falling back to raw events", exc)
        lines.append("Note: terminal replay unavailable, showing raw events")
        lines.append("")
        for event in recording.events[:FALLBACK_EVENT_LIMIT]:
            lines.append(json.dumps(event.to_record(), ensure_ascii=False))
        lines.append("... (truncated)")
    else:
        lines.extend(result.lines)

    return "\n".join(lines) + "\n"
