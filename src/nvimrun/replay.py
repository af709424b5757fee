from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Iterable, Sequence

import pyte

from .errors import NvimrunError
from .recording import Event, EventKind, Recording

logger = logging.getLogger(__name__)

_DEC_PRIVATE_RE = re.compile(r"\x1b\[(\?[\d;]*)([hl])")
_OSC_RE = re.compile(r"\x1b\].*?(?:\x07|\x1b\\)", re.DOTALL)
_RESIZE_RE = re.compile(r"^\s*(\d+)\s*x\s*(\d+)\s*$")


class ReplayUnavailable(NvimrunError):
    """The terminal replay could not reconstruct a screen."""


@dataclass(slots=True)
class TerminalCapabilities:
    supports_dec_private: bool = False
    allow_osc: bool = False


@dataclass(slots=True)
class ParseWarning:
    kind: str
    original: str
    offset: float


class PrivateSequenceHandler:
    """Normalize or suppress private terminal control sequences."""

    def __init__(self, capabilities: TerminalCapabilities | None = None) -> None:
        self._capabilities = capabilities or TerminalCapabilities()

    def normalize(self, text: str, *, offset: float = 0.0) -> tuple[str, list[ParseWarning]]:
        warnings: list[ParseWarning] = []

        def _dec_repl(match: re.Match[str]) -> str:
            if self._capabilities.supports_dec_private:
                return match.group(0)
            warnings.append(ParseWarning(kind="dec-private", original=repr_escape(match.group(0)), offset=offset))
            return ""

        def _osc_repl(match: re.Match[str]) -> str:
            if self._capabilities.allow_osc:
                return match.group(0)
            warnings.append(ParseWarning(kind="osc-suppressed", original=repr_escape(match.group(0)), offset=offset))
            return ""

        text = _DEC_PRIVATE_RE.sub(_dec_repl, text)
        text = _OSC_RE.sub(_osc_repl, text)
        return text, warnings


@dataclass(slots=True)
class ReplayResult:
    lines: list[str]
    cursor_row: int
    cursor_col: int
    warnings: Sequence[ParseWarning]

    @property
    def text(self) -> str:
        return "\n".join(self.lines)


class ScreenReplayer:
    """Feed recorded output through ``pyte`` to rebuild the final screen."""

    def __init__(self, *, handler: PrivateSequenceHandler | None = None) -> None:
        self._handler = handler or PrivateSequenceHandler()

    def replay(self, recording: Recording) -> ReplayResult:
        screen = pyte.Screen(recording.width, recording.height)
        stream = pyte.Stream(screen)
        warnings: list[ParseWarning] = []

        try:
            for event in recording.events:
                self._apply(event, screen, stream, warnings)
        except Exception as exc:  # pyte raises assorted errors on hostile input
            msg = f"Terminal replay failed for {recording.name}: {exc}"
            raise ReplayUnavailable(msg) from exc

        if warnings:
            logger.debug("Suppressed %d private sequences replaying %s", len(warnings), recording.name)
        return ReplayResult(
            lines=_trim_trailing_blank(line.rstrip() for line in screen.display),
            cursor_row=screen.cursor.y,
            cursor_col=screen.cursor.x,
            warnings=tuple(warnings),
        )

    def _apply(
        self,
        event: Event,
        screen: pyte.Screen,
        stream: pyte.Stream,
        warnings: list[ParseWarning],
    ) -> None:
        if event.kind is EventKind.OUTPUT:
            normalized, found = self._handler.normalize(event.payload, offset=event.offset)
            warnings.extend(found)
            if normalized:
                stream.feed(normalized)
        elif event.kind is EventKind.RESIZE:
            size = parse_resize(event.payload)
            if size is not None:
                cols, rows = size
                screen.resize(lines=rows, columns=cols)


def parse_resize(payload: str) -> tuple[int, int] | None:
    """``"120x40"`` -> ``(120, 40)`` as (cols, rows)."""

    match = _RESIZE_RE.match(payload)
    if not match:
        return None
    return int(match.group(1)), int(match.group(2))


def repr_escape(seq: str) -> str:
    return json.dumps(seq, ensure_ascii=False)[1:-1]


def _trim_trailing_blank(lines: Iterable[str]) -> list[str]:
    result = list(lines)
    while result and not result[-1]:
        result.pop()
    return result
