"""Terminal multiplexer primitives.

The registry and poller only need five operations from the multiplexer:
check, create and kill a named session, send input, and capture the visible
pane. :class:`Multiplexer` is that contract; :class:`TmuxMultiplexer` drives
the real ``tmux`` binary.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from abc import ABC, abstractmethod
from typing import Sequence

from .errors import MultiplexerError, SessionExists, SessionNotFound

logger = logging.getLogger(__name__)

_DUPLICATE_MARKERS = ("duplicate session",)
_MISSING_MARKERS = ("can't find session", "can't find pane", "no server running", "session not found")


class Multiplexer(ABC):
    """Abstract interface for a session-addressable terminal multiplexer."""

    @abstractmethod
    def has_session(self, name: str) -> bool:
        """Return True when a live session called ``name`` exists."""

    @abstractmethod
    def new_session(self, name: str, width: int, height: int, command: str) -> None:
        """Create a detached session running ``command``.

        Raises:
            SessionExists: If the multiplexer rejects ``name`` as a duplicate.
        """

    @abstractmethod
    def kill_session(self, name: str) -> None:
        """Terminate the session unconditionally."""

    @abstractmethod
    def send_keys(self, name: str, keys: Sequence[str], *, literal: bool = False) -> None:
        """Deliver key names, or raw text when ``literal`` is set."""

    @abstractmethod
    def capture(self, name: str, *, with_color: bool = False) -> str:
        """Return the visible pane contents."""


class TmuxMultiplexer(Multiplexer):
    """Drive ``tmux`` through its command line."""

    def __init__(self, binary: str = "tmux", *, timeout: float | None = 10.0) -> None:
        self._binary = binary
        self._timeout = timeout

    @staticmethod
    def available(binary: str = "tmux") -> bool:
        return shutil.which(binary) is not None

    def has_session(self, name: str) -> bool:
        proc = self._run(["has-session", "-t", _session_target(name)])
        return proc.returncode == 0

    def new_session(self, name: str, width: int, height: int, command: str) -> None:
        proc = self._run(
            ["new-session", "-d", "-s", name, "-x", str(width), "-y", str(height), command]
        )
        if proc.returncode != 0:
            if _stderr_has(proc, _DUPLICATE_MARKERS):
                raise SessionExists(name)
            self._raise_failure("new-session", name, proc)

        # Keep the requested size when a client attaches to watch.
        window_size = self._run(["set-option", "-t", _session_target(name), "window-size", "manual"])
        if window_size.returncode != 0:
            logger.debug("tmux window-size option not applied for %s: %s", name, window_size.stderr.strip())

    def kill_session(self, name: str) -> None:
        proc = self._run(["kill-session", "-t", _session_target(name)])
        if proc.returncode != 0:
            self._raise_failure("kill-session", name, proc)

    def send_keys(self, name: str, keys: Sequence[str], *, literal: bool = False) -> None:
        args = ["send-keys", "-t", _pane_target(name)]
        if literal:
            args.append("-l")
        # "--" stops option parsing so text like "-x" is typed, not parsed.
        args.append("--")
        args.extend(keys)
        proc = self._run(args)
        if proc.returncode != 0:
            self._raise_failure("send-keys", name, proc)

    def capture(self, name: str, *, with_color: bool = False) -> str:
        args = ["capture-pane", "-p", "-t", _pane_target(name)]
        if with_color:
            args.append("-e")
        proc = self._run(args)
        if proc.returncode != 0:
            self._raise_failure("capture-pane", name, proc)
        return proc.stdout

    def _run(self, args: Sequence[str]) -> subprocess.CompletedProcess[str]:
        command = [self._binary, *args]
        logger.debug("Running %s", command)
        try:
            return subprocess.run(
                command,
                text=True,
                capture_output=True,
                check=False,
                timeout=self._timeout,
            )
        except FileNotFoundError as exc:
            msg = f"Multiplexer binary not found: {self._binary}"
            raise MultiplexerError(msg) from exc
        except subprocess.TimeoutExpired as exc:
            msg = f"tmux {args[0]} did not finish within {self._timeout} seconds"
            raise MultiplexerError(msg) from exc
        except OSError as exc:
            msg = f"Cannot run {self._binary}: {exc}"
            raise MultiplexerError(msg) from exc

    @staticmethod
    def _raise_failure(action: str, name: str, proc: subprocess.CompletedProcess[str]) -> None:
        if _stderr_has(proc, _MISSING_MARKERS):
            raise SessionNotFound(name)
        msg = f"tmux {action} failed for session '{name}': {proc.stderr.strip() or proc.returncode}"
        raise MultiplexerError(msg)


def _session_target(name: str) -> str:
    # "=" forces an exact match; without it tmux matches name prefixes.
    return f"={name}"


def _pane_target(name: str) -> str:
    return f"={name}:"


def _stderr_has(proc: subprocess.CompletedProcess[str], markers: Sequence[str]) -> bool:
    stderr = (proc.stderr or "").lower()
    return any(marker in stderr for marker in markers)
