from __future__ import annotations

import atexit
import logging
import secrets
import shlex
import tempfile
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable, Sequence

from .config import Settings
from .errors import SessionExists, SessionNotFound
from .keys import ENTER, ESCAPE, normalize_keys
from .tmux import Multiplexer, TmuxMultiplexer

logger = logging.getLogger(__name__)

SESSION_PREFIX = "nvim_mcp_"
LUA_FILE_TTL = 1.0
# Characters Vim's fnameescape() backslash-escapes on Unix.
_FNAME_SPECIAL = frozenset(" \t\n*?[{`$\\%#'\"|!<")


class SessionState(str, Enum):
    CREATED = "created"
    STOPPED = "stopped"


@dataclass(slots=True)
class Session:
    """Descriptor for a live editor session."""

    name: str
    width: int
    height: int
    recording: bool = False
    log_path: Path | None = None
    created_at: datetime = field(default_factory=datetime.now)
    state: SessionState = SessionState.CREATED

    def __post_init__(self) -> None:
        if not self.name:
            msg = "Session name must not be empty"
            raise ValueError(msg)
        if self.width <= 0 or self.height <= 0:
            msg = f"Session size must be positive, got {self.width}x{self.height}"
            raise ValueError(msg)

    @property
    def attach_hint(self) -> str:
        return f"tmux attach -t '{self.name}' -r -x {self.width} -y {self.height}"


def escape_filename(path: str | Path) -> str:
    """Escape ``path`` for use after an Ex command, like ``fnameescape()``."""
    text = str(path)
    escaped = "".join(f"\\{char}" if char in _FNAME_SPECIAL else char for char in text)
    if text == "-" or text[:1] in ("+", ">"):
        escaped = "\\" + escaped
    return escaped


def generate_session_name() -> str:
    return f"{SESSION_PREFIX}{secrets.token_hex(4)}"


def recording_path(recordings_dir: Path, name: str, now: datetime | None = None) -> Path:
    """Cast file for ``name``; microseconds keep concurrent starts apart."""

    stamp = (now or datetime.now()).strftime("%Y%m%d_%H%M%S_%f")
    return recordings_dir / f"{name}_{stamp}.cast"


def build_launch_command(
    editor_command: str,
    *,
    log_path: Path | None = None,
    recorder_command: str = "asciinema",
) -> str:
    """Compose the shell command tmux runs in the new pane.

    With ``log_path`` the editor is wrapped by ``asciinema rec``; stdin is
    recorded so keystrokes show up as input events.
    """
    if log_path is None:
        return editor_command
    return shlex.join(
        [recorder_command, "rec", "--stdin", "-q", str(log_path), "-c", editor_command]
    )


class SessionRegistry:
    """Create, drive and destroy editor sessions.

    The multiplexer decides whether a name exists. The local table only
    remembers metadata for sessions started here so they can be reported and
    cleaned up.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        multiplexer: Multiplexer | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._settings = settings or Settings()
        self._mux = multiplexer or TmuxMultiplexer(timeout=self._settings.tmux_timeout)
        self._sleep = sleep
        self._sessions: dict[str, Session] = {}
        self._lock = threading.Lock()

    @property
    def multiplexer(self) -> Multiplexer:
        return self._mux

    def sessions(self) -> list[Session]:
        with self._lock:
            return list(self._sessions.values())

    def start(
        self,
        name: str | None = None,
        width: int | None = None,
        height: int | None = None,
        record: bool = False,
    ) -> Session:
        name = name or generate_session_name()
        session = Session(
            name=name,
            width=width if width is not None else self._settings.default_width,
            height=height if height is not None else self._settings.default_height,
            recording=record,
        )

        if self._mux.has_session(name):
            raise SessionExists(name)

        if record:
            recordings_dir = self._settings.recordings_dir
            recordings_dir.mkdir(parents=True, exist_ok=True)
            session.log_path = recording_path(recordings_dir, name)

        command = build_launch_command(
            self._settings.editor_command,
            log_path=session.log_path,
            recorder_command=self._settings.recorder_command,
        )
        # A duplicate created between the check and here is rejected by the
        # multiplexer and raised as SessionExists.
        self._mux.new_session(name, session.width, session.height, command)

        with self._lock:
            self._sessions[name] = session

        if self._settings.settle_delay > 0:
            self._sleep(self._settings.settle_delay)

        if session.log_path is not None:
            logger.info(
                "Started session '%s' (%dx%d) recording to %s",
                name,
                session.width,
                session.height,
                session.log_path,
            )
        else:
            logger.info("Started session '%s' (%dx%d)", name, session.width, session.height)
        logger.debug("To watch: %s", session.attach_hint)
        return session

    def stop(self, name: str) -> None:
        self._require(name)
        self._mux.kill_session(name)
        with self._lock:
            session = self._sessions.pop(name, None)
        if session is not None:
            session.state = SessionState.STOPPED
        logger.info("Stopped session '%s'", name)

    def send_keys(self, name: str, keys: Sequence[str]) -> None:
        self._require(name)
        if not keys:
            return
        self._mux.send_keys(name, normalize_keys(keys))

    def send_literal(self, name: str, text: str) -> None:
        self._require(name)
        if not text:
            return
        self._mux.send_keys(name, [text], literal=True)

    def send_editor_command(self, name: str, command: str) -> None:
        if not command:
            msg = "No command provided"
            raise ValueError(msg)
        self.send_keys(name, [ESCAPE])
        self.send_literal(name, ":")
        self.send_literal(name, command)
        self.send_keys(name, [ENTER])

    def run_lua(self, name: str, code: str) -> None:
        if not code:
            msg = "No lua code provided"
            raise ValueError(msg)
        self.send_editor_command(name, f"lua {code}")

    def run_lua_file(self, name: str, code: str) -> Path:
        """Run multi-line Lua through ``:luafile`` to avoid escaping issues.

        The temporary file is removed shortly after the command is sent.
        """
        self._require(name)
        handle = tempfile.NamedTemporaryFile(
            "w", prefix="nvim_mcp_", suffix=".lua", delete=False, encoding="utf-8"
        )
        path = Path(handle.name)
        try:
            with handle:
                handle.write(code)
            self.send_editor_command(name, f"luafile {path}")
        except BaseException:
            path.unlink(missing_ok=True)
            raise

        timer = threading.Timer(LUA_FILE_TTL, path.unlink, kwargs={"missing_ok": True})
        timer.daemon = True
        timer.start()
        return path

    def edit_file(self, name: str, path: str | Path, line: int | None = None) -> None:
        self.send_editor_command(name, f"e {escape_filename(path)}")
        if line:
            self.send_editor_command(name, str(line))

    def insert_text(self, name: str, text: str) -> None:
        self.send_keys(name, ["i"])
        self.send_literal(name, text)
        self.send_keys(name, [ESCAPE])

    def cleanup(self) -> None:
        """Stop every session started by this registry, ignoring failures."""

        for session in self.sessions():
            try:
                self.stop(session.name)
            except Exception as exc:
                logger.warning("Cleanup of session '%s' failed: %s", session.name, exc)
                with self._lock:
                    self._sessions.pop(session.name, None)

    def install_cleanup(self) -> None:
        atexit.register(self.cleanup)

    def _require(self, name: str) -> None:
        if not self._mux.has_session(name):
            raise SessionNotFound(name)
