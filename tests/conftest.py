from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterable, Sequence

import pytest

from nvimrun.config import Settings
from nvimrun.errors import SessionExists, SessionNotFound
from nvimrun.tmux import Multiplexer


class FakeMultiplexer(Multiplexer):
    """In-memory stand-in for tmux that records every call."""

    def __init__(self) -> None:
        self.live: dict[str, dict[str, Any]] = {}
        self.calls: list[tuple[Any, ...]] = []
        self.screens: dict[str, list[str]] = {}
        self.reject_next_create = False

    def has_session(self, name: str) -> bool:
        return name in self.live

    def new_session(self, name: str, width: int, height: int, command: str) -> None:
        self.calls.append(("new", name, width, height, command))
        if name in self.live or self.reject_next_create:
            self.reject_next_create = False
            raise SessionExists(name)
        self.live[name] = {"width": width, "height": height, "command": command}

    def kill_session(self, name: str) -> None:
        self.calls.append(("kill", name))
        if self.live.pop(name, None) is None:
            raise SessionNotFound(name)

    def send_keys(self, name: str, keys: Sequence[str], *, literal: bool = False) -> None:
        self.calls.append(("literal" if literal else "keys", name, list(keys)))

    def capture(self, name: str, *, with_color: bool = False) -> str:
        self.calls.append(("capture", name, with_color))
        frames = self.screens.get(name) or [""]
        # The last frame sticks once the scripted sequence is exhausted.
        return frames.pop(0) if len(frames) > 1 else frames[0]

    def input_calls(self, name: str) -> list[tuple[Any, ...]]:
        return [call for call in self.calls if call[0] in {"keys", "literal"} and call[1] == name]


@pytest.fixture()
def artifact_dir(tmp_path: Path) -> Path:
    return tmp_path / "artifacts"


@pytest.fixture()
def fake_mux() -> FakeMultiplexer:
    return FakeMultiplexer()


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(
        _env_file=None,
        recordings_dir=tmp_path / "recordings",
        settle_delay=0,
        poll_interval=0.01,
    )


def write_cast(
    path: Path,
    events: Iterable[Sequence[Any]],
    *,
    header: dict[str, Any] | None = None,
) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    header = header or {"version": 2, "width": 80, "height": 24, "timestamp": 1700000000}
    lines = [json.dumps(header)]
    lines.extend(json.dumps(list(event)) for event in events)
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


@pytest.fixture()
def make_cast():
    return write_cast
