from __future__ import annotations

import time

import pytest

from nvimrun import PatternTimeout, ScreenPattern, ScreenPoller, SessionNotFound
from nvimrun.config import Settings


def _live(fake_mux, name: str = "editor") -> None:
    fake_mux.live[name] = {"width": 80, "height": 24, "command": "nvim"}


def test_capture_requires_live_session(fake_mux) -> None:
    poller = ScreenPoller(fake_mux)

    with pytest.raises(SessionNotFound):
        poller.capture("ghost")


def test_capture_passes_color_flag(fake_mux) -> None:
    _live(fake_mux)
    fake_mux.screens["editor"] = ["\x1b[31m~\x1b[0m"]
    poller = ScreenPoller(fake_mux)

    assert poller.capture("editor", with_color=True) == "\x1b[31m~\x1b[0m"
    assert fake_mux.calls[-1] == ("capture", "editor", True)


def test_wait_for_returns_matching_screen(fake_mux) -> None:
    _live(fake_mux)
    fake_mux.screens["editor"] = ["~\n~", "~\n~", "-- INSERT --"]
    poller = ScreenPoller(fake_mux, poll_interval=0.01)

    screen = poller.wait_for("editor", "INSERT", timeout=2)

    assert screen == "-- INSERT --"
    captures = [call for call in fake_mux.calls if call[0] == "capture"]
    assert len(captures) == 3


def test_wait_for_accepts_regex(fake_mux) -> None:
    _live(fake_mux)
    fake_mux.screens["editor"] = ["notes.txt 12L, 340B written"]
    poller = ScreenPoller(fake_mux, poll_interval=0.01)

    assert "written" in poller.wait_for("editor", r"\d+L, \d+B written", timeout=1)


def test_wait_for_invalid_regex_falls_back_to_substring(fake_mux) -> None:
    _live(fake_mux)
    fake_mux.screens["editor"] = ["E492: Not an editor command: foo("]
    poller = ScreenPoller(fake_mux, poll_interval=0.01)

    assert poller.wait_for("editor", "foo(", timeout=1)


def test_wait_for_times_out_within_bound(fake_mux) -> None:
    _live(fake_mux)
    fake_mux.screens["editor"] = ["nothing here"]
    poller = ScreenPoller(fake_mux, poll_interval=0.05)

    started = time.monotonic()
    with pytest.raises(PatternTimeout) as excinfo:
        poller.wait_for("editor", "never", timeout=0.2)
    elapsed = time.monotonic() - started

    assert excinfo.value.pattern == "never"
    assert excinfo.value.timeout == 0.2
    assert isinstance(excinfo.value, TimeoutError)
    assert elapsed < 0.2 + 0.05 + 0.2


def test_wait_for_never_sleeps_past_deadline(fake_mux) -> None:
    _live(fake_mux)
    fake_mux.screens["editor"] = ["idle"]
    now = [0.0]
    sleeps: list[float] = []

    def sleep(seconds: float) -> None:
        sleeps.append(seconds)
        now[0] += seconds

    poller = ScreenPoller(fake_mux, poll_interval=0.25, clock=lambda: now[0], sleep=sleep)

    with pytest.raises(PatternTimeout):
        poller.wait_for("editor", "ready", timeout=1.0)

    assert sum(sleeps) == pytest.approx(1.0)
    assert sleeps == [0.25, 0.25, 0.25, 0.25]


def test_poll_interval_comes_from_settings(fake_mux) -> None:
    _live(fake_mux)
    fake_mux.screens["editor"] = ["idle"]
    now = [0.0]
    sleeps: list[float] = []

    def sleep(seconds: float) -> None:
        sleeps.append(seconds)
        now[0] += seconds

    settings = Settings(_env_file=None, poll_interval=0.5)
    poller = ScreenPoller.from_settings(fake_mux, settings, clock=lambda: now[0], sleep=sleep)

    with pytest.raises(PatternTimeout):
        poller.wait_for("editor", "ready", timeout=1.0)

    assert sleeps == [0.5, 0.5]


def test_wait_for_missing_session(fake_mux) -> None:
    poller = ScreenPoller(fake_mux)

    with pytest.raises(SessionNotFound):
        poller.wait_for("ghost", "x", timeout=0.1)


def test_screen_pattern_requires_text() -> None:
    with pytest.raises(ValueError):
        ScreenPattern("")
    assert ScreenPattern("a.c").matches("abc")
    assert ScreenPattern("[").matches("x[y")
    assert not ScreenPattern("[").matches("xy")
