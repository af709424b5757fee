from __future__ import annotations


class NvimrunError(Exception):
    """Base class for all nvimrun failures."""


class MultiplexerError(NvimrunError):
    """tmux could not be run or rejected a command for an unexpected reason."""


class SessionExists(NvimrunError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Session '{name}' already exists. Stop it first.")
        self.name = name


class SessionNotFound(NvimrunError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Session '{name}' does not exist.")
        self.name = name


class PatternTimeout(NvimrunError, TimeoutError):
    def __init__(self, pattern: str, timeout: float, *, screen_tail: str = "") -> None:
        msg = f"Pattern not found within {timeout} seconds: {pattern}"
        if screen_tail:
            msg = f"{msg}. Screen tail: {screen_tail}"
        super().__init__(msg)
        self.pattern = pattern
        self.timeout = timeout
        self.screen_tail = screen_tail


class RecordingNotFound(NvimrunError):
    def __init__(self, pattern: str) -> None:
        super().__init__(f"No recording matching '{pattern}' found.")
        self.pattern = pattern


class DecodeFailed(NvimrunError):
    """The recording header or an event line could not be parsed."""


class AnalysisFailed(NvimrunError):
    """The AI command failed, produced no output, or had nothing to analyse."""
