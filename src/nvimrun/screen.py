from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass, field
from typing import Callable

from .config import Settings
from .errors import PatternTimeout, SessionNotFound
from .tmux import Multiplexer

logger = logging.getLogger(__name__)

DEFAULT_WAIT_TIMEOUT = 5.0
DEFAULT_POLL_INTERVAL = 0.1


@dataclass(slots=True)
class ScreenPattern:
    """Substring-or-regex test applied to captured screen text.

    A pattern matches when it occurs verbatim, or when it compiles as a
    regular expression that searches successfully. Patterns that are not
    valid regular expressions are only tested as substrings.
    """

    pattern: str
    _regex: re.Pattern[str] | None = field(init=False, default=None, repr=False)

    def __post_init__(self) -> None:
        if not self.pattern:
            msg = "Pattern must not be empty"
            raise ValueError(msg)
        try:
            self._regex = re.compile(self.pattern)
        except re.error:
            self._regex = None

    def matches(self, text: str) -> bool:
        if self.pattern in text:
            return True
        if self._regex is not None and self._regex.search(text):
            return True
        return False


class ScreenPoller:
    """Capture session screens and wait for text to appear on them."""

    def __init__(
        self,
        multiplexer: Multiplexer,
        *,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if poll_interval <= 0:
            msg = "poll_interval must be positive"
            raise ValueError(msg)
        self._mux = multiplexer
        self._poll_interval = poll_interval
        self._clock = clock
        self._sleep = sleep

    @classmethod
    def from_settings(cls, multiplexer: Multiplexer, settings: Settings, **kwargs) -> "ScreenPoller":
        return cls(multiplexer, poll_interval=settings.poll_interval, **kwargs)

    def capture(self, name: str, with_color: bool = False) -> str:
        if not self._mux.has_session(name):
            raise SessionNotFound(name)
        return self._mux.capture(name, with_color=with_color)

    def wait_for(self, name: str, pattern: str, timeout: float = DEFAULT_WAIT_TIMEOUT) -> str:
        """Poll the screen until ``pattern`` shows up; return that capture.

        Raises:
            PatternTimeout: If the pattern is not seen before ``timeout``.
            SessionNotFound: If the session disappears while waiting.
        """
        condition = ScreenPattern(pattern)
        deadline = self._clock() + max(timeout, 0.0)
        polls = 0
        while True:
            screen = self.capture(name)
            polls += 1
            if condition.matches(screen):
                logger.debug("Pattern %r found in '%s' after %d polls", pattern, name, polls)
                return screen
            remaining = deadline - self._clock()
            if remaining <= 0:
                tail = screen.rstrip()[-200:]
                raise PatternTimeout(pattern, timeout, screen_tail=tail)
            self._sleep(min(self._poll_interval, remaining))
