"""Drive Neovim inside tmux, capture its screen, and explain recordings."""

from .analysis import (
    AnalysisMode,
    AnalysisPipeline,
    AnalysisRequest,
    CommandRunner,
    ModelResolution,
    build_command,
)
from .config import LoggingConfig, Settings, load_settings
from .errors import (
    AnalysisFailed,
    DecodeFailed,
    MultiplexerError,
    NvimrunError,
    PatternTimeout,
    RecordingNotFound,
    SessionExists,
    SessionNotFound,
)
from .keys import normalize_key, normalize_keys
from .recording import (
    Event,
    EventKind,
    Recording,
    RecordingMeta,
    decode_recording,
    list_recordings,
    resolve_recording,
)
from .replay import ReplayResult, ReplayUnavailable, ScreenReplayer
from .screen import ScreenPattern, ScreenPoller
from .session import Session, SessionRegistry, SessionState, build_launch_command
from .timeline import preview, render_timeline
from .tmux import Multiplexer, TmuxMultiplexer

__all__ = [
    "AnalysisFailed",
    "AnalysisMode",
    "AnalysisPipeline",
    "AnalysisRequest",
    "CommandRunner",
    "DecodeFailed",
    "Event",
    "EventKind",
    "LoggingConfig",
    "ModelResolution",
    "Multiplexer",
    "MultiplexerError",
    "NvimrunError",
    "PatternTimeout",
    "Recording",
    "RecordingMeta",
    "RecordingNotFound",
    "ReplayResult",
    "ReplayUnavailable",
    "ScreenPattern",
    "ScreenPoller",
    "ScreenReplayer",
    "Session",
    "SessionExists",
    "SessionNotFound",
    "SessionRegistry",
    "SessionState",
    "Settings",
    "TmuxMultiplexer",
    "build_command",
    "build_launch_command",
    "decode_recording",
    "list_recordings",
    "load_settings",
    "normalize_key",
    "normalize_keys",
    "preview",
    "render_timeline",
    "resolve_recording",
]
