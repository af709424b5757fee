from __future__ import annotations

import logging
from pathlib import Path

import pytest

from nvimrun.config import (
    DEFAULT_COMMAND_TEMPLATE,
    DEFAULT_FALLBACK_MODEL,
    LoggingConfig,
    Settings,
    load_settings,
)
from nvimrun.utils.logging import setup_logging

_ENV_VARS = (
    "MCP_NVIM_TMUX_CMD",
    "MCP_NVIM_TMUX_MODEL",
    "MCP_NVIM_TMUX_ANALYZE_MODEL",
    "MCP_NVIM_TMUX_SUMMARIZE_MODEL",
    "NVIMRUN_PROMPTS_DIR",
    "NVIMRUN_RECORDINGS_DIR",
    "NVIMRUN_LOGGING__LEVEL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults() -> None:
    settings = Settings(_env_file=None)

    assert settings.command_template == DEFAULT_COMMAND_TEMPLATE
    assert settings.fallback_model == DEFAULT_FALLBACK_MODEL
    assert settings.default_model is None
    assert settings.recordings_dir == Path.home() / ".nvimrun" / "recordings"
    assert settings.editor_command == "nvim -u NONE"
    assert settings.settle_delay == 0.2


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("MCP_NVIM_TMUX_CMD", "gemini --model $MODEL")
    monkeypatch.setenv("MCP_NVIM_TMUX_MODEL", "D")
    monkeypatch.setenv("MCP_NVIM_TMUX_SUMMARIZE_MODEL", "S")
    monkeypatch.setenv("NVIMRUN_PROMPTS_DIR", str(tmp_path))
    monkeypatch.setenv("NVIMRUN_RECORDINGS_DIR", str(tmp_path / "casts"))
    monkeypatch.setenv("NVIMRUN_LOGGING__LEVEL", "DEBUG")

    settings = Settings(_env_file=None)

    assert settings.command_template == "gemini --model $MODEL"
    assert settings.default_model == "D"
    assert settings.summarize_model == "S"
    assert settings.analyze_model is None
    assert settings.prompts_dir == tmp_path
    assert settings.recordings_dir == tmp_path / "casts"
    assert settings.logging.level == "DEBUG"


def test_unprefixed_names_are_not_read_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DEFAULT_MODEL", "leaked-default")
    monkeypatch.setenv("ANALYZE_MODEL", "leaked-analyze")
    monkeypatch.setenv("COMMAND_TEMPLATE", "rm -rf $MODEL")
    monkeypatch.setenv("PROMPTS_DIR", "/tmp/leaked")

    settings = Settings(_env_file=None)

    assert settings.default_model is None
    assert settings.analyze_model is None
    assert settings.command_template == DEFAULT_COMMAND_TEMPLATE
    assert settings.prompts_dir is None


def test_field_names_still_accepted_as_arguments() -> None:
    settings = Settings(_env_file=None, default_model="D", command_template="llm -m $MODEL")

    assert settings.default_model == "D"
    assert settings.command_template == "llm -m $MODEL"


def test_load_settings_reads_env_file(tmp_path: Path) -> None:
    env_file = tmp_path / ".env"
    env_file.write_text("MCP_NVIM_TMUX_ANALYZE_MODEL=qwen3:14b\n", encoding="utf-8")

    settings = load_settings(env_file)

    assert settings.analyze_model == "qwen3:14b"


def test_load_settings_without_env_file(tmp_path: Path) -> None:
    settings = load_settings(tmp_path / "missing.env")

    assert settings.analyze_model is None


def test_recordings_dir_expands_user() -> None:
    settings = Settings(_env_file=None, recordings_dir="~/casts")

    assert settings.recordings_dir == Path.home() / "casts"


def test_setup_logging_replaces_handlers(tmp_path: Path) -> None:
    log_file = tmp_path / "nvimrun.log"
    config = LoggingConfig(level="debug", file=str(log_file))

    logger = setup_logging(config)
    setup_logging(config)

    ours = [handler for handler in logger.handlers if getattr(handler, "_nvimrun_handler", False)]
    assert len(ours) == 2
    assert logger.level == logging.DEBUG

    logging.getLogger("nvimrun.session").debug("hello from test")
    for handler in ours:
        handler.flush()
    assert "hello from test" in log_file.read_text(encoding="utf-8")

    for handler in ours:
        logger.removeHandler(handler)
        handler.close()
