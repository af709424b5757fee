"""Configuration for nvimrun.

Settings come from environment variables (and an optional ``.env`` file).
The model and command variables keep the names used by the MCP front end
(``MCP_NVIM_TMUX_*``); everything else uses the ``NVIMRUN_`` prefix.
"""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

DEFAULT_RECORDINGS_DIR = Path.home() / ".nvimrun" / "recordings"
DEFAULT_COMMAND_TEMPLATE = "ollama run $MODEL"
DEFAULT_FALLBACK_MODEL = "qwen3:8b"


class LoggingConfig(BaseModel):
    level: str = Field(default="INFO")
    format: str = Field(
        default="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    file: str | None = Field(default=None)


class Settings(BaseSettings):
    """Root configuration.

    Precedence for model names is always operation-specific override, then
    ``default_model``, then ``fallback_model``; see
    :class:`nvimrun.analysis.ModelResolution`.
    """

    model_config = {
        "env_prefix": "NVIMRUN_",
        "env_nested_delimiter": "__",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
        "populate_by_name": True,
    }

    # AI command and models
    command_template: str = Field(
        default=DEFAULT_COMMAND_TEMPLATE,
        validation_alias="MCP_NVIM_TMUX_CMD",
    )
    default_model: str | None = Field(
        default=None,
        validation_alias="MCP_NVIM_TMUX_MODEL",
    )
    analyze_model: str | None = Field(
        default=None,
        validation_alias="MCP_NVIM_TMUX_ANALYZE_MODEL",
    )
    summarize_model: str | None = Field(
        default=None,
        validation_alias="MCP_NVIM_TMUX_SUMMARIZE_MODEL",
    )
    fallback_model: str = Field(default=DEFAULT_FALLBACK_MODEL)
    prompts_dir: Path | None = Field(
        default=None,
        validation_alias="NVIMRUN_PROMPTS_DIR",
    )

    # Sessions and recordings
    recordings_dir: Path = Field(default=DEFAULT_RECORDINGS_DIR)
    editor_command: str = Field(default="nvim -u NONE")
    recorder_command: str = Field(default="asciinema")
    default_width: int = Field(default=80, gt=0)
    default_height: int = Field(default=24, gt=0)
    settle_delay: float = Field(default=0.2, ge=0)
    poll_interval: float = Field(default=0.1, gt=0)
    tmux_timeout: float = Field(default=10.0, gt=0)

    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("recordings_dir", "prompts_dir", mode="after")
    @classmethod
    def _expand_user(cls, value: Path | None) -> Path | None:
        return value.expanduser() if value is not None else None


def load_settings(env_file: Path | str | None = ".env") -> Settings:
    """Load settings from the environment and an optional ``.env`` file.

    Priority: env vars > .env file > defaults
    """
    if env_file is not None and Path(env_file).exists():
        logger.info("Loading environment overrides from %s", env_file)
        return Settings(_env_file=env_file)
    return Settings(_env_file=None)
