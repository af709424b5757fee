"""Explain recorded sessions with an external AI command.

The command comes from a template such as ``"ollama run $MODEL"``. The
resolved command reads the prompt on stdin and answers on stdout.
``DETAILED`` runs one analysis pass; ``SUMMARIZED`` feeds that analysis into
a second, summarizing pass.
"""

from __future__ import annotations

import logging
import shlex
import subprocess
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from string import Template
from typing import Sequence

from .config import DEFAULT_COMMAND_TEMPLATE, DEFAULT_FALLBACK_MODEL, Settings
from .errors import AnalysisFailed, DecodeFailed
from .recording import Recording, decode_recording
from .replay import ScreenReplayer
from .timeline import render_timeline

logger = logging.getLogger(__name__)

ANALYZE_PROMPT_FILE = "analyze_recording.txt"
SUMMARIZE_PROMPT_FILE = "summarize_analysis.txt"

DEFAULT_ANALYZE_PROMPT = """\
You are analyzing a Neovim terminal recording. Provide a step-by-step breakdown of the user's actions.

The recording format shows:
- Timeline events with timestamps [X.XXs]
- INPUT: user keystrokes and commands
- OUTPUT: terminal responses and screen updates
- Final screen state showing the result

Analyze what happened by explaining:
1. Initial state when Neovim started
2. Each user input and its purpose
3. Any mode changes (Normal/Insert/Visual/Command)
4. Errors or unexpected behavior
5. Whether the user achieved their goal

Focus on Vim-specific details like:
- Mode transitions (i for insert, Esc for normal, : for command)
- Commands executed (like :w, :q, etc.)
- Text entered or edited
- File operations

Be concise but thorough. Explain what the user was trying to do and what actually happened.
Don't focus on the actual text content, but rather how the Neovim interface responded to their actions.


RECORDING DATA:"""

DEFAULT_SUMMARIZE_PROMPT = "Summarize this Neovim session analysis: {analysis}"


class AnalysisMode(str, Enum):
    DETAILED = "detailed"
    SUMMARIZED = "summarized"


@dataclass(slots=True, frozen=True)
class ModelResolution:
    """Model precedence: stage override, then ``default_model``, then fallback."""

    default_model: str | None = None
    analyze_model: str | None = None
    summarize_model: str | None = None
    fallback_model: str = DEFAULT_FALLBACK_MODEL

    @classmethod
    def from_settings(cls, settings: Settings) -> "ModelResolution":
        return cls(
            default_model=settings.default_model,
            analyze_model=settings.analyze_model,
            summarize_model=settings.summarize_model,
            fallback_model=settings.fallback_model,
        )

    def analyze_model_name(self) -> str:
        return self.analyze_model or self.default_model or self.fallback_model

    def summarize_model_name(self) -> str:
        return self.summarize_model or self.default_model or self.fallback_model

    def stage_models(self, mode: AnalysisMode) -> list[str]:
        """Model used by each stage ``mode`` runs, in order."""

        if mode is AnalysisMode.SUMMARIZED:
            return [self.analyze_model_name(), self.summarize_model_name()]
        return [self.analyze_model_name()]


@dataclass(slots=True)
class AnalysisRequest:
    target: Recording | Path
    mode: AnalysisMode = AnalysisMode.DETAILED
    resolution: ModelResolution = ModelResolution()
    command_template: str = DEFAULT_COMMAND_TEMPLATE
    prompts_dir: Path | None = None

    @classmethod
    def from_settings(
        cls,
        target: Recording | Path,
        settings: Settings,
        *,
        mode: AnalysisMode = AnalysisMode.DETAILED,
    ) -> "AnalysisRequest":
        return cls(
            target=target,
            mode=mode,
            resolution=ModelResolution.from_settings(settings),
            command_template=settings.command_template,
            prompts_dir=settings.prompts_dir,
        )


def substitute_model(template: str, model: str) -> str:
    """Replace ``$MODEL`` / ``${MODEL}``; other ``$`` text is left alone."""

    return Template(template).safe_substitute(MODEL=model)


def build_command(template: str, model: str) -> list[str]:
    argv = shlex.split(substitute_model(template, model))
    if not argv:
        msg = f"Command template {template!r} is empty"
        raise AnalysisFailed(msg)
    return argv


class CommandRunner:
    """Run an AI command with the prompt on stdin and return its stdout."""

    def __init__(self, *, timeout: float | None = None) -> None:
        self._timeout = timeout

    def run(self, argv: Sequence[str], prompt: str) -> str:
        logger.debug("Running analysis command %s (%d prompt chars)", list(argv), len(prompt))
        try:
            proc = subprocess.run(
                list(argv),
                input=prompt,
                text=True,
                capture_output=True,
                check=False,
                timeout=self._timeout,
            )
        except OSError as exc:
            msg = f"Cannot run {argv[0]}: {exc}"
            raise AnalysisFailed(msg) from exc
        except subprocess.TimeoutExpired as exc:
            msg = f"{argv[0]} did not finish within {self._timeout} seconds"
            raise AnalysisFailed(msg) from exc

        if proc.returncode != 0:
            stderr = (proc.stderr or "").strip()[-500:]
            msg = f"{argv[0]} exited with status {proc.returncode}: {stderr}"
            raise AnalysisFailed(msg)
        if not proc.stdout.strip():
            msg = f"{argv[0]} produced no output"
            raise AnalysisFailed(msg)
        return proc.stdout


class AnalysisPipeline:
    """Analyze, then optionally summarize, a recorded session."""

    def __init__(
        self,
        runner: CommandRunner | None = None,
        *,
        replayer: ScreenReplayer | None = None,
    ) -> None:
        self._runner = runner or CommandRunner()
        self._replayer = replayer

    def analyze(self, request: AnalysisRequest) -> str:
        analysis = self._analyze_stage(request)
        if request.mode is AnalysisMode.DETAILED:
            return analysis
        return self._summarize_stage(request, analysis)

    def _analyze_stage(self, request: AnalysisRequest) -> str:
        timeline = self._render(request.target)
        prompt = load_prompt(request.prompts_dir, ANALYZE_PROMPT_FILE, DEFAULT_ANALYZE_PROMPT)
        model = request.resolution.analyze_model_name()
        argv = build_command(request.command_template, model)
        logger.info("Analyzing recording with model %s", model)
        return self._runner.run(argv, f"{prompt}\n{timeline}")

    def _summarize_stage(self, request: AnalysisRequest, analysis: str) -> str:
        template = load_prompt(request.prompts_dir, SUMMARIZE_PROMPT_FILE, DEFAULT_SUMMARIZE_PROMPT)
        model = request.resolution.summarize_model_name()
        argv = build_command(request.command_template, model)
        logger.info("Summarizing analysis with model %s", model)
        return self._runner.run(argv, summary_prompt(template, analysis))

    def _render(self, target: Recording | Path) -> str:
        try:
            recording = target if isinstance(target, Recording) else decode_recording(target)
            timeline = render_timeline(recording, self._replayer)
        except DecodeFailed as exc:
            msg = f"Failed to get recording data: {exc}"
            raise AnalysisFailed(msg) from exc
        if not timeline.strip():
            msg = "Failed to get recording data: empty timeline"
            raise AnalysisFailed(msg)
        return timeline


def load_prompt(prompts_dir: Path | None, filename: str, default: str) -> str:
    if prompts_dir is not None:
        path = prompts_dir / filename
        if path.is_file():
            return path.read_text(encoding="utf-8").rstrip("\n")
    return default


def summary_prompt(template: str, analysis: str) -> str:
    if "{analysis}" in template:
        return template.replace("{analysis}", analysis)
    return f"{template}\n{analysis}"
