"""Colored job-lifecycle logger, ANSI-colored console lines per lifecycle stage.

Makes it easy to follow one job from creation to its decision in the
terminal.

Color scheme:
    Green   -> job creation / upload
    Blue    -> classification callback
    Magenta -> decision step
    Cyan    -> device registration and events
    Red     -> failures
    Gray    -> timing / details
"""

import logging
import time
from contextlib import contextmanager
from typing import Any


# ── ANSI Color Codes ─────────────────────────────────────────────────

class _Colors:
    """ANSI escape codes for terminal colors."""

    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    BLUE = "\033[94m"
    MAGENTA = "\033[95m"
    CYAN = "\033[96m"
    GRAY = "\033[90m"


# ── Lifecycle Stage Definitions ──────────────────────────────────────

class LifecycleStage:
    """Predefined lifecycle stages as (label, color, icon) tuples."""

    CREATE = ("CREATE", _Colors.GREEN, "🆕")
    UPLOAD = ("UPLOAD", _Colors.GREEN, "📤")
    CLASSIFY = ("CLASSIFY", _Colors.BLUE, "🏷️")
    DECIDE = ("DECIDE", _Colors.MAGENTA, "⚖️")
    COMPLETE = ("COMPLETE", _Colors.GREEN, "✅")
    FAIL = ("FAIL", _Colors.RED, "❌")
    DEVICE = ("DEVICE", _Colors.CYAN, "🗑️")
    IGNORED = ("IGNORED", _Colors.YELLOW, "↩️")


Stage = tuple[str, str, str]


def _format_details(kwargs: dict[str, Any]) -> str:
    return " | ".join(f"{k}={v}" for k, v in kwargs.items())


# ── JobLifecycleLogger ───────────────────────────────────────────────

class JobLifecycleLogger:
    """Color-coded logger for job lifecycle events.

    Usage:
        log = JobLifecycleLogger("OrchestrationService")
        log.event(LifecycleStage.CREATE, "Job created", job_id=job.job_id)
        with log.timed_step(LifecycleStage.DECIDE, "Running decision step"):
            decision = await engine.decide(classification)
    """

    def __init__(self, component_name: str):
        self._logger = logging.getLogger(component_name)

    def event(self, stage: Stage, message: str, **kwargs: Any) -> None:
        label, color, icon = stage
        formatted = (
            f"{color}{_Colors.BOLD}{icon} [{label}]{_Colors.RESET} "
            f"{color}{message}{_Colors.RESET}"
        )
        if kwargs:
            formatted += f" {_Colors.GRAY}({_format_details(kwargs)}){_Colors.RESET}"
        self._logger.info(formatted)

    def failure(self, stage: Stage, message: str, error: BaseException | None = None, **kwargs: Any) -> None:
        label, _, icon = stage
        formatted = (
            f"{_Colors.RED}{_Colors.BOLD}{icon} [{label}]{_Colors.RESET} "
            f"{_Colors.RED}{message}{_Colors.RESET}"
        )
        if error is not None:
            formatted += f" {_Colors.DIM}-> {type(error).__name__}: {error}{_Colors.RESET}"
        if kwargs:
            formatted += f" {_Colors.GRAY}({_format_details(kwargs)}){_Colors.RESET}"
        self._logger.warning(formatted)

    def detail(self, message: str, **kwargs: Any) -> None:
        formatted = f"   {_Colors.GRAY}├─ {message}{_Colors.RESET}"
        if kwargs:
            formatted += f" {_Colors.DIM}({_format_details(kwargs)}){_Colors.RESET}"
        self._logger.debug(formatted)

    @contextmanager
    def timed_step(self, stage: Stage, message: str, **kwargs: Any):
        """Log the end of a step with its elapsed time, or its failure."""
        start = time.perf_counter()
        try:
            yield
        except Exception as e:
            elapsed = time.perf_counter() - start
            self.failure(stage, f"{message} failed after {elapsed:.3f}s", error=e, **kwargs)
            raise
        else:
            elapsed = time.perf_counter() - start
            self.event(stage, f"{message} ({elapsed:.3f}s)", **kwargs)
