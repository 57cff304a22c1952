"""Colored sync logger — ANSI-colored console tracing for the synchronization engine.

Provides a SyncLogger with color-coded output per engine stage, making it
easy to follow an optimistic mutation or a page load in the terminal.

Color scheme:
    🟢 Green   — Subscribe / Confirm
    🟡 Yellow  — Optimistic patch
    🔵 Blue    — Page loads
    🟣 Magenta — Aggregate counters
    🟠 Cyan    — Teardown
    🔴 Red     — Rollback / Errors
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


# ── Engine Stage Definitions ─────────────────────────────────────────

class SyncStage:
    """Predefined engine stages with colors and icons."""

    SUBSCRIBE = ("SUBSCRIBE", _Colors.GREEN, "📡")
    OPTIMISTIC = ("OPTIMISTIC", _Colors.YELLOW, "⚡")
    CONFIRM = ("CONFIRM", _Colors.GREEN, "✅")
    ROLLBACK = ("ROLLBACK", _Colors.RED, "↩️")
    PAGE = ("PAGE", _Colors.BLUE, "📄")
    COUNTER = ("COUNTER", _Colors.MAGENTA, "🔢")
    TEARDOWN = ("TEARDOWN", _Colors.CYAN, "🧹")
    ERROR = ("ERROR", _Colors.RED, "❌")


def _format_details(kwargs: dict[str, Any]) -> str:
    if not kwargs:
        return ""
    details = " | ".join(f"{k}={v}" for k, v in kwargs.items())
    return f" {_Colors.GRAY}({details}){_Colors.RESET}"


# ── SyncLogger ───────────────────────────────────────────────────────

class SyncLogger:
    """Color-coded logger for the synchronization engine.

    Usage:
        log = SyncLogger("SyncEngine")
        log.step(SyncStage.OPTIMISTIC, "like story-1", likes=6)
        with log.timed_step(SyncStage.PAGE, "Loading page 2"):
            page = await api.fetch_page(...)
    """

    def __init__(self, component_name: str):
        self._logger = logging.getLogger(component_name)

    def step(self, stage: tuple[str, str, str], message: str, **kwargs: Any) -> None:
        """Log one engine step with its stage color."""
        label, color, icon = stage
        formatted = (
            f"{color}{_Colors.BOLD}{icon} [{label}]{_Colors.RESET} "
            f"{color}{message}{_Colors.RESET}"
        )
        self._logger.info(formatted + _format_details(kwargs))

    def warning(self, stage: tuple[str, str, str], message: str, error: Exception | None = None) -> None:
        """Log a non-fatal problem (transport drop, rollback) in red at WARNING."""
        label, _, icon = stage
        formatted = (
            f"{_Colors.RED}{_Colors.BOLD}{icon} [{label}]{_Colors.RESET} "
            f"{_Colors.RED}{message}{_Colors.RESET}"
        )
        if error:
            formatted += f" {_Colors.DIM}→ {type(error).__name__}: {error}{_Colors.RESET}"
        self._logger.warning(formatted)

    def detail(self, message: str, **kwargs: Any) -> None:
        """Log additional detail (gray/dimmed) at DEBUG."""
        formatted = f"   {_Colors.GRAY}├─ {message}{_Colors.RESET}"
        self._logger.debug(formatted + _format_details(kwargs))

    @contextmanager
    def timed_step(self, stage: tuple[str, str, str], message: str, **kwargs: Any):
        """Context manager that logs start/end with elapsed time."""
        label, color, icon = stage
        start = time.perf_counter()
        try:
            yield
        except Exception as e:
            elapsed = time.perf_counter() - start
            self.warning(stage, f"{message} — failed after {elapsed:.2f}s", error=e)
            raise
        else:
            elapsed = time.perf_counter() - start
            self._logger.info(
                f"{color}{icon} [{label}]{_Colors.RESET} "
                f"{_Colors.GREEN}✓ {message} — {elapsed:.2f}s{_Colors.RESET}"
                + _format_details(kwargs)
            )
