"""Layered logging helpers for SidewayQR.

Records carry a ``layer`` extra (step, progress, success, warning, error,
debug) that the console formatter turns into an icon and colour.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import os
import sys
from typing import Any, Dict, Optional

__all__ = [
    "logger",
    "step",
    "progress",
    "success",
    "debug_detail",
    "get_logger",
    "spinner",
    "set_log_profile",
    "LayeredAdapter",
    "LayeredFormatter",
]

ROOT_LOGGER_NAME = "sideway_qr"

# ---------------------------------------------------------------------------
# Palette and helpers

_PALETTE: Dict[str, str] = {
    "reset": "\033[0m",
    "dim": "\033[2m",
    "bold": "\033[1m",
    "blue": "\033[34m",
    "green": "\033[32m",
    "yellow": "\033[33m",
    "red": "\033[31m",
    "cyan": "\033[36m",
    "magenta": "\033[35m",
}

LOG_PROFILE = (os.getenv("LOG_PROFILE") or "user").lower()
LOG_FILE = os.getenv("LOG_FILE")
NO_COLOR = os.getenv("NO_COLOR") is not None
LOG_LEVEL_OVERRIDE = os.getenv("LOG_LEVEL")

_PROFILE_LEVELS = {
    "quiet": logging.WARNING,
    "debug": logging.DEBUG,
    "verbose": logging.DEBUG,
    "user": logging.INFO,
}


def _apply_color(text: str, *styles: str) -> str:
    if NO_COLOR or not styles:
        return text
    colors = "".join(_PALETTE.get(style, "") for style in styles)
    return f"{colors}{text}{_PALETTE['reset']}"


# ---------------------------------------------------------------------------
# Formatter and adapter


class LayeredFormatter(logging.Formatter):
    """Formatter that decorates output based on the record.layer attribute."""

    LAYER_MAPPINGS: Dict[str, Dict[str, Any]] = {
        "step": {"icon": "▶", "style": ("blue", "bold")},
        "progress": {"icon": "…", "style": ("cyan",)},
        "success": {"icon": "✓", "style": ("green", "bold")},
        "warning": {"icon": "!", "style": ("yellow", "bold")},
        "error": {"icon": "✗", "style": ("red", "bold")},
        "debug": {"icon": "·", "style": ("magenta",)},
        "user": {"icon": "•", "style": ()},
    }

    def format(self, record: logging.LogRecord) -> str:
        layer = getattr(record, "layer", "user")
        mapping = self.LAYER_MAPPINGS.get(layer, self.LAYER_MAPPINGS["user"])
        message = super().format(record)
        if layer == "debug":
            return f"{_apply_color('[debug]', 'dim')} {message}"
        prefix = _apply_color(mapping["icon"], *mapping["style"])
        return f"{prefix} {message}"


class LayeredAdapter(logging.LoggerAdapter):
    """Logger adapter that injects a 'layer' extra value."""

    def __init__(self, logger: logging.Logger, default_layer: str = "user"):
        super().__init__(logger, {"layer": default_layer})

    def log(self, level: int, msg: Any, *args, layer: Optional[str] = None, **kwargs) -> None:
        if not self.isEnabledFor(level):
            return
        extra = kwargs.setdefault("extra", {})
        extra.setdefault("layer", layer or self.extra.get("layer", "user"))
        self.logger.log(level, msg, *args, **kwargs)

    def warning(self, msg: Any, *args, **kwargs) -> None:  # type: ignore[override]
        kwargs.setdefault("layer", "warning")
        super().warning(msg, *args, **kwargs)

    def error(self, msg: Any, *args, **kwargs) -> None:  # type: ignore[override]
        kwargs.setdefault("layer", "error")
        super().error(msg, *args, **kwargs)

    def exception(self, msg: Any, *args, **kwargs) -> None:  # type: ignore[override]
        kwargs.setdefault("layer", "error")
        super().exception(msg, *args, **kwargs)


# ---------------------------------------------------------------------------
# Configuration


def _console_level() -> int:
    level = _PROFILE_LEVELS.get(LOG_PROFILE, logging.INFO)
    if LOG_LEVEL_OVERRIDE:
        override = getattr(logging, LOG_LEVEL_OVERRIDE.upper(), None)
        if isinstance(override, int):
            level = override
    return level


def _configure_base_logger() -> LayeredAdapter:
    base_logger = logging.getLogger(ROOT_LOGGER_NAME)
    if base_logger.handlers:
        return LayeredAdapter(base_logger)

    base_logger.setLevel(logging.DEBUG)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(_console_level())
    console_handler.setFormatter(LayeredFormatter("%(message)s"))
    base_logger.addHandler(console_handler)

    if LOG_FILE:
        try:
            file_handler = logging.FileHandler(LOG_FILE, encoding="utf-8")
        except OSError as exc:
            base_logger.warning("Failed to configure logfile '%s': %s", LOG_FILE, exc)
        else:
            file_handler.setFormatter(
                logging.Formatter(
                    "%(asctime)s [%(levelname)s] %(name)s %(message)s",
                    datefmt="%Y-%m-%d %H:%M:%S",
                )
            )
            file_handler.setLevel(logging.DEBUG)
            base_logger.addHandler(file_handler)

    return LayeredAdapter(base_logger)


logger = _configure_base_logger()


# ---------------------------------------------------------------------------
# Public helpers


def step(message: str) -> None:
    """Log a major step in the workflow."""
    logger.log(logging.INFO, message, layer="step")


def progress(message: str) -> None:
    """Log a short-lived progress update."""
    logger.log(logging.INFO, message, layer="progress")


def success(message: str) -> None:
    """Log successful completion of an action."""
    logger.log(logging.INFO, message, layer="success")


def debug_detail(message: str) -> None:
    """Log detailed debug information (hidden unless LOG_PROFILE=debug)."""
    logger.log(logging.DEBUG, message, layer="debug")


def get_logger(name: str, *, layer: str = "user") -> LayeredAdapter:
    """Return a child logger using the layered formatting."""
    child = logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
    return LayeredAdapter(child, default_layer=layer)


# ---------------------------------------------------------------------------
# Spinner support


class _Spinner:
    FRAMES = ["⠋", "⠙", "⠹", "⠸", "⠼", "⠴", "⠦", "⠧", "⠇", "⠏"]

    def __init__(self, message: str):
        self.message = message
        self._task: Optional[asyncio.Task[None]] = None
        self._running = False
        self._failed = False
        self._interactive = sys.stdout.isatty()

    async def __aenter__(self) -> "_Spinner":
        self._running = True
        if self._interactive:
            self._task = asyncio.create_task(self._animate())
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        self._running = False
        if self._task:
            await self._task
        if self._interactive:
            _clear_current_line()

        if exc_type is not None:
            logger.error(f"{self.message} – {exc}")
        elif self._failed:
            logger.error(self.message)
        else:
            success(self.message)
        return False

    async def _animate(self) -> None:
        for frame in itertools.cycle(self.FRAMES):
            if not self._running:
                break
            sys.stdout.write(f"\r{_apply_color(frame, 'cyan')} {self.message}")
            sys.stdout.flush()
            await asyncio.sleep(0.12)

    def fail(self, reason: Optional[str] = None) -> None:
        self._failed = True
        if reason:
            self.message = f"{self.message} – {reason}"


def _clear_current_line() -> None:
    sys.stdout.write("\r")
    sys.stdout.write(" " * 120)
    sys.stdout.write("\r")
    sys.stdout.flush()


def spinner(message: str) -> _Spinner:
    """Return an async spinner context manager."""
    return _Spinner(message)


def set_log_profile(profile: str) -> None:
    """Adjust console logging verbosity at runtime."""
    global LOG_PROFILE
    profile = (profile or "user").lower()
    level = _PROFILE_LEVELS.get(profile, logging.INFO)

    base_logger = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in base_logger.handlers:
        if type(handler) is logging.StreamHandler:
            handler.setLevel(level)

    LOG_PROFILE = profile
    os.environ["LOG_PROFILE"] = profile
