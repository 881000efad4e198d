"""Loguru helpers for consistent logging in CLI commands."""

from __future__ import annotations

import sys
from pathlib import Path

from loguru import logger

from swaprpc.utils.helpers import ensure_dir

_SINK_IDS: dict[str, int] = {}
# Loguru's own stderr handler is id 0 until configure_stderr replaces it.
_stderr_sink_id: int | None = 0


def get_log_dir() -> Path:
    return Path.home() / ".swaprpc" / "logs"


def ensure_rotating_log_file(name: str, level: str = "INFO") -> Path:
    """Ensure a rotating log sink for the given command name."""
    log_path = get_log_dir() / f"{name}.log"
    if name in _SINK_IDS:
        return log_path
    ensure_dir(log_path.parent)
    sink_id = logger.add(
        str(log_path),
        level=level.upper(),
        rotation="10 MB",
        retention="14 days",
        enqueue=True,
        encoding="utf-8",
        backtrace=False,
        diagnose=False,
    )
    _SINK_IDS[name] = sink_id
    return log_path


def configure_stderr(level: str = "INFO") -> None:
    """Replace the stderr sink with one at ``level``; file sinks are kept."""
    global _stderr_sink_id
    sink_id = logger.add(sys.stderr, level=level.upper())
    if _stderr_sink_id is not None:
        try:
            logger.remove(_stderr_sink_id)
        except ValueError:
            logger.debug("stderr sink {} was already removed", _stderr_sink_id)
    _stderr_sink_id = sink_id
