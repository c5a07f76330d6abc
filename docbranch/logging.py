"""Shared ``docbranch`` logger hierarchy for the CLI, service and pipeline stages."""

from __future__ import annotations

import logging
from pathlib import Path

_ROOT = "docbranch"
_CONSOLE_FORMAT = "[docbranch] %(levelname)s %(message)s"
_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def get_logger(name: str | None = None) -> logging.Logger:
    """Child logger for one pipeline stage, e.g. ``get_logger("git")``."""
    return logging.getLogger(f"{_ROOT}.{name}" if name else _ROOT)


def configure_logging(
    *, verbose: bool = False, log_file: Path | None = None
) -> logging.Logger:
    """Route docbranch records to stderr and, optionally, a run log file.

    Safe to call once per CLI invocation or service start; earlier handlers
    are replaced.
    """
    level = logging.DEBUG if verbose else logging.INFO
    root = logging.getLogger(_ROOT)
    root.setLevel(level)
    root.propagate = False

    for handler in list(root.handlers):
        root.removeHandler(handler)

    sinks: list[logging.Handler] = [logging.StreamHandler()]
    sinks[0].setFormatter(logging.Formatter(_CONSOLE_FORMAT))
    if log_file is not None:
        file_sink = logging.FileHandler(log_file, encoding="utf-8")
        file_sink.setFormatter(logging.Formatter(_FILE_FORMAT))
        sinks.append(file_sink)

    for sink in sinks:
        sink.setLevel(level)
        root.addHandler(sink)
    return root


__all__ = ["configure_logging", "get_logger"]
