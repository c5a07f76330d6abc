"""Logger hierarchy and handler setup."""

from __future__ import annotations

import logging
from pathlib import Path

from docbranch.logging import configure_logging, get_logger


def test_get_logger_nests_under_docbranch() -> None:
    assert get_logger().name == "docbranch"
    assert get_logger("git").name == "docbranch.git"


def test_configure_logging_replaces_handlers_and_writes_file(tmp_path: Path) -> None:
    log_file = tmp_path / "run.log"

    configure_logging()
    logger = configure_logging(verbose=True, log_file=log_file)
    get_logger("index").debug("index updated")
    for handler in logger.handlers:
        handler.flush()

    assert logger.level == logging.DEBUG
    assert len(logger.handlers) == 2
    assert "DEBUG docbranch.index: index updated" in log_file.read_text(encoding="utf-8")

    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)
