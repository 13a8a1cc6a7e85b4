"""Tests for logging_setup module."""

from __future__ import annotations

import logging
from pathlib import Path

from rich.logging import RichHandler

from mediamatch.logging_setup import NOISY_LOGGERS, set_console_quiet, setup_logging


class TestSetupLogging:
    """Tests for setup_logging function."""

    def test_default_setup(self) -> None:
        logger = setup_logging()
        assert logger.name == "mediamatch"
        assert logger.level == logging.INFO
        assert logger.propagate is False
        assert any(isinstance(h, RichHandler) for h in logger.handlers)

    def test_custom_log_level(self) -> None:
        assert setup_logging(log_level="DEBUG").level == logging.DEBUG
        assert setup_logging(log_level="warning").level == logging.WARNING

    def test_invalid_log_level_defaults_to_info(self) -> None:
        assert setup_logging(log_level="INVALID").level == logging.INFO

    def test_repeated_setup_replaces_handlers(self) -> None:
        setup_logging()
        logger = setup_logging()
        assert len(logger.handlers) == 1

    def test_plain_console(self) -> None:
        logger = setup_logging(rich_console=False)
        assert not any(isinstance(h, RichHandler) for h in logger.handlers)

    def test_with_log_file(self, tmp_path: Path) -> None:
        """The file handler receives DEBUG even when the console is quieter."""
        log_file = tmp_path / "logs" / "mediamatch.log"
        logger = setup_logging(log_level="WARNING", log_file=log_file)

        file_handlers = [h for h in logger.handlers if isinstance(h, logging.FileHandler)]
        assert len(file_handlers) == 1

        logging.getLogger("mediamatch.reconcile").debug("Wave 1/1 complete")
        for handler in file_handlers:
            handler.flush()
        assert "Wave 1/1 complete" in log_file.read_text()

        for handler in file_handlers:
            handler.close()
            logger.removeHandler(handler)

    def test_quiet_console(self) -> None:
        logger = setup_logging(quiet_console=True)
        assert logger.handlers[0].level == logging.WARNING

    def test_noisy_loggers_quieted(self) -> None:
        setup_logging(log_level="DEBUG")
        for name in NOISY_LOGGERS:
            assert logging.getLogger(name).level == logging.WARNING


class TestSetConsoleQuiet:
    """Tests for set_console_quiet()."""

    def test_toggle(self) -> None:
        logger = setup_logging()
        set_console_quiet(True)
        assert logger.handlers[0].level == logging.WARNING
        set_console_quiet(False)
        assert logger.handlers[0].level == logging.INFO
