"""
Test suite for core.logger module.

Tests cover:
- get_logger level overrides
- ColoredFormatter output and record isolation
- setup_logging console and file handlers, config fallbacks
"""

import logging
from unittest.mock import patch

import pytest

from core.logger import ColoredFormatter, get_logger, get_module_logger, setup_logging


@pytest.fixture
def restore_root_logger():
    """Put the root logger's handlers and level back after the test."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


# ============================================================================
# UNIT TESTS - Loggers and formatter
# ============================================================================


@pytest.mark.unit
def test_get_logger_with_level():
    logger = get_logger("buildsqlx.tests.level", level="debug")
    assert logger.name == "buildsqlx.tests.level"
    assert logger.level == logging.DEBUG
    assert get_module_logger("buildsqlx.tests.level") is logger


@pytest.mark.unit
def test_colored_formatter_adds_color_and_emoji():
    record = logging.LogRecord("buildsqlx", logging.WARNING, __file__, 1, "careful", None, None)
    out = ColoredFormatter("%(emoji)s %(levelname)s %(message)s").format(record)

    assert out.startswith("⚠️")
    assert "\033[33mWARNING\033[0m" in out
    assert out.endswith("careful")


@pytest.mark.regression
def test_colored_formatter_leaves_record_untouched():
    """Test other handlers still see the plain level name."""
    record = logging.LogRecord("buildsqlx", logging.ERROR, __file__, 1, "boom", None, None)
    ColoredFormatter("%(levelname)s %(message)s").format(record)
    assert record.levelname == "ERROR"
    assert logging.Formatter("%(levelname)s").format(record) == "ERROR"


# ============================================================================
# UNIT TESTS - setup_logging
# ============================================================================


@pytest.mark.unit
def test_setup_logging_console_only(restore_root_logger):
    setup_logging(log_level="WARNING", use_colors=False)
    root = restore_root_logger

    assert root.level == logging.WARNING
    assert len(root.handlers) == 1
    assert isinstance(root.handlers[0], logging.StreamHandler)
    assert not isinstance(root.handlers[0].formatter, ColoredFormatter)


@pytest.mark.integration
def test_setup_logging_writes_file(restore_root_logger, tmp_path):
    setup_logging(log_level="DEBUG", log_file="builder.log", log_dir=str(tmp_path / "logs"),
                  console_output=False)
    get_logger("buildsqlx.tests.file").debug("Built SELECT: %s", 'SELECT * FROM "t"')
    for handler in restore_root_logger.handlers:
        handler.flush()

    content = (tmp_path / "logs" / "builder.log").read_text(encoding="utf-8")
    assert 'Built SELECT: SELECT * FROM "t"' in content
    assert "DEBUG" in content


@pytest.mark.unit
def test_setup_logging_falls_back_to_config(restore_root_logger):
    with patch("core.logger.config") as mock_config:
        mock_config.logging.level = "ERROR"
        mock_config.logging.log_file = None
        mock_config.logging.log_dir = "logs"
        mock_config.logging.use_colors = True
        setup_logging()

    root = restore_root_logger
    assert root.level == logging.ERROR
    assert isinstance(root.handlers[0].formatter, ColoredFormatter)
