"""
Unit tests for the engine logger.
"""

import logging

import pytest

from formcraft.logging import (
    configure_logging,
    is_debug_enabled,
    logger,
    set_debug_enabled,
    trace_refresh,
)


@pytest.fixture
def restore_logger():
    """Put the engine logger back the way the test found it."""
    handlers = list(logger.handlers)
    level = logger.level
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)


class TestLoggerSetup:
    """Tests for logger configuration."""

    def test_import_installs_no_output(self):
        """Test that only a NullHandler is attached by default."""
        assert any(isinstance(h, logging.NullHandler) for h in logger.handlers)

    def test_configure_replaces_console_handler(self, restore_logger):
        """Test that repeated configuration keeps a single console handler."""
        before = len(logger.handlers)
        first = configure_logging(logging.INFO)
        second = configure_logging(logging.DEBUG, format_str="%(message)s")

        assert first not in logger.handlers
        assert second in logger.handlers
        assert len(logger.handlers) == before + 1
        assert logger.level == logging.DEBUG

    def test_debug_toggle(self, restore_logger):
        """Test enabling and disabling debug logging."""
        set_debug_enabled(True)
        assert is_debug_enabled()
        set_debug_enabled(False)
        assert not is_debug_enabled()


class TestTraceRefresh:
    """Tests for the recomputation trace."""

    def test_logs_recomputation_count(self, restore_logger, caplog):
        """Test the trace reports computations re-run per refresh."""
        set_debug_enabled(True)
        with caplog.at_level(logging.DEBUG, logger="formcraft"):
            trace_refresh("donation", 10, 13, 7)
        assert "Refreshed 'donation': 3 computation(s) re-ran over 7 node(s)" in caplog.text

    def test_silent_without_debug(self, restore_logger, caplog):
        """Test nothing is logged at warning level."""
        set_debug_enabled(False)
        trace_refresh("donation", 0, 5, 5)
        assert "Refreshed" not in caplog.text
