"""Tests for logging configuration."""

import logging

import pytest

from src.metadata_hub.logging_config import (
    NAMESPACES,
    get_logger,
    set_log_level,
    setup_logging,
)


@pytest.fixture
def restore_logging():
    """Restore root and namespace logger state after each test."""
    root = logging.getLogger()
    saved_handlers = list(root.handlers)
    saved_level = root.level
    saved_handler_levels = [(h, h.level) for h in root.handlers]
    saved_namespace_levels = {ns: logging.getLogger(f'hub.{ns}').level for ns in NAMESPACES}
    yield
    root.handlers[:] = saved_handlers
    root.setLevel(saved_level)
    for handler, level in saved_handler_levels:
        handler.setLevel(level)
    for ns, level in saved_namespace_levels.items():
        logging.getLogger(f'hub.{ns}').setLevel(level)


class TestGetLogger:
    """Tests for get_logger function."""

    def test_namespace_logger(self):
        """Test known namespaces map to hub loggers."""
        assert get_logger(__name__, namespace='decoder').name == 'hub.decoder'

    def test_unknown_namespace_falls_back_to_name(self):
        """Test an unknown namespace uses the module name."""
        assert get_logger('some.module', namespace='nope').name == 'some.module'

    def test_no_namespace(self):
        """Test the module name is used without a namespace."""
        assert get_logger('some.module').name == 'some.module'


class TestSetupLogging:
    """Tests for setup_logging and set_log_level."""

    def test_level_from_env(self, restore_logging, monkeypatch):
        """Test HUB_LOG_LEVEL sets root and namespace levels."""
        monkeypatch.setenv('HUB_LOG_LEVEL', 'DEBUG')

        setup_logging()

        assert logging.getLogger().level == logging.DEBUG
        assert logging.getLogger('hub.parser').level == logging.DEBUG

    def test_explicit_level(self, restore_logging):
        """Test an explicit level installs a single handler."""
        setup_logging(level=logging.WARNING)

        root = logging.getLogger()
        assert root.level == logging.WARNING
        assert len(root.handlers) == 1

    def test_invalid_env_level_defaults_to_info(self, restore_logging, monkeypatch):
        """Test an unknown level name falls back to INFO."""
        monkeypatch.setenv('HUB_LOG_LEVEL', 'CHATTY')

        setup_logging()

        assert logging.getLogger().level == logging.INFO

    def test_set_log_level_by_name(self, restore_logging):
        """Test set_log_level updates loggers and handlers."""
        setup_logging(level=logging.INFO)

        set_log_level('error')

        assert logging.getLogger().level == logging.ERROR
        assert logging.getLogger('hub.sse').level == logging.ERROR
        assert all(h.level == logging.ERROR for h in logging.getLogger().handlers)
