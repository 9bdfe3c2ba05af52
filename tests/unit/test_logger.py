"""
Unit tests for logging setup.
"""

import logging

import pytest

from invoice_market.core.config import MarketConfig
from invoice_market.utils.logger import (
    LOG_FILE_NAME,
    LOGGER_NAMESPACE,
    configure_logging,
    get_logger,
    setup_logging,
)


@pytest.fixture(autouse=True)
def restore_logging():
    yield
    setup_logging()


class TestLogging:
    """Tests for handler installation and subsystem loggers."""

    def test_subsystem_logger_namespace(self):
        logger = get_logger("engine")

        assert logger.name == "invoice_market.engine"
        assert logger.parent is logging.getLogger(LOGGER_NAMESPACE)

    def test_setup_replaces_handlers(self):
        setup_logging()
        root = setup_logging()

        assert len(root.handlers) == 1

    def test_configure_from_config_writes_file(self, tmp_path):
        config = MarketConfig(log_dir=tmp_path / "logs", log_to_file=True)

        root = configure_logging(config)
        get_logger("wallet").info("deposit recorded")
        for handler in root.handlers:
            handler.flush()

        assert len(root.handlers) == 2
        assert "deposit recorded" in (tmp_path / "logs" / LOG_FILE_NAME).read_text()

    def test_debug_flag_overrides_level(self):
        root = configure_logging(MarketConfig(log_level=logging.WARNING), debug=True)

        assert root.level == logging.DEBUG

    def test_config_level_applied(self):
        root = configure_logging(MarketConfig(log_level=logging.WARNING))

        assert root.level == logging.WARNING
