"""Tests for structured logging setup."""

from __future__ import annotations

import logging
from collections.abc import Generator
from pathlib import Path

import pytest
import structlog

from rpg_combat.core.config import Settings
from rpg_combat.core.logging import (
    APP_NAME,
    add_app_context,
    bind_context,
    clear_context,
    configure_from_settings,
    configure_logging,
    get_logger,
)


@pytest.fixture(autouse=True)
def reset_structlog() -> Generator[None, None, None]:
    """Restore structlog defaults after each test."""
    yield
    clear_context()
    structlog.reset_defaults()


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_level_applied(self) -> None:
        """Test the root logger follows the requested level."""
        configure_logging(level="WARNING")
        assert logging.getLogger().level == logging.WARNING

    def test_unknown_level_defaults_to_info(self) -> None:
        """Test an unknown level name falls back to INFO."""
        configure_logging(level="CHATTY")
        assert logging.getLogger().level == logging.INFO

    def test_log_file_handler(self, tmp_path: Path) -> None:
        """Test a file handler is attached when requested."""
        log_file = tmp_path / "combat.log"

        configure_logging(level="DEBUG", log_file=str(log_file))

        handlers = [h for h in logging.getLogger().handlers if isinstance(h, logging.FileHandler)]
        assert any(Path(h.baseFilename) == log_file for h in handlers)
        for handler in handlers:
            logging.getLogger().removeHandler(handler)
            handler.close()

    def test_from_settings_uses_debug(self) -> None:
        """Test debug settings force DEBUG level."""
        configure_from_settings(Settings(debug=True, log_level="ERROR"))
        assert logging.getLogger().level == logging.DEBUG


class TestContext:
    """Tests for processors and bound context."""

    def test_app_context(self) -> None:
        """Test every entry is stamped with the app name."""
        event = add_app_context(None, "info", {"event": "x"})
        assert event["app"] == APP_NAME

    def test_bind_and_clear(self) -> None:
        """Test bound values are kept until cleared."""
        bind_context(battle_id="b-1", rng_seed=123)
        assert structlog.contextvars.get_contextvars() == {"battle_id": "b-1", "rng_seed": 123}

        clear_context()

        assert structlog.contextvars.get_contextvars() == {}

    def test_get_logger(self) -> None:
        """Test loggers expose the structlog API."""
        logger = get_logger(__name__)
        assert callable(logger.info)
