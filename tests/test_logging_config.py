"""
Tests for logging configuration.
"""
import asyncio
import logging

from takeaway_bot.logging_config import ContextLoggerAdapter, bind_logger, setup_logging


class TestLoggingConfiguration:
    """Test logging setup and configuration."""

    def test_setup_logging_default_level(self, monkeypatch):
        """Test that setup_logging defaults to INFO level."""
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        setup_logging()

        logger = logging.getLogger("takeaway_bot")
        assert logger.level <= logging.INFO

    def test_setup_logging_respects_env_var(self, monkeypatch):
        """Test that LOG_LEVEL env var is respected."""
        monkeypatch.setenv("LOG_LEVEL", "WARNING")
        setup_logging()

        assert logging.getLogger("takeaway_bot").level == logging.WARNING

    def test_setup_logging_invalid_level_defaults_to_info(self):
        """Test that invalid level falls back to INFO."""
        setup_logging(level="INVALID_LEVEL")

        assert logging.getLogger("takeaway_bot").level == logging.INFO


class TestBoundLogger:
    def test_prefixes_context(self, caplog):
        log = bind_logger(logging.getLogger("takeaway_bot.test"), caller="+3912345")

        with caplog.at_level(logging.INFO, logger="takeaway_bot.test"):
            log.info("Dialog %s -> %s", "Start", "Ordering")

        assert "[caller=+3912345] Dialog Start -> Ordering" in caplog.text

    def test_rebinding_merges_context(self):
        base = bind_logger(logging.getLogger("takeaway_bot.test"), caller="+3912345")
        bound = bind_logger(base, state="Ordering")

        assert isinstance(bound, ContextLoggerAdapter)
        assert bound.extra == {"caller": "+3912345", "state": "Ordering"}
        assert bound.logger is base.logger

    def test_dialog_transitions_carry_caller(self, voice_service, caplog):
        with caplog.at_level(logging.INFO, logger="takeaway_bot"):
            asyncio.run(voice_service.handle_utterance("+3912345", "I want to start an order"))

        assert "[caller=+3912345]" in caplog.text
