"""Tests for logging configuration."""

import json
import logging
import sys

import structlog

from agent_memory.core.config import AppConfig
from agent_memory.core.logging import (
    add_exception_info,
    agent_context,
    get_logger,
    log_exception,
    setup_logging,
    setup_logging_from_config,
)


class TestSetupLogging:
    """Tests for logging setup function."""

    def test_default_setup(self):
        """Test default logging configuration."""
        setup_logging()
        logger = structlog.get_logger("test")
        assert logger is not None

    def test_log_level_setting(self):
        """Test setting different log levels."""
        for level in ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
            setup_logging(log_level=level)
            root_logger = logging.getLogger()
            assert root_logger.level == getattr(logging, level)

    def test_json_format(self):
        """Test JSON format configuration."""
        setup_logging(json_format=True)
        logger = get_logger("test")
        # Should not raise error
        logger.info("test message")

    def test_file_output(self, tmp_path):
        """Test logging to file."""
        log_file = tmp_path / "logs" / "memory.log"
        setup_logging(log_level="INFO", log_file=str(log_file), enable_console=False)

        logger = get_logger("test_file_output")
        logger.info("memories_added", count=3)

        assert log_file.exists()
        content = log_file.read_text()
        assert "memories_added" in content

    def test_level_filters_file(self, tmp_path):
        """Events below the configured level are dropped."""
        log_file = tmp_path / "filtered.log"
        setup_logging(log_level="WARNING", log_file=str(log_file), enable_console=False)

        logger = get_logger("test_level_filters_file")
        logger.info("embeddings_resolved")
        logger.warning("importance_parse_failed", response="??")

        content = log_file.read_text()
        assert "embeddings_resolved" not in content
        assert "importance_parse_failed" in content


class TestExceptionInfo:
    """Tests for structured exception details."""

    def test_add_exception_info_from_tuple(self):
        try:
            raise ValueError("bad vector")
        except ValueError:
            event = add_exception_info(None, "error", {"event": "x", "exc_info": sys.exc_info()})

        assert event["exception_type"] == "ValueError"
        assert event["exception_message"] == "bad vector"

    def test_add_exception_info_without_exception(self):
        event = add_exception_info(None, "info", {"event": "x"})
        assert "exception_type" not in event

    def test_log_exception(self, tmp_path):
        """log_exception records the exception type and message."""
        log_file = tmp_path / "errors.log"
        setup_logging(log_level="INFO", json_format=True, log_file=str(log_file), enable_console=False)
        logger = get_logger("test_log_exception")

        try:
            raise RuntimeError("disk full")
        except RuntimeError as e:
            log_exception(logger, "memory_commit_failed", e, agent_id="agent:1")

        content = log_file.read_text()
        assert "memory_commit_failed" in content
        assert "RuntimeError" in content
        assert "disk full" in content
        assert "agent:1" in content


class TestAgentContext:
    """Tests for per-agent context binding."""

    def test_events_carry_agent_id(self, tmp_path):
        log_file = tmp_path / "context.log"
        setup_logging(log_level="INFO", json_format=True, log_file=str(log_file), enable_console=False)
        logger = get_logger("test_events_carry_agent_id")

        with agent_context("agent:7", operation="access_memories"):
            logger.info("memories_accessed", returned=2)
        logger.info("outside_context")

        events = [json.loads(line) for line in log_file.read_text().splitlines()]
        inside, outside = events
        assert inside["agent_id"] == "agent:7"
        assert inside["operation"] == "access_memories"
        assert inside["returned"] == 2
        assert "agent_id" not in outside

    def test_setup_from_app_config(self, tmp_path):
        log_file = tmp_path / "app.log"
        setup_logging_from_config(AppConfig(log_level="ERROR", json_logs=True, log_file=str(log_file)))

        logger = get_logger("test_setup_from_app_config")
        logger.warning("dropped")
        logger.error("kept")

        assert logging.getLogger().level == logging.ERROR
        content = log_file.read_text()
        assert "dropped" not in content
        assert json.loads(content.strip())["event"] == "kept"
