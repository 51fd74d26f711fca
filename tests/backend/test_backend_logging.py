"""Tests for structured logging."""

import json
from io import StringIO


class TestLoggingConfig:
    """Test suite for logging configuration."""

    def test_logger_outputs_json_format(self):
        """Logger should output JSON format by default."""
        from runledger.logging import configure_logging, get_logger

        # Given
        output = StringIO()
        configure_logging(log_level="INFO", json_format=True, stream=output)
        logger = get_logger("test")

        # When
        logger.info("test message", key="value")

        # Then
        parsed = json.loads(output.getvalue().strip())
        assert parsed["event"] == "test message"
        assert parsed["key"] == "value"
        assert parsed["level"] == "info"
        assert parsed["logger_name"] == "test"
        assert "timestamp" in parsed

    def test_log_level_filtering(self):
        """Debug logs should be filtered when level is INFO."""
        from runledger.logging import configure_logging, get_logger

        # Given
        output = StringIO()
        configure_logging(log_level="INFO", json_format=True, stream=output)
        logger = get_logger("test")

        # When
        logger.debug("debug message")

        # Then
        assert output.getvalue().strip() == ""

    def test_module_logger_follows_later_configuration(self):
        """Loggers created at import time honour configure_logging calls made afterwards."""
        from runledger.logging import configure_logging
        from runledger.reports.ci import extract_branch

        # Given
        output = StringIO()
        configure_logging(log_level="DEBUG", json_format=True, stream=output)

        # When
        extract_branch({})

        # Then
        parsed = json.loads(output.getvalue().strip())
        assert parsed["event"] == "branch_unresolved"
        assert parsed["logger_name"] == "runledger.reports.ci"

    def test_request_id_added_when_set(self):
        """request_id from context should be included in logs."""
        from runledger.logging import configure_logging, get_logger, request_id_ctx

        # Given
        output = StringIO()
        configure_logging(log_level="INFO", json_format=True, stream=output)
        logger = get_logger("test")
        token = request_id_ctx.set("req-123")

        # When
        try:
            logger.info("with request")
        finally:
            request_id_ctx.reset(token)

        # Then
        parsed = json.loads(output.getvalue().strip())
        assert parsed["request_id"] == "req-123"

    def test_console_format(self):
        """Console renderer produces human-readable output."""
        from runledger.logging import configure_logging, get_logger

        output = StringIO()
        configure_logging(log_level="INFO", json_format=False, stream=output)

        get_logger("test").info("readable")

        assert "readable" in output.getvalue()
