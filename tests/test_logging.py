"""
Tests for structured logging.
"""
import json
import logging

from activity_stream.logging_config import StructuredFormatter, get_logger, timed


class TestStructuredLogger:
    """Test context fields on log records."""

    def test_bind_adds_context(self, caplog):
        log = get_logger("test").bind(activity_id=7)

        with caplog.at_level(logging.INFO, logger="activity_stream.test"):
            log.info("hello", user_id=1)

        record = caplog.records[-1]
        assert record.context == {"activity_id": 7, "user_id": 1}
        assert json.loads(StructuredFormatter().format(record))["activity_id"] == 7

    def test_error_records_exception(self, caplog):
        log = get_logger("test")

        with caplog.at_level(logging.ERROR, logger="activity_stream.test"):
            try:
                raise RuntimeError("boom")
            except RuntimeError as e:
                log.error("failed", error=e)

        context = caplog.records[-1].context
        assert context["error_type"] == "RuntimeError"
        assert context["error_message"] == "boom"

    def test_timed_passes_result_through(self):
        @timed(get_logger("test"))
        def add(a, b):
            return a + b

        assert add(2, 3) == 5
        assert add.__name__ == "add"
