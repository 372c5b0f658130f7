"""
Tests for logging setup and formatting.
"""

import json
import logging

import pytest
from rich.logging import RichHandler

from testpilot.monitoring.logger import (
    JSONFormatter,
    RedactionFilter,
    get_logger,
    log_performance_metric,
    setup_logging,
)


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    level = root.level
    yield root
    # pytest manages its own capture handlers per phase
    for handler in root.handlers[:]:
        if type(handler) in (logging.StreamHandler, logging.FileHandler, RichHandler):
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)


def _record(msg: str, **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="testpilot.agent.test_agent", level=logging.INFO, pathname=__file__,
        lineno=10, msg=msg, args=(), exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    """Tests for the JSON line formatter."""

    def test_includes_step_context(self):
        record = _record(
            "Planning step", step="When x", step_kind="action", attempt=2, instruction="Click Sign in"
        )

        payload = json.loads(JSONFormatter().format(record))

        assert payload["message"] == "Planning step"
        assert payload["level"] == "INFO"
        assert payload["logger"] == "testpilot.agent.test_agent"
        assert payload["step"] == "When x"
        assert payload["step_kind"] == "action"
        assert payload["attempt"] == 2
        assert payload["instruction"] == "Click Sign in"
        assert "url" not in payload

    def test_unlisted_extras_are_left_out(self):
        payload = json.loads(JSONFormatter().format(_record("x", viewport="1280x720")))

        assert "viewport" not in payload

    def test_redacts_secrets(self):
        payload = json.loads(JSONFormatter().format(_record("Using api_key=abcdef123456")))

        assert "abcdef123456" not in payload["message"]

    def test_without_sanitizing(self):
        payload = json.loads(JSONFormatter(sanitize=False).format(_record("password=hunter2")))

        assert payload["message"] == "password=hunter2"


def test_redaction_filter_scrubs_and_keeps_record():
    record = _record("password: hunter2")

    assert RedactionFilter().filter(record) is True
    assert "hunter2" not in record.getMessage()


def test_get_logger():
    assert get_logger("testpilot.test") is logging.getLogger("testpilot.test")


def test_log_performance_metric(caplog):
    with caplog.at_level(logging.DEBUG, logger="testpilot.performance"):
        log_performance_metric("step_duration", 1234.4, context={"step": "When x"})

    record = caplog.records[0]
    assert record.getMessage() == "step_duration: 1234ms"
    assert record.metric_name == "step_duration"
    assert record.unit == "ms"
    assert record.step == "When x"


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_json_with_file(self, tmp_path, restore_root_logger):
        log_file = tmp_path / "run.log"

        root = setup_logging(log_level="DEBUG", log_format="json", log_file=str(log_file))

        assert root.level == logging.DEBUG
        stream_handler, file_handler = root.handlers
        assert isinstance(stream_handler.formatter, JSONFormatter)
        assert isinstance(file_handler, logging.FileHandler)
        assert logging.getLogger("openai").level == logging.WARNING

        logging.getLogger("testpilot.test").info("written to file", extra={"step": "Then y"})
        file_handler.flush()
        last_line = json.loads(log_file.read_text(encoding="utf-8").strip().splitlines()[-1])
        assert last_line["message"] == "written to file"
        assert last_line["step"] == "Then y"

    def test_text_is_rich_and_redacted(self, restore_root_logger):
        root = setup_logging(log_level="info", log_format="text")

        assert root.level == logging.INFO
        assert len(root.handlers) == 1
        handler = root.handlers[0]
        assert isinstance(handler, RichHandler)
        assert any(isinstance(f, RedactionFilter) for f in handler.filters)

    def test_text_file_is_redacted(self, tmp_path, restore_root_logger):
        log_file = tmp_path / "run.log"
        root = setup_logging(log_level="INFO", log_format="text", log_file=str(log_file))

        logging.getLogger("testpilot.test").info("login with password: hunter2")
        root.handlers[1].flush()

        text = log_file.read_text(encoding="utf-8")
        assert "login with password" in text
        assert "hunter2" not in text
