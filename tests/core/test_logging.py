"""Tests for the structured logger and its formatters."""

import json
import logging

import pytest

from tripsift.core.logging import (
    JsonLineFormatter,
    LineFormatter,
    LogConfig,
    configure_logging,
    get_logger,
    reset_request_id,
    set_request_id,
)
from tripsift.core.logging.formatters import area_label, short_value


class ListHandler(logging.Handler):
    def __init__(self):
        super().__init__(level=logging.DEBUG)
        self.records: list[logging.LogRecord] = []

    def emit(self, record):
        self.records.append(record)


@pytest.fixture
def captured():
    root = logging.getLogger("tripsift")
    handler = ListHandler()
    previous = root.level
    root.addHandler(handler)
    root.setLevel(logging.DEBUG)
    yield handler
    root.removeHandler(handler)
    root.setLevel(previous)


class TestStructuredLogger:

    def test_fields_attached(self, captured):
        get_logger("llm.test").warning("Retry scheduled", attempt=2, delay=1.4)

        record = captured.records[-1]
        assert record.name == "tripsift.llm.test"
        assert record.getMessage() == "Retry scheduled"
        assert record.fields == {"attempt": 2, "delay": 1.4}

    def test_bind_merges_fields(self, captured):
        log = get_logger("search.test").bind(service="photon")
        log.info("Request", status=200)
        assert captured.records[-1].fields == {"service": "photon", "status": 200}

    def test_same_instance(self):
        assert get_logger("pipeline.test") is get_logger("pipeline.test")


class TestFormatters:

    def _record(self, **fields) -> logging.LogRecord:
        record = logging.LogRecord("tripsift.llm.gemini", logging.INFO, "", 0, "Provider succeeded", (), None)
        record.fields = fields
        return record

    def test_json_line(self):
        token = set_request_id("ab12cd34")
        try:
            payload = json.loads(JsonLineFormatter().format(self._record(provider="gemini", items=4)))
        finally:
            reset_request_id(token)

        assert payload["msg"] == "Provider succeeded"
        assert payload["level"] == "INFO"
        assert payload["request_id"] == "ab12cd34"
        assert payload["provider"] == "gemini"
        assert payload["items"] == 4

    def test_plain_line(self):
        line = LineFormatter().format(self._record(provider="groq"))
        assert "[LLM|gemini] Provider succeeded | provider=groq" in line

    def test_area_label(self):
        assert area_label("tripsift.extraction.places")[0] == "EXT|places"
        assert area_label("tripsift.cli")[0] == "CLI"

    def test_short_value(self):
        assert short_value(None) == "-"
        assert short_value(True) == "yes"
        assert short_value([1, 2, 3, 4]) == "[4 items]"
        assert short_value("x" * 100, limit=10) == "x" * 9 + "~"


class TestConfigureLogging:

    def test_file_handler(self, tmp_path):
        path = tmp_path / "tripsift.log"
        try:
            root = configure_logging(LogConfig(level=logging.DEBUG, file=str(path), json=True, color=False))
            assert len(root.handlers) == 2
            get_logger("core.test").info("Written", n=1)
            for handler in root.handlers:
                handler.flush()
            assert json.loads(path.read_text(encoding="utf-8").splitlines()[-1])["n"] == 1
        finally:
            configure_logging(LogConfig(color=False))

    def test_level_from_name(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "debug")
        assert LogConfig.from_env().level == logging.DEBUG
