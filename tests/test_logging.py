"""
Tests for logging configuration.
"""

import json
import logging

from landmark_sync.logging_config import HumanFormatter, JSONFormatter, setup_logging


def make_record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="landmark_sync.sync.engine",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="[sync] docs: created",
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestFormatters:
    """Tests for the JSON and human formatters."""

    def test_json_includes_extras(self):
        """Source and URL extras appear in JSON output."""
        line = JSONFormatter().format(make_record(source="docs", url="https://a.example"))
        entry = json.loads(line)

        assert entry["level"] == "INFO"
        assert entry["message"] == "[sync] docs: created"
        assert entry["source"] == "docs"
        assert entry["url"] == "https://a.example"
        assert "outcome" not in entry

    def test_human_format(self):
        """Human output names the module and message."""
        line = HumanFormatter().format(make_record())

        assert "[engine" in line
        assert line.endswith("[sync] docs: created")


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_json_format_from_env(self, monkeypatch):
        """LOG_FORMAT=json installs the JSON formatter."""
        monkeypatch.setenv("LOG_FORMAT", "json")
        root = logging.getLogger()
        saved_handlers, saved_level = list(root.handlers), root.level
        try:
            setup_logging(level="debug")

            assert root.level == logging.DEBUG
            assert isinstance(root.handlers[-1].formatter, JSONFormatter)
            assert logging.getLogger("httpx").level == logging.WARNING
        finally:
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)
