"""Logging formatters - context fields surface in JSON and console output."""

import json
import logging

from wealthlink.infrastructure.observability import (
    ConsoleFormatter, JSONFormatter, setup_logging,
)


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        "wealthlink.services.payment_workflow", logging.INFO, __file__, 1,
        "Payment approved", None, None,
    )
    record.__dict__.update(extra)
    return record


def test_json_formatter_includes_context():
    line = JSONFormatter().format(_record(user_id="u1", transaction_id="t1"))
    entry = json.loads(line)
    assert entry["message"] == "Payment approved"
    assert entry["level"] == "INFO"
    assert entry["user_id"] == "u1"
    assert entry["transaction_id"] == "t1"
    assert "withdrawal_id" not in entry


def test_console_formatter_appends_context():
    line = ConsoleFormatter().format(_record(user_id="u1"))
    assert "Payment approved" in line
    assert line.endswith("user_id=u1")


def test_setup_logging_replaces_its_own_handler():
    root = logging.getLogger()
    before = len(root.handlers)
    setup_logging("DEBUG", "console")
    setup_logging("INFO", "json")
    ours = [h for h in root.handlers if h.get_name() == "wealthlink"]
    assert len(ours) == 1
    assert len(root.handlers) == before + 1
    assert isinstance(ours[0].formatter, JSONFormatter)
    root.removeHandler(ours[0])
