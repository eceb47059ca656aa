"""
Tests for JSON log formatting.
"""

import json
import logging

from payflow.monitoring.logging import ServiceJsonFormatter


def format_record(formatter, **extra):
    record = logging.LogRecord(
        name="payflow.fraud.detector",
        level=logging.WARNING,
        pathname=__file__,
        lineno=1,
        msg="Transaction blocked by fraud detection",
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return json.loads(formatter.format(record))


class TestServiceJsonFormatter:
    """Tests for ServiceJsonFormatter."""

    def test_standard_fields(self):
        formatter = ServiceJsonFormatter("%(name)s %(message)s", service="payflow-test")

        line = format_record(formatter)

        assert line["message"] == "Transaction blocked by fraud detection"
        assert line["level"] == "warning"
        assert line["service"] == "payflow-test"
        assert line["name"] == "payflow.fraud.detector"
        assert len(line["trace_id"]) == 8
        assert line["timestamp"].endswith("+0000")

    def test_extra_fields_and_trace_id_kept(self):
        formatter = ServiceJsonFormatter("%(message)s")

        line = format_record(formatter, trace_id="abc12345", transaction_id="txn-1")

        assert line["trace_id"] == "abc12345"
        assert line["transaction_id"] == "txn-1"
