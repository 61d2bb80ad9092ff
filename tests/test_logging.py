# tests/test_logging.py
"""
Test structured log formatting.
"""

import json
import logging
import sys
from decimal import Decimal

from policy_approval.logging import StructuredLogFormatter, get_logger


def _record(level=logging.INFO, exc_info=None, **fields):
    record = logging.LogRecord(
        name="policy_approval.test",
        level=level,
        pathname=__file__,
        lineno=42,
        msg="policy_submitted",
        args=(),
        exc_info=exc_info,
    )
    record.structured_data = fields
    return record


class TestStructuredLogFormatter:
    """Each record becomes one JSON object."""

    def test_fields_are_merged(self):
        line = StructuredLogFormatter().format(_record(policy_number="POL-000001"))
        data = json.loads(line)

        assert data["level"] == "INFO"
        assert data["logger"] == "policy_approval.test"
        assert data["message"] == "policy_submitted"
        assert data["policy_number"] == "POL-000001"
        assert "source" not in data

    def test_errors_carry_source_and_traceback(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = _record(level=logging.ERROR, exc_info=sys.exc_info())

        data = json.loads(StructuredLogFormatter().format(record))

        assert data["source"]["line"] == 42
        assert "RuntimeError: boom" in data["exception"]

    def test_non_json_values_are_stringified(self):
        data = json.loads(StructuredLogFormatter().format(_record(premium=Decimal("12.50"))))
        assert data["premium"] == "12.50"


class TestStructuredLogger:
    def test_keyword_fields_become_structured_data(self, caplog):
        logger = get_logger("policy_approval.test")
        with caplog.at_level("INFO"):
            logger.info("profile_created", role="manager")

        record = caplog.records[-1]
        assert record.getMessage() == "profile_created"
        assert record.structured_data == {"role": "manager"}
