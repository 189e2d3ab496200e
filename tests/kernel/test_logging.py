"""
Tests for structured logging: JSON formatting, LogContext propagation and
the construction_kernel logger namespace.
"""

import json
import logging
import sys
from datetime import date
from decimal import Decimal

import pytest

from construction_kernel.exceptions import PayrollWeekNotFoundError
from construction_kernel.logging_config import LogContext, StructuredFormatter, get_logger


def _record(message, **extra):
    record = logging.LogRecord("construction_kernel.test", logging.INFO, __file__, 1, message, (), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestStructuredFormatter:
    def test_formats_one_json_line(self):
        line = StructuredFormatter().format(_record("payroll_week_aggregated"))
        payload = json.loads(line)
        assert payload["message"] == "payroll_week_aggregated"
        assert payload["level"] == "INFO"
        assert payload["logger"] == "construction_kernel.test"

    def test_extras_serialize_decimal_and_date(self):
        line = StructuredFormatter().format(
            _record("rate_cache_populated", latest_rate=Decimal("1100.50"), latest_date=date(2025, 1, 10)),
        )
        payload = json.loads(line)
        assert payload["latest_rate"] == "1100.50"
        assert payload["latest_date"] == "2025-01-10"

    def test_context_fields_are_included(self):
        with LogContext.bind(payroll_week_id="week-1", job_id="job-9"):
            payload = json.loads(StructuredFormatter().format(_record("x")))
        assert payload["payroll_week_id"] == "week-1"
        assert payload["job_id"] == "job-9"

    def test_exception_attributes_are_flattened(self):
        try:
            raise PayrollWeekNotFoundError("week-404")
        except PayrollWeekNotFoundError:
            record = logging.LogRecord(
                "construction_kernel.test", logging.ERROR, __file__, 1, "failed", (), None,
            )
            record.exc_info = sys.exc_info()
        payload = json.loads(StructuredFormatter().format(record))
        assert payload["exc_code"] == "PAYROLL_WEEK_NOT_FOUND"
        assert payload["exc_payroll_week_id"] == "week-404"


class TestLogContext:
    def test_bind_restores_previous_values(self):
        LogContext.set(project_id="outer")
        with LogContext.bind(project_id="inner"):
            assert LogContext.get_all()["project_id"] == "inner"
        assert LogContext.get_all()["project_id"] == "outer"

    def test_clear(self):
        LogContext.set(actor_id="someone")
        LogContext.clear()
        assert LogContext.get_all() == {}

    def test_unknown_field_rejected(self):
        with pytest.raises(ValueError, match="unknown log context field"):
            LogContext.bind(tenant_id="t-1")


class TestLoggerNamespace:
    def test_get_logger_prefixes_namespace(self):
        assert get_logger("modules.payroll").name == "construction_kernel.modules.payroll"

    def test_captured_logs_receive_events(self, captured_logs):
        get_logger("test").info("something_happened", extra={"count": 3})
        logs = captured_logs()
        assert any(r["message"] == "something_happened" and r["count"] == 3 for r in logs)
