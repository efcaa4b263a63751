"""
Tests for billing_kernel.logging_config.

Records must come out as one JSON object per line, carry the bound invoice
context, and expose billing error codes so log search can find every
rejected tax rate or unknown billing frequency.
"""

import json
import logging
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from billing_engines.discounts import DiscountKind
from billing_kernel.exceptions import InvalidBillingFrequencyError, InvalidTaxRateError
from billing_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


def _json_stream_handlers(logger: logging.Logger) -> list[logging.Handler]:
    """Handlers configure_logging installs; test runners may attach their own subclasses."""
    return [
        h for h in logger.handlers
        if type(h) is logging.StreamHandler and isinstance(h.formatter, StructuredFormatter)
    ]


@pytest.fixture
def log_stream():
    """Configure logging into a StringIO; yield a reader of parsed records."""
    reset_logging()
    stream = StringIO()
    configure_logging(stream=stream, level=logging.INFO)

    def read() -> list[dict]:
        return [json.loads(line) for line in stream.getvalue().splitlines() if line]

    yield read
    reset_logging()


class TestRecordShape:
    """The JSON envelope and extra fields."""

    def test_envelope(self, log_stream):
        get_logger("engines.invoice").info("invoice_composition_started")

        (record,) = log_stream()
        assert record["level"] == "INFO"
        assert record["message"] == "invoice_composition_started"
        assert record["logger"] == "billing_kernel.engines.invoice"
        assert record["ts"].endswith("+00:00")

    def test_extra_fields(self, log_stream):
        get_logger("engines.invoice").info(
            "invoice_composition_completed", extra={"total": "24.41", "line_item_count": 2},
        )

        (record,) = log_stream()
        assert record["total"] == "24.41"
        assert record["line_item_count"] == 2

    def test_rich_values_serialized(self, log_stream):
        ref = uuid4()
        get_logger("engines.discounts").info(
            "discount_resolved",
            extra={"discount_ref": ref, "amount": Decimal("1.9125"), "kind": DiscountKind.PERCENTAGE},
        )

        (record,) = log_stream()
        assert record["discount_ref"] == str(ref)
        assert record["amount"] == "1.9125"
        assert record["kind"] == "percentage"

    def test_extra_cannot_override_envelope(self):
        formatter = StructuredFormatter()
        record = logging.makeLogRecord({
            "name": "billing_kernel.test", "levelname": "INFO", "msg": "real", "level": "spoofed",
        })
        assert json.loads(formatter.format(record))["level"] == "INFO"

    def test_debug_filtered_at_info(self, log_stream):
        logger = get_logger("engines.tax")
        logger.debug("tax_computed")
        logger.error("tax_rate_negative")

        assert [r["message"] for r in log_stream()] == ["tax_rate_negative"]


class TestExceptionFields:
    """Billing errors expose their code and structured attributes."""

    def test_plain_exception(self, log_stream):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            get_logger("test").error("unexpected", exc_info=True)

        (record,) = log_stream()
        assert record["exc_type"] == "RuntimeError"
        assert record["exc_message"] == "boom"
        assert "exc_code" not in record
        assert "Traceback" in record["traceback"]

    def test_tax_rate_error(self, log_stream):
        try:
            raise InvalidTaxRateError(Decimal("-1"))
        except InvalidTaxRateError:
            get_logger("engines.tax").error("tax_error", exc_info=True)

        (record,) = log_stream()
        assert record["exc_code"] == "INVALID_TAX_RATE"
        assert record["exc_tax_rate_percent"] == "-1"

    def test_frequency_error(self, log_stream):
        try:
            raise InvalidBillingFrequencyError("weekly", ("monthly", "annually"))
        except InvalidBillingFrequencyError:
            get_logger("engines.subscriptions").error("frequency_error", exc_info=True)

        (record,) = log_stream()
        assert record["exc_code"] == "INVALID_BILLING_FREQUENCY"
        assert record["exc_frequency"] == "weekly"
        assert record["exc_supported"] == ["monthly", "annually"]


class TestLogContext:
    """Request-scoped fields."""

    def test_bound_fields_on_records(self, log_stream):
        LogContext.set(invoice_id="inv-9", actor_id="admin-1")
        get_logger("engines.invoice").info("invoice_payment_applied")

        (record,) = log_stream()
        assert record["invoice_id"] == "inv-9"
        assert record["actor_id"] == "admin-1"
        assert "patient_id" not in record

    def test_set_is_additive_and_skips_none(self):
        LogContext.set(correlation_id="req-1")
        LogContext.set(patient_id="pat-4", correlation_id=None)
        assert LogContext.get_all() == {"correlation_id": "req-1", "patient_id": "pat-4"}

    def test_clear(self):
        LogContext.set(invoice_id="inv-1")
        LogContext.clear()
        assert LogContext.get_all() == {}

    def test_bind_restores_previous(self):
        LogContext.set(invoice_id="outer")
        with LogContext.bind(invoice_id="inner", actor_id="admin-7"):
            assert LogContext.get_all() == {"invoice_id": "inner", "actor_id": "admin-7"}
        assert LogContext.get_all() == {"invoice_id": "outer"}

    def test_bind_restores_on_error(self):
        with pytest.raises(KeyError):
            with LogContext.bind(invoice_id="inv-2"):
                raise KeyError("x")
        assert LogContext.get_all() == {}

    def test_unknown_field_rejected(self):
        with pytest.raises(TypeError):
            LogContext.set(tenant_id="t-1")


class TestConfiguration:
    """configure_logging / reset_logging."""

    def test_first_call_wins(self, log_stream):
        configure_logging(stream=StringIO(), level=logging.DEBUG)

        root = logging.getLogger("billing_kernel")
        assert len(_json_stream_handlers(root)) == 1
        assert root.level == logging.INFO

    def test_level_by_name(self):
        """Accepts BillingPolicy.log_level strings."""
        reset_logging()
        stream = StringIO()
        configure_logging(stream=stream, level="debug")
        try:
            get_logger("test").debug("named_level")
            assert json.loads(stream.getvalue())["message"] == "named_level"
        finally:
            reset_logging()

    def test_reset_detaches_handlers(self, log_stream):
        reset_logging()
        assert _json_stream_handlers(logging.getLogger("billing_kernel")) == []

    def test_reset_keeps_foreign_handlers(self, log_stream):
        root = logging.getLogger("billing_kernel")
        foreign = logging.NullHandler()
        root.addHandler(foreign)
        try:
            reset_logging()
            assert foreign in root.handlers
        finally:
            root.removeHandler(foreign)
