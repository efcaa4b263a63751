"""
Shared fixtures for the billing engine tests.

- ``captured_logs``: every billing_kernel record of the test, as parsed JSON
- a fresh BillingPolicy cache and an unset BILLING_CONFIG_PATH per test
- an empty LogContext per test
- ``now`` / ``deterministic_clock`` pinned to FIXED_NOW
"""

import json
import logging
from datetime import datetime, timezone

import pytest

from billing_config import CONFIG_PATH_ENV, BillingPolicy, reset_active_policy
from billing_kernel.domain.clock import DeterministicClock
from billing_kernel.logging_config import LogContext, StructuredFormatter

FIXED_NOW = datetime(2025, 6, 15, 12, 0, 0, tzinfo=timezone.utc)


class _JSONCollector(logging.Handler):
    """Keeps each record as the dict StructuredFormatter would write."""

    def __init__(self):
        super().__init__(level=logging.DEBUG)
        self.setFormatter(StructuredFormatter())
        self.records: list[dict] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(json.loads(self.format(record)))


@pytest.fixture
def captured_logs():
    """
    Collect billing_kernel logs at DEBUG for the duration of the test.

        def test_trace(captured_logs):
            compose_invoice(items)
            assert any(r["message"] == "BILLING_ENGINE_TRACE" for r in captured_logs())
    """
    collector = _JSONCollector()
    billing_logger = logging.getLogger("billing_kernel")
    saved_level = billing_logger.level
    billing_logger.setLevel(logging.DEBUG)
    billing_logger.addHandler(collector)
    try:
        yield lambda: list(collector.records)
    finally:
        billing_logger.removeHandler(collector)
        billing_logger.setLevel(saved_level)


@pytest.fixture(autouse=True)
def _isolated_log_context():
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture(autouse=True)
def _default_policy(monkeypatch):
    """Each test loads defaults.yaml afresh unless it points BILLING_CONFIG_PATH elsewhere."""
    monkeypatch.delenv(CONFIG_PATH_ENV, raising=False)
    reset_active_policy()
    yield
    reset_active_policy()


@pytest.fixture
def usd_policy() -> BillingPolicy:
    return BillingPolicy()


@pytest.fixture
def now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def deterministic_clock() -> DeterministicClock:
    return DeterministicClock(FIXED_NOW)
