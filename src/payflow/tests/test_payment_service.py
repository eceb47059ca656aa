"""
Tests for payment submission.

Fraud detection must never fail a payment: every error after the
payment is recorded is logged and the payment is still returned.
"""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
from prometheus_client import REGISTRY
from sqlalchemy.exc import OperationalError

from payflow.exceptions import HistoryLookupError
from payflow.fraud.detector import FraudDetector
from payflow.fraud.models import TransactionStatus
from payflow.fraud.rules_engine import FraudRulesEngine
from payflow.payments.service import PaymentService
from payflow.tests.conftest import InMemoryHistory, RecordingSink


class FakeTransactionStore(InMemoryHistory):
    """Transaction repository stand-in backed by a list."""

    def __init__(self, fail_create: bool = False, fail_velocity: bool = False):
        super().__init__()
        self.fail_create = fail_create
        self.fail_velocity = fail_velocity
        self.statuses = {}

    async def create(self, transaction):
        if self.fail_create:
            raise OperationalError("INSERT", {}, Exception("connection lost"))
        self.add(transaction)
        return transaction

    async def count_from_account_since(self, account, cutoff, exclude_id):
        if self.fail_velocity:
            raise HistoryLookupError("canceling statement due to statement timeout")
        return await super().count_from_account_since(account, cutoff, exclude_id)

    async def update_status(self, transaction_id, status):
        self.statuses[transaction_id] = status


def make_session():
    session = MagicMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    return session


def make_service(session=None, failure_rate=0.0, rng=lambda: 0.5, store=None, alerts=None):
    service = PaymentService(
        session or make_session(),
        FraudDetector(engine=FraudRulesEngine()),
        failure_rate=failure_rate,
        rng=rng,
    )
    service.transactions = store or FakeTransactionStore()
    service.alerts = alerts or RecordingSink()
    return service


class TestSubmit:
    """Tests for PaymentService.submit."""

    @pytest.mark.asyncio
    async def test_successful_payment(self):
        """An ordinary payment is recorded as success."""
        service = make_service()

        transaction = await service.submit("ACC-1", "ACC-2", Decimal("25.00"), "coffee")

        assert transaction.status == TransactionStatus.SUCCESS
        assert transaction.amount == Decimal("25.00")
        assert service.transactions.transactions == [transaction]
        service.session.commit.assert_awaited()

    @pytest.mark.asyncio
    async def test_natural_failure(self):
        """Payments under the failure rate draw are marked failed."""
        service = make_service(failure_rate=0.05, rng=lambda: 0.01)

        transaction = await service.submit("ACC-1", "ACC-2", Decimal("25.00"))

        assert transaction.status == TransactionStatus.FAILED

    @pytest.mark.asyncio
    async def test_fraud_block_reflected_in_result(self):
        """A blocked payment is returned with BLOCKED status."""
        service = make_service()

        transaction = await service.submit("ACC-1", "ACC-2", Decimal("30000"))

        assert transaction.status == TransactionStatus.BLOCKED
        assert service.transactions.statuses[transaction.id] == TransactionStatus.BLOCKED
        assert len(service.alerts.alerts) == 2

    @pytest.mark.asyncio
    async def test_failed_payment_not_blocked(self):
        """Fraud never overrides a failed payment."""
        service = make_service(failure_rate=1.0, rng=lambda: 0.0)

        transaction = await service.submit("ACC-1", "ACC-2", Decimal("30000"))

        assert transaction.status == TransactionStatus.FAILED
        assert service.transactions.statuses == {}

    @pytest.mark.asyncio
    async def test_alert_persistence_failure_keeps_payment(self):
        """Alert save errors are logged, rolled back and the payment returned."""
        service = make_service(alerts=RecordingSink(fail_alerts=True))

        transaction = await service.submit("ACC-1", "ACC-2", Decimal("30000"))

        assert transaction.status == TransactionStatus.SUCCESS
        assert service.transactions.transactions[0].id == transaction.id
        service.session.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unsaved_payment_skips_fraud(self):
        """If the payment row cannot be saved, fraud detection is skipped."""
        alerts = RecordingSink()
        service = make_service(store=FakeTransactionStore(fail_create=True), alerts=alerts)

        transaction = await service.submit("ACC-1", "ACC-2", Decimal("30000"))

        assert transaction.status == TransactionStatus.SUCCESS
        assert alerts.alerts == []
        service.session.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_duplicate_payments(self):
        """Submitting the same payment twice flags the second."""
        service = make_service()

        first = await service.submit("A", "B", Decimal("100.00"))
        second = await service.submit("A", "B", Decimal("100.00"))

        flagged = {a.transaction_id for a in service.alerts.alerts}
        assert first.id not in flagged
        assert second.id in flagged

    @pytest.mark.asyncio
    async def test_history_outage_still_saves_static_alerts(self):
        """A failed velocity lookup does not cost the other rules their alerts."""
        service = make_service(store=FakeTransactionStore(fail_velocity=True))

        transaction = await service.submit("ACC-1", "ACC-2", Decimal("30000"))

        assert transaction.status == TransactionStatus.BLOCKED
        assert {a.rule.value for a in service.alerts.alerts} == {
            "HIGH_AMOUNT",
            "SUSPICIOUS_PATTERN",
        }
        service.session.rollback.assert_not_awaited()


class TestTransactionMetrics:
    """Tests for payflow_transactions_total."""

    @staticmethod
    def count(status):
        return REGISTRY.get_sample_value(
            "payflow_transactions_total", {"status": status}
        ) or 0.0

    @pytest.mark.asyncio
    async def test_blocked_payment_counted_as_processed(self):
        """A payment later blocked is counted under its processing status."""
        service = make_service()
        success_before = self.count("success")
        blocked_before = self.count("blocked")

        transaction = await service.submit("ACC-1", "ACC-2", Decimal("30000"))

        assert transaction.status == TransactionStatus.BLOCKED
        assert self.count("success") == success_before + 1
        assert self.count("blocked") == blocked_before

    @pytest.mark.asyncio
    async def test_failed_payment_counted(self):
        service = make_service(failure_rate=1.0, rng=lambda: 0.0)
        failed_before = self.count("failed")

        await service.submit("ACC-1", "ACC-2", Decimal("10.00"))

        assert self.count("failed") == failed_before + 1
