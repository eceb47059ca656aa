"""
Pytest configuration and shared fixtures for PayFlow tests.
"""

from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional
from uuid import uuid4

import pytest

from payflow.exceptions import HistoryLookupError
from payflow.fraud.aggregator import RiskAggregator
from payflow.fraud.detector import FraudDetector
from payflow.fraud.models import (
    FraudAlert,
    Transaction,
    TransactionStatus,
    to_cents,
)
from payflow.fraud.rules_engine import FraudRulesEngine

NOW = datetime(2026, 10, 19, 12, 0, 0)


class InMemoryHistory:
    """History lookup over a list of transactions."""

    def __init__(self, transactions: Optional[list[Transaction]] = None):
        self.transactions = list(transactions or [])

    def add(self, transaction: Transaction) -> None:
        self.transactions.append(transaction)

    async def count_from_account_since(self, account, cutoff, exclude_id):
        return sum(
            1
            for t in self.transactions
            if t.from_account == account and t.created_at > cutoff and t.id != exclude_id
        )

    async def find_duplicate_since(self, from_account, to_account, amount, cutoff, exclude_id):
        for t in self.transactions:
            if (
                t.from_account == from_account
                and t.to_account == to_account
                and to_cents(t.amount) == to_cents(amount)
                and t.created_at > cutoff
                and t.id != exclude_id
            ):
                return t.id
        return None


class FailingHistory:
    """History lookup whose backing store is unavailable."""

    async def count_from_account_since(self, account, cutoff, exclude_id):
        raise HistoryLookupError("connection refused")

    async def find_duplicate_since(self, from_account, to_account, amount, cutoff, exclude_id):
        raise HistoryLookupError("connection refused")


class VelocityOutageHistory(InMemoryHistory):
    """History where only the velocity count query fails."""

    async def count_from_account_since(self, account, cutoff, exclude_id):
        raise HistoryLookupError("canceling statement due to statement timeout")


class RecordingSink:
    """Alert and status sink that keeps what it was given."""

    def __init__(self, fail_alerts: bool = False, fail_status: bool = False):
        self.alerts: list[FraudAlert] = []
        self.statuses: dict[str, TransactionStatus] = {}
        self.fail_alerts = fail_alerts
        self.fail_status = fail_status

    async def save_batch(self, alerts):
        if self.fail_alerts:
            raise RuntimeError("disk full")
        self.alerts.extend(alerts)

    async def update_status(self, transaction_id, status):
        if self.fail_status:
            raise RuntimeError("deadlock detected")
        self.statuses[transaction_id] = status


def make_transaction(
    amount="100.00",
    from_account: str = "ACC-001",
    to_account: str = "ACC-002",
    status: TransactionStatus = TransactionStatus.SUCCESS,
    created_at: Optional[datetime] = None,
    seconds_ago: Optional[int] = None,
) -> Transaction:
    """Build a transaction for tests."""
    if created_at is None:
        created_at = NOW - timedelta(seconds=seconds_ago or 0)
    return Transaction(
        id=str(uuid4()),
        from_account=from_account,
        to_account=to_account,
        amount=Decimal(str(amount)),
        description="test payment",
        status=status,
        created_at=created_at,
    )


@pytest.fixture
def rules_engine() -> FraudRulesEngine:
    """Rules engine with default thresholds and a fixed clock."""
    return FraudRulesEngine(clock=lambda: NOW)


@pytest.fixture
def aggregator() -> RiskAggregator:
    """Aggregator with the default block threshold."""
    return RiskAggregator()


@pytest.fixture
def detector(rules_engine, aggregator) -> FraudDetector:
    """Fraud detector without a deadline."""
    return FraudDetector(engine=rules_engine, aggregator=aggregator)


@pytest.fixture
def history() -> InMemoryHistory:
    """Empty transaction history."""
    return InMemoryHistory()


@pytest.fixture
def sink() -> RecordingSink:
    """Sink that records alerts and status changes."""
    return RecordingSink()
