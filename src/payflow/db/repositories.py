"""
Database repositories for data access layer.

Provides async CRUD operations for transactions and fraud alerts.
TransactionRepository also serves as the history lookup for fraud
rules and as the sink for status changes; FraudAlertRepository is the
alert sink.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import case, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from payflow.db.orm import FraudAlertRecord, TransactionRecord
from payflow.exceptions import HistoryLookupError
from payflow.fraud.models import (
    FraudAlert,
    RuleId,
    Severity,
    Transaction,
    TransactionStatus,
    to_amount,
)

logger = logging.getLogger(__name__)


def to_transaction(record: TransactionRecord) -> Transaction:
    """Convert a transaction row to the domain record."""
    return Transaction(
        id=record.id,
        from_account=record.from_account,
        to_account=record.to_account,
        amount=record.amount,
        description=record.description or "",
        status=TransactionStatus(record.status),
        created_at=record.created_at,
    )


def to_alert(record: FraudAlertRecord) -> FraudAlert:
    """Convert an alert row to the domain record."""
    return FraudAlert(
        id=record.id,
        transaction_id=record.transaction_id,
        rule=RuleId(record.rule_triggered),
        risk_score=record.risk_score,
        severity=Severity(record.severity),
        details=record.details or "",
        created_at=record.created_at,
    )


class TransactionRepository:
    """Repository for transaction operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, transaction_id: str) -> Optional[Transaction]:
        """Get transaction by ID."""
        result = await self.session.execute(
            select(TransactionRecord).where(TransactionRecord.id == transaction_id)
        )
        record = result.scalar_one_or_none()
        return to_transaction(record) if record else None

    async def create(self, transaction: Transaction) -> Transaction:
        """Insert a new transaction."""
        record = TransactionRecord(
            id=transaction.id,
            from_account=transaction.from_account,
            to_account=transaction.to_account,
            amount=transaction.amount,
            description=transaction.description,
            status=transaction.status.value,
            created_at=transaction.created_at,
        )
        self.session.add(record)
        await self.session.flush()
        return transaction

    async def list_recent(self, limit: int = 50) -> list[Transaction]:
        """List the most recent transactions."""
        result = await self.session.execute(
            select(TransactionRecord)
            .order_by(TransactionRecord.created_at.desc())
            .limit(limit)
        )
        return [to_transaction(r) for r in result.scalars().all()]

    async def update_status(
        self,
        transaction_id: str,
        status: TransactionStatus,
    ) -> None:
        """
        Set a transaction's status.

        A FAILED row is never overwritten, even if another writer
        decided differently in the meantime.
        """
        await self.session.execute(
            update(TransactionRecord)
            .where(
                TransactionRecord.id == transaction_id,
                TransactionRecord.status != TransactionStatus.FAILED.value,
            )
            .values(status=status.value)
        )
        await self.session.flush()

    async def _history_query(self, stmt):
        """
        Run a history lookup inside a savepoint.

        A failed query rolls back to the savepoint only, so the session
        stays usable for the remaining rules and for saving alerts.
        """
        try:
            async with self.session.begin_nested():
                return await self.session.execute(stmt)
        except SQLAlchemyError as e:
            raise HistoryLookupError(f"Transaction history lookup failed: {e}") from e

    async def count_from_account_since(
        self,
        account: str,
        cutoff: datetime,
        exclude_id: str,
    ) -> int:
        """Count transactions from an account created after cutoff."""
        result = await self._history_query(
            select(func.count())
            .select_from(TransactionRecord)
            .where(
                TransactionRecord.from_account == account,
                TransactionRecord.created_at > cutoff,
                TransactionRecord.id != exclude_id,
            )
        )
        return int(result.scalar_one())

    async def find_duplicate_since(
        self,
        from_account: str,
        to_account: str,
        amount: Decimal,
        cutoff: datetime,
        exclude_id: str,
    ) -> Optional[str]:
        """Find a transaction with the same parties and amount after cutoff."""
        result = await self._history_query(
            select(TransactionRecord.id)
            .where(
                TransactionRecord.from_account == from_account,
                TransactionRecord.to_account == to_account,
                TransactionRecord.amount == to_amount(amount),
                TransactionRecord.created_at > cutoff,
                TransactionRecord.id != exclude_id,
            )
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def stats(self) -> dict[str, Any]:
        """Revenue, transaction count and success rate."""
        success = TransactionRecord.status == TransactionStatus.SUCCESS.value
        result = await self.session.execute(
            select(
                func.coalesce(
                    func.sum(case((success, TransactionRecord.amount), else_=0)), 0
                ),
                func.count(),
                func.count(case((success, 1))),
            ).select_from(TransactionRecord)
        )
        revenue, total, successful = result.one()

        success_rate = (successful / total * 100) if total else 0.0
        return {
            "revenue": float(revenue or 0),
            "transactions": int(total or 0),
            "success_rate": success_rate,
        }


class FraudAlertRepository:
    """Repository for fraud alert operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def save_batch(self, alerts: list[FraudAlert]) -> None:
        """Insert the alerts raised for one transaction."""
        self.session.add_all(
            [
                FraudAlertRecord(
                    id=alert.id,
                    transaction_id=alert.transaction_id,
                    rule_triggered=alert.rule.value,
                    risk_score=alert.risk_score,
                    severity=alert.severity.value,
                    details=alert.details,
                    created_at=alert.created_at,
                )
                for alert in alerts
            ]
        )
        await self.session.flush()

    async def list_recent(
        self,
        limit: int = 50,
        severity: Optional[Severity] = None,
    ) -> list[FraudAlert]:
        """List recent alerts, optionally for one severity."""
        stmt = select(FraudAlertRecord)

        if severity:
            stmt = stmt.where(FraudAlertRecord.severity == severity.value)

        stmt = stmt.order_by(FraudAlertRecord.created_at.desc()).limit(limit)
        result = await self.session.execute(stmt)
        return [to_alert(r) for r in result.scalars().all()]

    async def list_by_severity(
        self,
        severity: Severity,
        limit: int = 50,
    ) -> list[FraudAlert]:
        """List recent alerts of one severity."""
        return await self.list_recent(limit=limit, severity=severity)

    async def list_for_transaction(self, transaction_id: str) -> list[FraudAlert]:
        """List alerts raised for a transaction."""
        result = await self.session.execute(
            select(FraudAlertRecord)
            .where(FraudAlertRecord.transaction_id == transaction_id)
            .order_by(FraudAlertRecord.created_at.desc())
        )
        return [to_alert(r) for r in result.scalars().all()]

    async def stats(self) -> dict[str, Any]:
        """Alert counts per severity and average risk score."""
        columns = [func.count()]
        for severity in (Severity.CRITICAL, Severity.HIGH, Severity.MEDIUM, Severity.LOW):
            columns.append(
                func.count(case((FraudAlertRecord.severity == severity.value, 1)))
            )
        columns.append(func.coalesce(func.avg(FraudAlertRecord.risk_score), 0))

        result = await self.session.execute(
            select(*columns).select_from(FraudAlertRecord)
        )
        total, critical, high, medium, low, avg_score = result.one()

        return {
            "total_alerts": int(total or 0),
            "critical_alerts": int(critical or 0),
            "high_alerts": int(high or 0),
            "medium_alerts": int(medium or 0),
            "low_alerts": int(low or 0),
            "avg_risk_score": float(avg_score or 0),
        }
