"""
SQLAlchemy database models for PayFlow.

Two tables:
- transactions: payments submitted through the API
- fraud_alerts: alerts raised by fraud detection, one row per fired rule
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from payflow.fraud.models import utcnow


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class TransactionRecord(Base):
    """A payment transaction."""

    __tablename__ = "transactions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)

    # Parties
    from_account: Mapped[str] = mapped_column(String(255), nullable=False)
    to_account: Mapped[str] = mapped_column(String(255), nullable=False)

    # Amount
    amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)

    description: Mapped[Optional[str]] = mapped_column(Text)
    status: Mapped[str] = mapped_column(String(50), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, nullable=False
    )

    alerts: Mapped[list["FraudAlertRecord"]] = relationship(
        "FraudAlertRecord", back_populates="transaction"
    )

    __table_args__ = (
        Index("idx_transactions_from_account", "from_account", "created_at"),
        Index("idx_transactions_created_at", "created_at"),
    )


class FraudAlertRecord(Base):
    """
    A fraud alert for a transaction.

    Rows are written once and never updated.
    """

    __tablename__ = "fraud_alerts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    transaction_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("transactions.id"), nullable=False
    )
    rule_triggered: Mapped[str] = mapped_column(String(100), nullable=False)
    risk_score: Mapped[int] = mapped_column(Integer, nullable=False)
    severity: Mapped[str] = mapped_column(String(20), nullable=False)
    details: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, nullable=False
    )

    transaction: Mapped["TransactionRecord"] = relationship(
        "TransactionRecord", back_populates="alerts"
    )

    __table_args__ = (
        Index("idx_fraud_alerts_transaction_id", "transaction_id"),
        Index("idx_fraud_alerts_severity", "severity"),
    )


Index("idx_fraud_alerts_created_at", FraudAlertRecord.created_at.desc())
