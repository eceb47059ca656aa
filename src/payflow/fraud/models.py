"""
Domain records for payments and fraud detection.

Amounts are held as Decimal and compared at integer-cent precision so
that round-amount and duplicate checks never depend on float drift.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any, Union
from uuid import uuid4

CENT = Decimal("0.01")


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, matching the DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class TransactionStatus(str, Enum):
    """Lifecycle states of a payment transaction."""

    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"
    BLOCKED = "blocked"


class RuleId(str, Enum):
    """Fraud rules known to the evaluator."""

    HIGH_AMOUNT = "HIGH_AMOUNT"
    VELOCITY_CHECK = "VELOCITY_CHECK"
    DUPLICATE_TRANSACTION = "DUPLICATE_TRANSACTION"
    SUSPICIOUS_PATTERN = "SUSPICIOUS_PATTERN"


class Severity(str, Enum):
    """Alert severity levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


def to_amount(value: Union[Decimal, float, int, str]) -> Decimal:
    """Quantize a monetary value to two fractional digits."""
    if isinstance(value, float):
        # str() keeps the shortest repr, so 100.1 stays 100.1 and not 100.0999...
        value = str(value)
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def to_cents(value: Union[Decimal, float, int, str]) -> int:
    """Convert a monetary value to integer cents."""
    return int(to_amount(value) * 100)


@dataclass(frozen=True)
class RiskTier:
    """A score together with the severity it maps to."""

    score: int
    severity: Severity


@dataclass(frozen=True)
class Transaction:
    """A payment transaction as seen by fraud detection."""

    id: str
    from_account: str
    to_account: str
    amount: Decimal
    description: str = ""
    status: TransactionStatus = TransactionStatus.PENDING
    created_at: datetime = field(default_factory=utcnow)

    def __post_init__(self):
        object.__setattr__(self, "amount", to_amount(self.amount))
        object.__setattr__(self, "status", TransactionStatus(self.status))

    @property
    def amount_cents(self) -> int:
        return to_cents(self.amount)

    def with_status(self, status: TransactionStatus) -> "Transaction":
        """Return a copy carrying a new status."""
        return replace(self, status=status)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "from_account": self.from_account,
            "to_account": self.to_account,
            "amount": float(self.amount),
            "description": self.description,
            "status": self.status.value,
            "created_at": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class FraudAlert:
    """
    An alert produced when a fraud rule fires for a transaction.

    Alerts are never mutated. Severity always comes from the rule's
    RiskTier, so use FraudAlert.create() rather than the constructor.
    """

    id: str
    transaction_id: str
    rule: RuleId
    risk_score: int
    severity: Severity
    details: str
    created_at: datetime = field(default_factory=utcnow)

    @classmethod
    def create(
        cls,
        transaction_id: str,
        rule: RuleId,
        tier: RiskTier,
        details: str,
    ) -> "FraudAlert":
        """Build an alert whose score and severity come from a tier."""
        return cls(
            id=str(uuid4()),
            transaction_id=transaction_id,
            rule=rule,
            risk_score=tier.score,
            severity=tier.severity,
            details=details,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "transaction_id": self.transaction_id,
            "rule_triggered": self.rule.value,
            "risk_score": self.risk_score,
            "severity": self.severity.value,
            "details": self.details,
            "created_at": self.created_at.isoformat(),
        }
