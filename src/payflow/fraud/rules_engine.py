"""
Fraud rules engine for payment transactions.

Evaluates a transaction against four fixed rules:
- HIGH_AMOUNT: amount above a configurable threshold
- VELOCITY_CHECK: many transactions from one account in a short window
- DUPLICATE_TRANSACTION: same sender, receiver and amount recently
- SUSPICIOUS_PATTERN: round amounts of 1000 or more

History-based rules read prior transactions through a HistoryLookup.
A lookup failure never aborts evaluation; the rule simply does not fire.
"""

import logging
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Callable, Optional, Protocol

from payflow.fraud.models import (
    FraudAlert,
    RiskTier,
    RuleId,
    Severity,
    Transaction,
    to_cents,
    utcnow,
)
from payflow.monitoring import metrics

logger = logging.getLogger(__name__)


class HistoryLookup(Protocol):
    """Read-only view of previously recorded transactions."""

    async def count_from_account_since(
        self,
        account: str,
        cutoff: datetime,
        exclude_id: str,
    ) -> int:
        """Count transactions from an account created after cutoff."""
        ...

    async def find_duplicate_since(
        self,
        from_account: str,
        to_account: str,
        amount: Decimal,
        cutoff: datetime,
        exclude_id: str,
    ) -> Optional[str]:
        """Return the id of a matching transaction created after cutoff."""
        ...


# Score tiers per rule
HIGH_AMOUNT_TIERS = {
    "medium": RiskTier(30, Severity.MEDIUM),
    "high": RiskTier(50, Severity.HIGH),
    "critical": RiskTier(80, Severity.CRITICAL),
}
VELOCITY_TIERS = {
    "medium": RiskTier(40, Severity.MEDIUM),
    "high": RiskTier(70, Severity.HIGH),
}
DUPLICATE_TIER = RiskTier(60, Severity.HIGH)
SUSPICIOUS_PATTERN_TIER = RiskTier(25, Severity.LOW)

ROUND_AMOUNT_CENTS = 1000 * 100


class FraudRulesEngine:
    """
    Runs the fixed fraud rules against a single transaction.

    The engine holds no mutable state between calls; everything it
    knows about the past comes from the HistoryLookup passed in.
    """

    DEFAULT_HIGH_AMOUNT_THRESHOLD = Decimal("5000")
    DEFAULT_VELOCITY_LIMIT = 3
    DEFAULT_VELOCITY_WINDOW_SECONDS = 60
    DEFAULT_DUPLICATE_WINDOW_SECONDS = 300

    def __init__(
        self,
        enabled: bool = True,
        high_amount_threshold: Decimal = DEFAULT_HIGH_AMOUNT_THRESHOLD,
        velocity_limit: int = DEFAULT_VELOCITY_LIMIT,
        velocity_window_seconds: int = DEFAULT_VELOCITY_WINDOW_SECONDS,
        duplicate_window_seconds: int = DEFAULT_DUPLICATE_WINDOW_SECONDS,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Initialize the rules engine.

        Args:
            enabled: When False, evaluate() returns no alerts
            high_amount_threshold: HIGH_AMOUNT threshold T
            velocity_limit: VELOCITY_CHECK limit L
            velocity_window_seconds: VELOCITY_CHECK window W
            duplicate_window_seconds: DUPLICATE_TRANSACTION window
            clock: Source of "now" for the trailing windows
        """
        self.enabled = enabled
        self.high_amount_threshold = Decimal(high_amount_threshold)
        self.velocity_limit = velocity_limit
        self.velocity_window = timedelta(seconds=velocity_window_seconds)
        self.duplicate_window = timedelta(seconds=duplicate_window_seconds)
        self._clock = clock

    @classmethod
    def from_settings(cls, settings) -> "FraudRulesEngine":
        """Build an engine from application settings."""
        return cls(
            enabled=settings.fraud_detection_enabled,
            high_amount_threshold=settings.fraud_high_amount_threshold,
            velocity_limit=settings.fraud_velocity_limit,
            velocity_window_seconds=settings.fraud_velocity_window,
            duplicate_window_seconds=settings.fraud_duplicate_window,
        )

    async def evaluate(
        self,
        transaction: Transaction,
        history: HistoryLookup,
    ) -> list[FraudAlert]:
        """
        Evaluate a transaction against all rules.

        Args:
            transaction: Transaction to inspect (amount must be positive)
            history: Lookup over previously recorded transactions

        Returns:
            Alerts for every rule that fired, possibly empty
        """
        if not self.enabled:
            return []

        now = self._clock()
        candidates = [
            self.check_high_amount(transaction),
            await self.check_velocity(transaction, history, now),
            await self.check_duplicate(transaction, history, now),
            self.check_suspicious_pattern(transaction),
        ]
        alerts = [alert for alert in candidates if alert is not None]

        if alerts:
            logger.info(
                "Fraud rules triggered",
                extra={
                    "transaction_id": transaction.id,
                    "rules": [a.rule.value for a in alerts],
                    "total_risk_score": sum(a.risk_score for a in alerts),
                },
            )
        return alerts

    def check_high_amount(self, transaction: Transaction) -> Optional[FraudAlert]:
        """Flag transactions above the high amount threshold."""
        threshold = to_cents(self.high_amount_threshold)
        amount = transaction.amount_cents

        if amount <= threshold:
            return None

        if amount > threshold * 5:
            tier = HIGH_AMOUNT_TIERS["critical"]
        elif amount > threshold * 2:
            tier = HIGH_AMOUNT_TIERS["high"]
        else:
            tier = HIGH_AMOUNT_TIERS["medium"]

        return FraudAlert.create(
            transaction_id=transaction.id,
            rule=RuleId.HIGH_AMOUNT,
            tier=tier,
            details=(
                f"Transaction amount ${transaction.amount:.2f} exceeds "
                f"threshold ${self.high_amount_threshold:.2f}"
            ),
        )

    async def check_velocity(
        self,
        transaction: Transaction,
        history: HistoryLookup,
        now: datetime,
    ) -> Optional[FraudAlert]:
        """Flag accounts sending many transactions within the window."""
        cutoff = now - self.velocity_window
        try:
            count = await history.count_from_account_since(
                transaction.from_account, cutoff, transaction.id
            )
        except Exception as e:
            self._lookup_failed(RuleId.VELOCITY_CHECK, transaction, e)
            return None

        if count < self.velocity_limit:
            return None

        if count >= self.velocity_limit * 2:
            tier = VELOCITY_TIERS["high"]
        else:
            tier = VELOCITY_TIERS["medium"]

        window_seconds = int(self.velocity_window.total_seconds())
        return FraudAlert.create(
            transaction_id=transaction.id,
            rule=RuleId.VELOCITY_CHECK,
            tier=tier,
            details=(
                f"Account {transaction.from_account} made {count + 1} "
                f"transactions in {window_seconds} seconds"
            ),
        )

    async def check_duplicate(
        self,
        transaction: Transaction,
        history: HistoryLookup,
        now: datetime,
    ) -> Optional[FraudAlert]:
        """Flag repeats of the same payment within the duplicate window."""
        cutoff = now - self.duplicate_window
        try:
            existing_id = await history.find_duplicate_since(
                transaction.from_account,
                transaction.to_account,
                transaction.amount,
                cutoff,
                transaction.id,
            )
        except Exception as e:
            self._lookup_failed(RuleId.DUPLICATE_TRANSACTION, transaction, e)
            return None

        if existing_id is None:
            return None

        minutes = int(self.duplicate_window.total_seconds() // 60)
        return FraudAlert.create(
            transaction_id=transaction.id,
            rule=RuleId.DUPLICATE_TRANSACTION,
            tier=DUPLICATE_TIER,
            details=(
                f"Duplicate transaction detected: same amount "
                f"${transaction.amount:.2f} to {transaction.to_account} "
                f"within {minutes} minutes"
            ),
        )

    def check_suspicious_pattern(self, transaction: Transaction) -> Optional[FraudAlert]:
        """Flag round amounts of 1000 or more."""
        amount = transaction.amount_cents
        if amount < ROUND_AMOUNT_CENTS or amount % ROUND_AMOUNT_CENTS != 0:
            return None

        return FraudAlert.create(
            transaction_id=transaction.id,
            rule=RuleId.SUSPICIOUS_PATTERN,
            tier=SUSPICIOUS_PATTERN_TIER,
            details=f"Suspicious round amount: ${transaction.amount:.2f}",
        )

    def _lookup_failed(
        self,
        rule: RuleId,
        transaction: Transaction,
        error: Exception,
    ) -> None:
        """Record a history lookup failure; the rule is skipped."""
        metrics.fraud_lookup_failures_total.labels(rule=rule.value).inc()
        logger.warning(
            f"History lookup failed for {rule.value}, rule skipped: {error}",
            extra={"transaction_id": transaction.id, "rule": rule.value},
        )
