"""
Fraud detection service.

Runs the rules engine for a transaction, turns the alerts into a status
decision and hands both to storage.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Optional, Protocol

from payflow.exceptions import EvaluationTimeout, FraudPersistenceError
from payflow.fraud.aggregator import RiskAggregator, StatusDecision
from payflow.fraud.models import FraudAlert, Transaction, TransactionStatus
from payflow.fraud.rules_engine import FraudRulesEngine, HistoryLookup
from payflow.monitoring import metrics

logger = logging.getLogger(__name__)


class AlertSink(Protocol):
    """Durable store for fraud alerts."""

    async def save_batch(self, alerts: list[FraudAlert]) -> None:
        ...


class StatusSink(Protocol):
    """Durable store for transaction status changes."""

    async def update_status(
        self, transaction_id: str, status: TransactionStatus
    ) -> None:
        ...


@dataclass
class FraudResult:
    """Alerts and the resulting status decision for one transaction."""

    transaction: Transaction
    alerts: list[FraudAlert] = field(default_factory=list)
    decision: Optional[StatusDecision] = None

    @property
    def status(self) -> TransactionStatus:
        if self.decision is None:
            return self.transaction.status
        return self.decision.new_status


class FraudDetector:
    """
    Evaluate, aggregate and persist fraud results.

    Evaluation is advisory: a timed-out evaluation persists nothing and
    raises EvaluationTimeout, and storage errors surface as
    FraudPersistenceError. Callers decide how to log them; neither
    changes the payment that was already recorded.
    """

    def __init__(
        self,
        engine: FraudRulesEngine,
        aggregator: Optional[RiskAggregator] = None,
        timeout: Optional[float] = None,
    ):
        self.engine = engine
        self.aggregator = aggregator or RiskAggregator()
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings) -> "FraudDetector":
        """Build a detector from application settings."""
        return cls(
            engine=FraudRulesEngine.from_settings(settings),
            aggregator=RiskAggregator(block_threshold=settings.fraud_block_threshold),
            timeout=settings.fraud_evaluation_timeout_seconds,
        )

    @property
    def enabled(self) -> bool:
        return self.engine.enabled

    async def analyze(
        self,
        transaction: Transaction,
        history: HistoryLookup,
        alert_sink: AlertSink,
        status_sink: StatusSink,
    ) -> FraudResult:
        """
        Run fraud detection for a transaction and persist the outcome.

        Args:
            transaction: Transaction already recorded by the caller
            history: Lookup over earlier transactions
            alert_sink: Where alerts are saved
            status_sink: Where a changed status is saved

        Returns:
            FraudResult with the alerts and decision

        Raises:
            EvaluationTimeout: Evaluation exceeded the deadline
            FraudPersistenceError: Alerts or status could not be saved
        """
        if not self.enabled:
            return FraudResult(transaction=transaction)

        alerts = await self._evaluate(transaction, history)
        if not alerts:
            return FraudResult(transaction=transaction)

        decision = self.aggregator.aggregate(transaction, alerts)

        try:
            await alert_sink.save_batch(alerts)
        except Exception as e:
            raise FraudPersistenceError(
                f"Failed to save fraud alerts: {e}", transaction.id
            ) from e

        if decision.changed:
            try:
                await status_sink.update_status(transaction.id, decision.new_status)
            except Exception as e:
                raise FraudPersistenceError(
                    f"Failed to update transaction fraud status: {e}",
                    transaction.id,
                ) from e

        for alert in alerts:
            metrics.fraud_alerts_total.labels(
                rule=alert.rule.value, severity=alert.severity.value
            ).inc()

        if decision.blocked and decision.changed:
            metrics.fraud_blocked_total.inc()
            logger.warning(
                "Transaction blocked by fraud detection",
                extra={
                    "transaction_id": transaction.id,
                    "total_risk_score": decision.total_score,
                    "previous_status": decision.previous_status.value,
                },
            )

        return FraudResult(transaction=transaction, alerts=alerts, decision=decision)

    async def _evaluate(
        self,
        transaction: Transaction,
        history: HistoryLookup,
    ) -> list[FraudAlert]:
        """Run the engine under the configured deadline."""
        start = time.perf_counter()
        try:
            if self.timeout:
                return await asyncio.wait_for(
                    self.engine.evaluate(transaction, history), self.timeout
                )
            return await self.engine.evaluate(transaction, history)
        except asyncio.TimeoutError as e:
            raise EvaluationTimeout(transaction.id, self.timeout) from e
        finally:
            metrics.fraud_evaluation_duration_seconds.observe(
                time.perf_counter() - start
            )
