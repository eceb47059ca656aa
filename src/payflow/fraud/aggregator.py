"""
Combines the alerts for one transaction into a blocking decision.
"""

from dataclasses import dataclass

from payflow.fraud.models import FraudAlert, Transaction, TransactionStatus

DEFAULT_BLOCK_THRESHOLD = 80

# Statuses a block may replace. FAILED is terminal and is never overridden.
BLOCKABLE_STATUSES = frozenset(
    {TransactionStatus.PENDING, TransactionStatus.SUCCESS}
)


@dataclass(frozen=True)
class StatusDecision:
    """Outcome of aggregating alerts for a transaction."""

    transaction_id: str
    total_score: int
    previous_status: TransactionStatus
    new_status: TransactionStatus

    @property
    def changed(self) -> bool:
        return self.new_status != self.previous_status

    @property
    def blocked(self) -> bool:
        return self.new_status == TransactionStatus.BLOCKED


class RiskAggregator:
    """
    Sums alert risk scores and decides whether to block.

    Blocking moves pending or successful transactions to BLOCKED.
    A FAILED transaction keeps its status whatever the score.
    """

    def __init__(self, block_threshold: int = DEFAULT_BLOCK_THRESHOLD):
        self.block_threshold = block_threshold

    def aggregate(
        self,
        transaction: Transaction,
        alerts: list[FraudAlert],
    ) -> StatusDecision:
        """
        Decide the transaction status after fraud evaluation.

        Args:
            transaction: The evaluated transaction
            alerts: Alerts produced for it

        Returns:
            StatusDecision; new_status equals the current status when
            nothing changes
        """
        total = sum(alert.risk_score for alert in alerts)
        status = transaction.status

        if (
            alerts
            and total >= self.block_threshold
            and status in BLOCKABLE_STATUSES
        ):
            new_status = TransactionStatus.BLOCKED
        else:
            new_status = status

        return StatusDecision(
            transaction_id=transaction.id,
            total_score=total,
            previous_status=status,
            new_status=new_status,
        )
