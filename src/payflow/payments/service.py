"""
Payment submission service.

Simulates processing a payment, records it, then runs fraud detection.
Fraud detection is advisory: whatever goes wrong there, the payment
has already been recorded and is returned to the caller.
"""

import logging
import random
from decimal import Decimal
from typing import Callable
from uuid import uuid4

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from payflow.db.repositories import FraudAlertRepository, TransactionRepository
from payflow.exceptions import EvaluationTimeout, FraudPersistenceError
from payflow.fraud.detector import FraudDetector
from payflow.fraud.models import Transaction, TransactionStatus
from payflow.monitoring import metrics

logger = logging.getLogger(__name__)


class PaymentService:
    """Processes and records payment transactions."""

    def __init__(
        self,
        session: AsyncSession,
        detector: FraudDetector,
        failure_rate: float = 0.05,
        rng: Callable[[], float] = random.random,
    ):
        self.session = session
        self.detector = detector
        self.failure_rate = failure_rate
        self._rng = rng
        self.transactions = TransactionRepository(session)
        self.alerts = FraudAlertRepository(session)

    async def submit(
        self,
        from_account: str,
        to_account: str,
        amount: Decimal,
        description: str = "",
    ) -> Transaction:
        """
        Process a payment and run fraud detection on it.

        Args:
            from_account: Paying account
            to_account: Receiving account
            amount: Positive amount
            description: Free text

        Returns:
            The recorded transaction, with BLOCKED status if fraud
            detection blocked it
        """
        status = TransactionStatus.SUCCESS
        if self._rng() < self.failure_rate:
            status = TransactionStatus.FAILED
            logger.error(
                "Transaction failed: insufficient funds",
                extra={
                    "from_account": from_account,
                    "amount": float(amount),
                    "error_code": "INSUFFICIENT_FUNDS",
                },
            )

        # Processing outcome only; blocks are counted by payflow_fraud_blocked_total
        metrics.transactions_total.labels(status=status.value).inc()

        transaction = Transaction(
            id=str(uuid4()),
            from_account=from_account,
            to_account=to_account,
            amount=amount,
            description=description,
            status=status,
        )

        if await self._record(transaction):
            transaction = await self._detect_fraud(transaction)

        logger.info(
            "Transaction processed",
            extra={
                "transaction_id": transaction.id,
                "amount": float(transaction.amount),
                "status": transaction.status.value,
            },
        )
        return transaction

    async def _record(self, transaction: Transaction) -> bool:
        """Persist the transaction; fraud detection needs the row to exist."""
        try:
            await self.transactions.create(transaction)
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(
                f"Failed to save transaction: {e}",
                extra={"transaction_id": transaction.id},
            )
            return False
        return True

    async def _detect_fraud(self, transaction: Transaction) -> Transaction:
        """Run fraud detection; failures are logged, never raised."""
        try:
            result = await self.detector.analyze(
                transaction,
                history=self.transactions,
                alert_sink=self.alerts,
                status_sink=self.transactions,
            )
            await self.session.commit()
        except EvaluationTimeout as e:
            await self.session.rollback()
            logger.warning(str(e), extra={"transaction_id": transaction.id})
            return transaction
        except (FraudPersistenceError, SQLAlchemyError) as e:
            await self.session.rollback()
            logger.error(
                f"Fraud detection results not saved: {e}",
                extra={"transaction_id": transaction.id},
            )
            return transaction

        return transaction.with_status(result.status)
