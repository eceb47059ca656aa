"""
Exceptions raised by PayFlow components.
"""


class PayFlowError(Exception):
    """Base class for PayFlow errors."""

    pass


class HistoryLookupError(PayFlowError):
    """Raised when historical transaction data cannot be read."""

    pass


class FraudPersistenceError(PayFlowError):
    """Raised when fraud alerts or a status decision cannot be saved."""

    def __init__(self, message: str, transaction_id: str):
        super().__init__(message)
        self.transaction_id = transaction_id


class EvaluationTimeout(PayFlowError):
    """Raised when fraud evaluation exceeds its deadline."""

    def __init__(self, transaction_id: str, timeout: float):
        super().__init__(
            f"Fraud evaluation for {transaction_id} exceeded {timeout:.2f}s"
        )
        self.transaction_id = transaction_id
        self.timeout = timeout
