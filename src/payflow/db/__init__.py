"""
Database module for PayFlow.
"""

from payflow.db.orm import Base, FraudAlertRecord, TransactionRecord
from payflow.db.repositories import FraudAlertRepository, TransactionRepository

__all__ = [
    "Base",
    "TransactionRecord",
    "FraudAlertRecord",
    "TransactionRepository",
    "FraudAlertRepository",
]
