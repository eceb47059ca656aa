"""
Fraud detection for payment transactions.

Provides:
- Rule evaluation against historical transactions
- Risk score aggregation and blocking decisions
- A detection service that persists alerts and status changes
"""

from payflow.fraud.aggregator import RiskAggregator, StatusDecision
from payflow.fraud.detector import FraudDetector, FraudResult
from payflow.fraud.models import (
    FraudAlert,
    RuleId,
    Severity,
    Transaction,
    TransactionStatus,
)
from payflow.fraud.rules_engine import FraudRulesEngine, HistoryLookup

__all__ = [
    "FraudAlert",
    "FraudDetector",
    "FraudResult",
    "FraudRulesEngine",
    "HistoryLookup",
    "RiskAggregator",
    "RuleId",
    "Severity",
    "StatusDecision",
    "Transaction",
    "TransactionStatus",
]
