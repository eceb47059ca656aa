"""
Fraud alert API routes.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Query
from pydantic import BaseModel

from payflow.api.deps import AlertRepo
from payflow.fraud.models import FraudAlert, Severity

router = APIRouter()


class FraudAlertResponse(BaseModel):
    """Response model for a fraud alert."""

    id: str
    transaction_id: str
    rule_triggered: str
    risk_score: int
    severity: str
    details: str
    created_at: datetime

    @classmethod
    def from_domain(cls, alert: FraudAlert) -> "FraudAlertResponse":
        return cls(
            id=alert.id,
            transaction_id=alert.transaction_id,
            rule_triggered=alert.rule.value,
            risk_score=alert.risk_score,
            severity=alert.severity.value,
            details=alert.details,
            created_at=alert.created_at,
        )


class FraudStatsResponse(BaseModel):
    """Alert counts per severity."""

    total_alerts: int
    critical_alerts: int
    high_alerts: int
    medium_alerts: int
    low_alerts: int
    avg_risk_score: float


@router.get("/alerts", response_model=list[FraudAlertResponse])
async def list_alerts(
    alert_repo: AlertRepo,
    severity: Optional[Severity] = Query(None, description="Filter by severity"),
    limit: int = Query(50, ge=1, le=500, description="Maximum alerts to return"),
):
    """List recent fraud alerts."""
    if severity:
        alerts = await alert_repo.list_by_severity(severity, limit=limit)
    else:
        alerts = await alert_repo.list_recent(limit=limit)
    return [FraudAlertResponse.from_domain(a) for a in alerts]


@router.get("/alerts/{transaction_id}", response_model=list[FraudAlertResponse])
async def list_transaction_alerts(transaction_id: str, alert_repo: AlertRepo):
    """List fraud alerts raised for one transaction."""
    alerts = await alert_repo.list_for_transaction(transaction_id)
    return [FraudAlertResponse.from_domain(a) for a in alerts]


@router.get("/stats", response_model=FraudStatsResponse)
async def fraud_stats(alert_repo: AlertRepo):
    """Alert counts per severity and average risk score."""
    return FraudStatsResponse(**await alert_repo.stats())
