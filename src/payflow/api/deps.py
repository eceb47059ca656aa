"""
FastAPI dependencies for the API.

Provides:
- Database session management
- Repositories and the payment service
- Fraud detector and stats cache from application state
"""

from typing import Annotated, AsyncGenerator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from payflow.cache import StatsCache
from payflow.config import settings
from payflow.db.repositories import FraudAlertRepository, TransactionRepository
from payflow.fraud.detector import FraudDetector
from payflow.payments.service import PaymentService


async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    Get database session from request state.

    Uses the session factory stored during app startup.
    """
    async with request.app.state.db_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


# Type alias for dependency injection
DbSession = Annotated[AsyncSession, Depends(get_db_session)]


def get_fraud_detector(request: Request) -> FraudDetector:
    """Get the application-wide fraud detector."""
    return request.app.state.fraud_detector


def get_stats_cache(request: Request) -> StatsCache:
    """Get the stats cache."""
    return request.app.state.stats_cache


Detector = Annotated[FraudDetector, Depends(get_fraud_detector)]
Cache = Annotated[StatsCache, Depends(get_stats_cache)]


def get_transaction_repo(session: DbSession) -> TransactionRepository:
    """Get transaction repository."""
    return TransactionRepository(session)


def get_alert_repo(session: DbSession) -> FraudAlertRepository:
    """Get fraud alert repository."""
    return FraudAlertRepository(session)


def get_payment_service(session: DbSession, detector: Detector) -> PaymentService:
    """Get payment service bound to the request session."""
    return PaymentService(
        session,
        detector,
        failure_rate=settings.natural_failure_rate,
    )


# Type aliases for repositories and services
TransactionRepo = Annotated[TransactionRepository, Depends(get_transaction_repo)]
AlertRepo = Annotated[FraudAlertRepository, Depends(get_alert_repo)]
Payments = Annotated[PaymentService, Depends(get_payment_service)]
