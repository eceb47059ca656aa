"""
Transaction API routes.
"""

from datetime import datetime
from decimal import Decimal

from fastapi import APIRouter, status
from pydantic import BaseModel, Field, field_validator

from payflow.api.deps import Payments, TransactionRepo
from payflow.fraud.models import Transaction

router = APIRouter()


class TransactionCreate(BaseModel):
    """Request to submit a payment."""

    from_account: str = Field(..., min_length=1, max_length=255)
    to_account: str = Field(..., min_length=1, max_length=255)
    # Matches the Numeric(15, 2) column; sub-cent values would round to zero
    amount: Decimal = Field(
        ...,
        gt=0,
        max_digits=15,
        decimal_places=2,
        description="Amount in currency units",
    )
    description: str = Field(default="", max_length=1000)

    @field_validator("from_account", "to_account")
    @classmethod
    def validate_account(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Account identifier must not be blank")
        return v


class TransactionResponse(BaseModel):
    """Response model for a transaction."""

    id: str
    from_account: str
    to_account: str
    amount: float
    description: str
    status: str
    created_at: datetime

    @classmethod
    def from_domain(cls, transaction: Transaction) -> "TransactionResponse":
        return cls(
            id=transaction.id,
            from_account=transaction.from_account,
            to_account=transaction.to_account,
            amount=float(transaction.amount),
            description=transaction.description,
            status=transaction.status.value,
            created_at=transaction.created_at,
        )


@router.get("", response_model=list[TransactionResponse])
async def list_transactions(transaction_repo: TransactionRepo):
    """List the 50 most recent transactions."""
    transactions = await transaction_repo.list_recent(limit=50)
    return [TransactionResponse.from_domain(t) for t in transactions]


@router.post("", response_model=TransactionResponse, status_code=status.HTTP_201_CREATED)
async def create_transaction(request: TransactionCreate, payments: Payments):
    """
    Submit a payment.

    The payment is recorded and then checked for fraud. Fraud detection
    problems never fail the request.
    """
    transaction = await payments.submit(
        from_account=request.from_account,
        to_account=request.to_account,
        amount=request.amount,
        description=request.description,
    )
    return TransactionResponse.from_domain(transaction)
