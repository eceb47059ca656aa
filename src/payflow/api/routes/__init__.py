"""
API route modules.
"""

from payflow.api.routes.fraud import router as fraud_router
from payflow.api.routes.system import router as system_router
from payflow.api.routes.transactions import router as transactions_router

__all__ = [
    "fraud_router",
    "system_router",
    "transactions_router",
]
