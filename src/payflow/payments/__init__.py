"""
Payment processing.
"""

from payflow.payments.service import PaymentService

__all__ = ["PaymentService"]
