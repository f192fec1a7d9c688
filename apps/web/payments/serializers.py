"""
Pydantic schemas for payment API requests.

Responses are plain dicts built by the payment services.
"""

from decimal import Decimal

from pydantic import BaseModel, Field

from apps.web.payments.models import Gateway, TransactionStatus


class PaymentInitiateRequest(BaseModel):
    """Request body for POST /payments/initiate."""

    order_id: int


class PaymentVerifyRequest(BaseModel):
    """Request body for POST /payments/verify."""

    gateway_order_id: str = Field(..., min_length=1, max_length=100)
    gateway_payment_id: str = Field(..., min_length=1, max_length=100)
    gateway_signature: str = Field(..., min_length=1, max_length=255)


class RefundRequest(BaseModel):
    """Request body for POST /payments/refund."""

    order_id: int
    amount: Decimal | None = Field(default=None, gt=0, decimal_places=2)
    reason: str = Field(default="", max_length=500)


class TransactionFilter(BaseModel):
    """Query parameters for GET /payments/transactions."""

    status: TransactionStatus | None = None
    gateway: Gateway | None = None
    order_id: int | None = None
    limit: int = Field(default=50, ge=1, le=200)
