"""Payment gateway schemas - data contracts shared by every gateway implementation."""

from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

# =============================================================================
# Enums
# =============================================================================


class GatewayProvider(str, Enum):
    """Supported payment gateways."""

    RAZORPAY = "razorpay"
    UPIGATEWAY = "upigateway"


class GatewayPaymentStatus(str, Enum):
    """Payment status normalized across gateways."""

    CREATED = "created"
    AUTHORIZED = "authorized"
    CAPTURED = "captured"
    FAILED = "failed"
    REFUNDED = "refunded"


class EventChannel(str, Enum):
    """How a payment outcome reached the backend."""

    VERIFY = "verify"
    WEBHOOK = "webhook"
    POLL = "poll"


# =============================================================================
# Gateway Responses
# =============================================================================


class GatewayOrder(BaseModel):
    """A gateway-side order created before the customer pays."""

    provider: GatewayProvider
    id: str = Field(description="Order reference used by the gateway in callbacks")
    amount: Decimal
    currency: str = "INR"
    receipt: str
    status: str = "created"
    checkout: dict[str, Any] = Field(
        default_factory=dict,
        description="Extra data the client needs to start payment (QR string, URL)",
    )
    raw: dict[str, Any] = Field(default_factory=dict)


class PaymentInstrument(BaseModel):
    """How the customer paid. Card numbers never appear beyond the last four."""

    method: str = ""
    card_network: str = ""
    card_last4: str = ""
    bank: str = ""
    wallet: str = ""
    vpa: str = ""


class GatewayPayment(BaseModel):
    """Payment details fetched from a gateway."""

    provider: GatewayProvider
    id: str | None = None
    order_id: str | None = None
    status: GatewayPaymentStatus
    amount: Decimal | None = None
    instrument: PaymentInstrument = Field(default_factory=PaymentInstrument)
    error_code: str = ""
    error_description: str = ""
    raw: dict[str, Any] = Field(default_factory=dict)


class GatewayRefund(BaseModel):
    """A refund accepted by a gateway."""

    provider: GatewayProvider
    id: str
    payment_id: str
    amount: Decimal
    status: str
    raw: dict[str, Any] = Field(default_factory=dict)


# =============================================================================
# Reconciliation Input
# =============================================================================


class PaymentEvent(BaseModel):
    """
    A payment outcome normalized from any channel.

    Verify calls, webhooks and status polls all produce one of these and hand
    it to the same reconciliation routine.
    """

    channel: EventChannel
    provider: GatewayProvider
    gateway_order_id: str
    gateway_payment_id: str | None = None
    status: GatewayPaymentStatus
    signature: str = ""
    instrument: PaymentInstrument = Field(default_factory=PaymentInstrument)
    error_code: str = ""
    error_description: str = ""
    event_type: str = ""
    payload: dict[str, Any] = Field(default_factory=dict)
    received_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def from_payment(
        cls,
        payment: GatewayPayment,
        *,
        channel: EventChannel,
        gateway_order_id: str,
        signature: str = "",
        event_type: str = "",
    ) -> "PaymentEvent":
        """Build an event from fetched payment details."""
        return cls(
            channel=channel,
            provider=payment.provider,
            gateway_order_id=payment.order_id or gateway_order_id,
            gateway_payment_id=payment.id,
            status=payment.status,
            signature=signature,
            instrument=payment.instrument,
            error_code=payment.error_code,
            error_description=payment.error_description,
            event_type=event_type or f"{channel.value}.{payment.status.value}",
            payload=payment.raw,
        )
