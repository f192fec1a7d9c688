"""Thali Schemas - Pydantic models for data contracts."""

from thali_schemas.payments import (
    EventChannel,
    GatewayOrder,
    GatewayPayment,
    GatewayPaymentStatus,
    GatewayProvider,
    GatewayRefund,
    PaymentEvent,
    PaymentInstrument,
)

__all__ = [
    "EventChannel",
    "GatewayOrder",
    "GatewayPayment",
    "GatewayPaymentStatus",
    "GatewayProvider",
    "GatewayRefund",
    "PaymentEvent",
    "PaymentInstrument",
]
