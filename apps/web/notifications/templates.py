"""
Notification templates.

Each template renders a title and message from a data dict and names its
audience: the customer identified by ``data["user_id"]``, or every admin.
"""

from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import Any


class Audience(StrEnum):
    CUSTOMER = "customer"
    ADMIN = "admin"


class TemplateName(StrEnum):
    ORDER_CREATED = "ORDER_CREATED"
    PAYMENT_COMPLETED = "PAYMENT_COMPLETED"
    PAYMENT_FAILED = "PAYMENT_FAILED"
    ORDER_CONFIRMED = "ORDER_CONFIRMED"
    ORDER_PREPARING = "ORDER_PREPARING"
    ORDER_READY = "ORDER_READY"
    ORDER_DELIVERED = "ORDER_DELIVERED"
    ORDER_CANCELLED = "ORDER_CANCELLED"
    REFUND_PROCESSED = "REFUND_PROCESSED"
    NEW_ORDER = "NEW_ORDER"
    PAYMENT_RECEIVED = "PAYMENT_RECEIVED"
    ORDER_CANCELLED_ADMIN = "ORDER_CANCELLED_ADMIN"
    REFUND_REQUESTED = "REFUND_REQUESTED"


@dataclass(frozen=True)
class NotificationTemplate:
    name: TemplateName
    title: str
    render: Callable[[dict[str, Any]], str]
    audience: Audience = Audience.CUSTOMER


def _refund_note(data: dict[str, Any], text: str) -> str:
    amount = data.get("refund_amount")
    return text.format(amount=amount) if amount else ""


TEMPLATES: dict[TemplateName, NotificationTemplate] = {
    t.name: t
    for t in [
        # Customer
        NotificationTemplate(
            TemplateName.ORDER_CREATED,
            "Order Being Processed",
            lambda d: (
                f"Your order #{d['order_id']} is being processed. "
                f"Total amount: ₹{d['total_price']}. "
                "Please complete the payment to confirm your order."
            ),
        ),
        NotificationTemplate(
            TemplateName.PAYMENT_COMPLETED,
            "Payment Successful",
            lambda d: (
                f"Payment of ₹{d['amount']} received for order #{d['order_id']}. "
                "Your order is now awaiting confirmation from the restaurant."
            ),
        ),
        NotificationTemplate(
            TemplateName.PAYMENT_FAILED,
            "Payment Failed",
            lambda d: (
                f"Payment for order #{d['order_id']} failed. "
                + (
                    d.get("error_description")
                    or "Please try again or use a different payment method."
                )
            ),
        ),
        NotificationTemplate(
            TemplateName.ORDER_CONFIRMED,
            "Order Confirmed",
            lambda d: (
                f"Your order #{d['order_id']} has been confirmed by the restaurant. "
                "We'll notify you when it's being prepared."
            ),
        ),
        NotificationTemplate(
            TemplateName.ORDER_PREPARING,
            "Order is Being Prepared",
            lambda d: (
                f"Great news! Your order #{d['order_id']} is now being prepared. "
                "It will be ready soon."
            ),
        ),
        NotificationTemplate(
            TemplateName.ORDER_READY,
            "Order Ready",
            lambda d: (
                f"Your order #{d['order_id']} is ready! "
                "It will be delivered to your address shortly."
            ),
        ),
        NotificationTemplate(
            TemplateName.ORDER_DELIVERED,
            "Order Delivered",
            lambda d: (
                f"Your order #{d['order_id']} has been completed. "
                "Thank you for your order! We hope you enjoyed your meal."
            ),
        ),
        NotificationTemplate(
            TemplateName.ORDER_CANCELLED,
            "Order Cancelled",
            lambda d: (
                f"Your order #{d['order_id']} has been cancelled. "
                + _refund_note(d, "A refund of ₹{amount} will be processed shortly.")
            ).strip(),
        ),
        NotificationTemplate(
            TemplateName.REFUND_PROCESSED,
            "Refund Processed",
            lambda d: (
                f"A refund of ₹{d['refund_amount']} for order #{d['order_id']} "
                "has been processed. It will be credited to your account "
                "within 5-7 business days."
            ),
        ),
        # Admin
        NotificationTemplate(
            TemplateName.NEW_ORDER,
            "New Order Received",
            lambda d: (
                f"New order #{d['order_id']} received from {d.get('customer_phone') or 'a customer'}. "
                f"Total amount: ₹{d['total_price']}. Payment completed."
            ),
            Audience.ADMIN,
        ),
        NotificationTemplate(
            TemplateName.PAYMENT_RECEIVED,
            "Payment Received",
            lambda d: (
                f"Payment of ₹{d['amount']} received for order #{d['order_id']} "
                f"from {d.get('customer_phone') or 'a customer'}."
            ),
            Audience.ADMIN,
        ),
        NotificationTemplate(
            TemplateName.ORDER_CANCELLED_ADMIN,
            "Order Cancelled",
            lambda d: (
                f"Order #{d['order_id']} from {d.get('customer_phone') or 'a customer'} "
                "has been cancelled. "
                + _refund_note(d, "Refund of ₹{amount} processed.")
            ).strip(),
            Audience.ADMIN,
        ),
        NotificationTemplate(
            TemplateName.REFUND_REQUESTED,
            "Refund Processed",
            lambda d: (
                f"Refund of ₹{d['refund_amount']} processed for order #{d['order_id']} "
                f"({d.get('customer_phone') or 'customer'})."
            ),
            Audience.ADMIN,
        ),
    ]
}


def get_template(name: str) -> NotificationTemplate:
    """
    Look up a template by name.

    Raises:
        ValueError: If no template has this name.
    """
    return TEMPLATES[TemplateName(name)]
