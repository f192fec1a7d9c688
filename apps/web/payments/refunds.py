"""
Refunds against captured payments.
"""

import logging
from decimal import Decimal
from typing import TYPE_CHECKING

from django.db import transaction
from django.utils import timezone

from apps.web.core.exceptions import NotFoundError, RefundNotAllowed, ValidationError
from apps.web.notifications.services import notify_many
from apps.web.notifications.templates import TemplateName
from apps.web.payments import ledger
from apps.web.payments.gateways import get_gateway
from apps.web.payments.models import Transaction
from apps.web.payments.services import GatewayResolver
from apps.web.restaurant.models import Order, OrderStatus, PaymentStatus
from apps.web.restaurant.pricing import round2
from apps.web.restaurant.services import order_notification_data

if TYPE_CHECKING:
    from apps.web.core.models import User

logger = logging.getLogger(__name__)


def process_refund(
    order_id: int,
    amount: Decimal | None = None,
    reason: str = "",
    actor: "User | None" = None,
    gateways: GatewayResolver | None = None,
) -> Transaction:
    """
    Refund a paid order, fully or partially.

    The gateway is called before anything is written. If it refuses, the
    ledger and order are untouched.

    Args:
        order_id: Order to refund.
        amount: Amount to refund. Defaults to the captured amount.
        reason: Stored on the refund row.
        actor: Admin requesting the refund, for the log.
        gateways: Resolver from gateway name to implementation.

    Returns:
        The new refund ledger row.

    Raises:
        NotFoundError: Unknown order.
        RefundNotAllowed: Order is being prepared, unpaid, or has no captured payment.
        ValidationError: Amount not positive or above the captured amount.
        ManualRefundRequired: Gateway has no refund API.
        GatewayError / GatewayUnavailable: Gateway refused or did not answer.
    """
    try:
        order = Order.objects.select_related("user").get(pk=order_id)
    except Order.DoesNotExist as e:
        raise NotFoundError(f"Order {order_id} not found", order_id=order_id) from e

    if order.status == OrderStatus.PREPARING:
        raise RefundNotAllowed(
            "Cannot refund an order that is being prepared", status=order.status
        )
    if order.payment_status != PaymentStatus.COMPLETED:
        raise RefundNotAllowed(
            "Order has no completed payment to refund",
            payment_status=order.payment_status,
        )

    source = ledger.refundable_row(order)
    if source is None:
        raise RefundNotAllowed("No captured payment found for this order")

    refund_amount = round2(amount) if amount is not None else source.amount
    if refund_amount <= 0 or refund_amount > source.amount:
        raise ValidationError(
            f"Refund amount must be between 0 and {source.amount}",
            amount=refund_amount,
            captured=source.amount,
        )

    gateway = (gateways or get_gateway)(source.gateway)
    refund = gateway.create_refund(
        source.gateway_payment_id or "",
        refund_amount,
        {"order_id": str(order.pk), "reason": reason},
    )

    with transaction.atomic():
        row = ledger.record_refund(source, refund, refund_amount, reason)
        Order.objects.filter(pk=order.pk, payment_status=PaymentStatus.COMPLETED).update(
            payment_status=PaymentStatus.REFUNDED, updated_at=timezone.now()
        )

    logger.info(
        "Refund processed: order_id=%s transaction_id=%s amount=%s by user_id=%s",
        order.pk,
        row.pk,
        refund_amount,
        actor.pk if actor else None,
    )

    data = order_notification_data(order, refund_amount=refund_amount)
    notify_many(
        (TemplateName.REFUND_PROCESSED, data),
        (TemplateName.REFUND_REQUESTED, data),
    )
    return row
