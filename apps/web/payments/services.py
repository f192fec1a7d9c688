"""
Payment services - initiate, verify, and poll payments for orders.

Gateway calls never run inside a database transaction. Every outcome is
applied through reconciliation.reconcile(), which is shared with webhooks.
"""

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from thali_schemas import (
    EventChannel,
    GatewayPaymentStatus,
    GatewayProvider,
    PaymentEvent,
)

from apps.web.core.exceptions import (
    GatewayError,
    PaymentNotAllowed,
    SignatureVerificationFailed,
    ValidationError,
)
from apps.web.payments import ledger
from apps.web.payments.gateways import PaymentGateway, get_gateway, get_gateway_for_settings
from apps.web.payments.models import TransactionStatus
from apps.web.payments.reconciliation import reconcile
from apps.web.restaurant.models import Order, OrderStatus, PaymentStatus
from apps.web.restaurant.services import get_order

if TYPE_CHECKING:
    from apps.web.core.models import User

logger = logging.getLogger(__name__)

GatewayResolver = Callable[[str], PaymentGateway]

PAYABLE_STATUSES = frozenset(
    {PaymentStatus.PENDING, PaymentStatus.PROCESSING, PaymentStatus.FAILED}
)
SETTLED_LEDGER_STATUSES = frozenset(
    {TransactionStatus.CAPTURED, TransactionStatus.FAILED, TransactionStatus.REFUNDED}
)


def _resolve(gateways: GatewayResolver | None, provider: str) -> PaymentGateway:
    return (gateways or get_gateway)(provider)


def initiate_payment(
    order_id: int,
    user: "User",
    gateway: PaymentGateway | None = None,
) -> dict[str, Any]:
    """
    Start a payment attempt for an order awaiting payment.

    Each call opens a new gateway order and ledger row, so a customer can
    retry after a failed attempt.

    Args:
        order_id: Order to pay for.
        user: Caller; must own the order (admins may act on any order).
        gateway: Gateway to use. Defaults to the configured gateway.

    Returns:
        Checkout data for the client.

    Raises:
        NotFoundError: Unknown order.
        PaymentNotAllowed: Order is not awaiting payment.
        GatewayError / GatewayUnavailable: Gateway rejected or did not answer.
    """
    order = get_order(order_id, user)
    if order.status != OrderStatus.PENDING_PAYMENT or order.payment_status not in PAYABLE_STATUSES:
        raise PaymentNotAllowed(
            f"Order {order.pk} is not awaiting payment",
            status=order.status,
            payment_status=order.payment_status,
        )

    gateway = gateway or get_gateway_for_settings()
    receipt = f"order_{order.pk}_{int(timezone.now().timestamp())}"
    notes = {
        "order_id": str(order.pk),
        "source": "restaurant_order",
        "customer_name": order.user.get_full_name() or order.user.get_username(),
        "customer_email": order.user.email,
        "customer_mobile": order.user.phone,
    }
    gateway_order = gateway.create_order(
        order.total_price, settings.PAYMENT_CURRENCY, receipt, notes
    )

    with transaction.atomic():
        row = ledger.open_transaction(order, gateway_order)
        Order.objects.filter(pk=order.pk, payment_status__in=PAYABLE_STATUSES).update(
            payment_status=PaymentStatus.PROCESSING,
            payment_method=gateway.provider.value,
            updated_at=timezone.now(),
        )

    logger.info(
        "Payment initiated: order_id=%s transaction_id=%s gateway=%s amount=%s",
        order.pk,
        row.pk,
        gateway.provider.value,
        row.amount,
    )
    return {
        "order_id": order.pk,
        "transaction_id": row.pk,
        "gateway_order_id": gateway_order.id,
        "amount": str(gateway_order.amount),
        "currency": gateway_order.currency,
        "gateway_key_id": gateway.key_id,
        "gateway": gateway.provider.value,
        "checkout": gateway_order.checkout,
    }


def verify_payment(
    gateway_order_id: str,
    gateway_payment_id: str,
    signature: str,
    user: "User",
    gateways: GatewayResolver | None = None,
) -> dict[str, Any]:
    """
    Verify a client-reported payment and reconcile it.

    Raises:
        ValidationError: Unknown gateway order, or one for an order the user may not see.
        SignatureVerificationFailed: Signature mismatch; the row is marked failed.
        GatewayUnavailable: Payment lookup timed out; the webhook settles it later.
    """
    row = ledger.current_row(gateway_order_id)
    if row is None or not Order.objects.visible_to(user).filter(pk=row.order_id).exists():
        raise ValidationError(
            "Unknown gateway order", gateway_order_id=gateway_order_id
        )

    gateway = _resolve(gateways, row.gateway)
    provider = GatewayProvider(row.gateway)

    if not gateway.verify_signature(gateway_order_id, gateway_payment_id, signature):
        logger.warning(
            "Payment signature mismatch: transaction_id=%s gateway_order_id=%s",
            row.pk,
            gateway_order_id,
        )
        reconcile(
            PaymentEvent(
                channel=EventChannel.VERIFY,
                provider=provider,
                gateway_order_id=gateway_order_id,
                gateway_payment_id=gateway_payment_id,
                status=GatewayPaymentStatus.FAILED,
                signature=signature,
                error_code="SIGNATURE_VERIFICATION_FAILED",
                error_description="Payment signature verification failed",
            )
        )
        raise SignatureVerificationFailed(
            "Payment signature verification failed",
            gateway_order_id=gateway_order_id,
        )

    if row.status == TransactionStatus.CAPTURED:
        order = row.order
        return _verify_result(row.pk, order)

    payment = gateway.fetch_payment(gateway_payment_id)
    if payment.id is None:
        payment = payment.model_copy(update={"id": gateway_payment_id})
    result = reconcile(
        PaymentEvent.from_payment(
            payment,
            channel=EventChannel.VERIFY,
            gateway_order_id=gateway_order_id,
            signature=signature,
        )
    )
    return _verify_result(result.transaction.pk, result.order)


def _verify_result(transaction_id: int, order: Order | None) -> dict[str, Any]:
    return {
        "order_id": order.pk if order else None,
        "transaction_id": transaction_id,
        "payment_status": order.payment_status if order else None,
        "order_status": order.status if order else None,
    }


def get_payment_status(
    order_id: int,
    user: "User",
    refresh: bool = False,
    gateways: GatewayResolver | None = None,
) -> dict[str, Any]:
    """
    Order payment summary with its ledger history.

    With ``refresh``, an unsettled latest row is polled at its gateway and
    the answer reconciled. Gateway errors during the poll keep the stored
    status.
    """
    order = get_order(order_id, user)
    latest = ledger.latest_for_order(order)

    if refresh and latest is not None and latest.status not in SETTLED_LEDGER_STATUSES:
        gateway = _resolve(gateways, latest.gateway)
        try:
            payment = gateway.fetch_payment(latest.gateway_payment_id or latest.gateway_order_id)
        except GatewayError as e:
            logger.warning(
                "Payment status poll failed: transaction_id=%s error=%s", latest.pk, e
            )
        else:
            if payment.status != GatewayPaymentStatus.CREATED:
                reconcile(
                    PaymentEvent.from_payment(
                        payment,
                        channel=EventChannel.POLL,
                        gateway_order_id=latest.gateway_order_id,
                    )
                )
                order.refresh_from_db()

    return {
        "order_id": order.pk,
        "status": order.status,
        "payment_status": order.payment_status,
        "payment_method": order.payment_method,
        "total_price": str(order.total_price),
        "paid_at": order.paid_at.isoformat() if order.paid_at else None,
        "transactions": [ledger.serialize(row) for row in ledger.history(order)],
    }
