"""
Payment reconciliation - the single entry point for payment outcomes.

Verify calls, webhooks and status polls all end up in reconcile(). It reads
the ledger row fresh, decides whether the event moves it forward, and writes
with compare-and-set guards on both the ledger row and the order:

- row:   UPDATE ... WHERE status = <status we read>
- order: UPDATE ... WHERE payment_status != 'completed'

Only the call whose order update lands emits the payment-completed
notifications, so a payment reported by two channels notifies once.
"""

import logging
from dataclasses import dataclass

from django.db import transaction
from django.utils import timezone

from thali_schemas import GatewayPaymentStatus, PaymentEvent

from apps.web.core.exceptions import NotFoundError, ValidationError
from apps.web.notifications.services import notify_many
from apps.web.notifications.templates import TemplateName
from apps.web.payments import ledger
from apps.web.payments.models import Transaction, TransactionStatus
from apps.web.restaurant.models import Order, OrderStatus, PaymentStatus
from apps.web.restaurant.services import order_notification_data
from apps.web.restaurant.state_machine import status_after_payment

logger = logging.getLogger(__name__)

# Ledger statuses each event may move a row out of. Anything else is a no-op.
APPLICABLE_FROM: dict[GatewayPaymentStatus, frozenset[str]] = {
    GatewayPaymentStatus.AUTHORIZED: frozenset({TransactionStatus.CREATED}),
    GatewayPaymentStatus.CAPTURED: frozenset(
        {TransactionStatus.CREATED, TransactionStatus.AUTHORIZED, TransactionStatus.FAILED}
    ),
    GatewayPaymentStatus.FAILED: frozenset(
        {TransactionStatus.CREATED, TransactionStatus.AUTHORIZED}
    ),
}


@dataclass(frozen=True)
class ReconciliationResult:
    transaction: Transaction
    order: Order | None
    applied: bool
    order_paid: bool = False

    @property
    def payment_status(self) -> str | None:
        return self.order.payment_status if self.order else None

    @property
    def order_status(self) -> str | None:
        return self.order.status if self.order else None


def is_applicable(current: str, event_status: GatewayPaymentStatus) -> bool:
    return current in APPLICABLE_FROM.get(event_status, frozenset())


def reconcile(event: PaymentEvent) -> ReconciliationResult:
    """
    Apply a payment outcome to the ledger and its order, exactly once.

    Repeated or out-of-order events for an already-settled row are recorded in
    the row's event history and otherwise ignored; they never raise.

    Raises:
        NotFoundError: No ledger row for ``event.gateway_order_id``.
        ValidationError: The event names a different gateway than the row.
    """
    notifications: list[tuple[str, dict[str, object]]] = []

    with transaction.atomic():
        row = ledger.current_row(event.gateway_order_id)
        if row is None:
            raise NotFoundError(
                f"No transaction for gateway order {event.gateway_order_id}",
                gateway_order_id=event.gateway_order_id,
            )
        if row.gateway != event.provider.value:
            raise ValidationError(
                "Event gateway does not match the transaction",
                gateway=event.provider.value,
                expected=row.gateway,
            )

        if not is_applicable(row.status, event.status) or not ledger.transition(row, event):
            # Already settled, or another channel settled it between our read and write
            row.refresh_from_db()
            ledger.append_event(row, event)
            logger.info(
                "Reconciliation no-op: transaction_id=%s status=%s event=%s channel=%s",
                row.pk,
                row.status,
                event.status.value,
                event.channel.value,
            )
            return ReconciliationResult(transaction=row, order=_fresh(row.order), applied=False)

        order = row.order
        order_paid = False
        if order is not None:
            if event.status == GatewayPaymentStatus.CAPTURED:
                order_paid = _mark_order_paid(order, row)
                if order_paid:
                    data = order_notification_data(order, amount=row.amount)
                    notifications += [
                        (TemplateName.PAYMENT_COMPLETED, data),
                        (TemplateName.NEW_ORDER, data),
                        (TemplateName.PAYMENT_RECEIVED, data),
                    ]
            elif event.status == GatewayPaymentStatus.FAILED:
                if _mark_order_failed(order):
                    notifications.append(
                        (
                            TemplateName.PAYMENT_FAILED,
                            order_notification_data(
                                order, error_description=event.error_description
                            ),
                        )
                    )
        else:
            logger.warning(
                "Ledger row has no order: transaction_id=%s gateway_order_id=%s",
                row.pk,
                row.gateway_order_id,
            )

    # Outside the transaction; notification failures never roll back payment state
    notify_many(*notifications)

    return ReconciliationResult(
        transaction=row, order=_fresh(order), applied=True, order_paid=order_paid
    )


def _fresh(order: Order | None) -> Order | None:
    if order is not None:
        order.refresh_from_db()
    return order


def _mark_order_paid(order: Order, row: Transaction) -> bool:
    """
    Flip the order to paid. Returns True only for the call that flipped it.
    """
    now = timezone.now()
    flipped = (
        Order.objects.filter(pk=order.pk)
        .exclude(payment_status=PaymentStatus.COMPLETED)
        .update(
            payment_status=PaymentStatus.COMPLETED,
            payment_method=row.payment_method,
            paid_at=now,
            updated_at=now,
        )
    )
    if not flipped:
        return False

    target = status_after_payment(OrderStatus.PENDING_PAYMENT)
    moved = Order.objects.filter(pk=order.pk, status=OrderStatus.PENDING_PAYMENT).update(
        status=target, updated_at=now
    )
    order.refresh_from_db()
    if not moved:
        logger.warning(
            "Payment captured for order not awaiting payment: order_id=%s status=%s",
            order.pk,
            order.status,
        )
    logger.info(
        "Order paid: order_id=%s transaction_id=%s amount=%s",
        order.pk,
        row.pk,
        row.amount,
    )
    return True


def _mark_order_failed(order: Order) -> bool:
    # A later failed attempt never downgrades a settled payment
    changed = Order.objects.filter(pk=order.pk).exclude(
        payment_status__in=[PaymentStatus.COMPLETED, PaymentStatus.REFUNDED]
    ).update(payment_status=PaymentStatus.FAILED, updated_at=timezone.now())
    order.refresh_from_db()
    if not changed:
        logger.info("Failed attempt ignored for settled order: order_id=%s", order.pk)
        return False
    logger.info("Payment failed: order_id=%s", order.pk)
    return True
