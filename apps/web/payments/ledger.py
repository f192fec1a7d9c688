"""
Transaction ledger.

Rows are created when a payment is initiated and when a refund succeeds.
Reconciliation moves the current row's status with a compare-and-set on the
status it read, so two channels racing on one gateway order can never both
apply the same transition.
"""

import logging
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from django.db.models import QuerySet
from django.utils import timezone

from thali_schemas import GatewayOrder, GatewayRefund, PaymentEvent, PaymentInstrument

from apps.web.payments.models import Transaction, TransactionStatus

if TYPE_CHECKING:
    from apps.web.restaurant.models import Order

logger = logging.getLogger(__name__)

SUCCESSFUL_STATUSES = (TransactionStatus.CAPTURED, TransactionStatus.AUTHORIZED)


def mask_vpa(vpa: str) -> str:
    """``john.doe@okicici`` -> ``jo******@okicici``."""
    if not vpa or "@" not in vpa:
        return vpa
    handle, _, bank = vpa.partition("@")
    visible = handle[:2]
    return f"{visible}{'*' * max(len(handle) - len(visible), 1)}@{bank}"


def instrument_fields(instrument: PaymentInstrument) -> dict[str, str]:
    """Ledger columns for a payment instrument, masked."""
    return {
        "payment_method": instrument.method[:30],
        "card_network": instrument.card_network[:30],
        "card_last4": instrument.card_last4[-4:],
        "bank": instrument.bank[:50],
        "wallet": instrument.wallet[:50],
        "vpa": mask_vpa(instrument.vpa)[:100],
    }


def _event_entry(event: PaymentEvent) -> dict[str, Any]:
    return {
        "channel": event.channel.value,
        "event_type": event.event_type,
        "status": event.status.value,
        "received_at": event.received_at.isoformat(),
        "payload": event.payload,
    }


# =============================================================================
# Reads
# =============================================================================


def current_row(gateway_order_id: str) -> Transaction | None:
    """Latest non-refund row for a gateway order, read fresh from the database."""
    return (
        Transaction.objects.select_related("order", "order__user")
        .filter(gateway_order_id=gateway_order_id, gateway_refund_id="")
        .order_by("-created_at", "-pk")
        .first()
    )


def latest_for_order(order: "Order") -> Transaction | None:
    return (
        Transaction.objects.filter(order=order, gateway_refund_id="")
        .order_by("-created_at", "-pk")
        .first()
    )


def refundable_row(order: "Order") -> Transaction | None:
    """Latest captured or authorized payment row for an order."""
    return (
        Transaction.objects.filter(
            order=order,
            status__in=SUCCESSFUL_STATUSES,
            gateway_refund_id="",
        )
        .exclude(gateway_payment_id__isnull=True)
        .exclude(gateway_payment_id="")
        .order_by("-created_at", "-pk")
        .first()
    )


def history(order: "Order") -> QuerySet[Transaction]:
    return Transaction.objects.filter(order=order).order_by("created_at", "pk")


# =============================================================================
# Writes
# =============================================================================


def open_transaction(order: "Order", gateway_order: GatewayOrder) -> Transaction:
    """Record a freshly created gateway order."""
    row = Transaction.objects.create(
        order=order,
        gateway=gateway_order.provider.value,
        gateway_order_id=gateway_order.id,
        amount=gateway_order.amount,
        currency=gateway_order.currency,
        status=TransactionStatus.CREATED,
        metadata={
            "receipt": gateway_order.receipt,
            "gateway_order": gateway_order.raw,
            "events": [],
        },
    )
    logger.info(
        "Ledger row opened: transaction_id=%s order_id=%s gateway=%s gateway_order_id=%s",
        row.pk,
        order.pk,
        row.gateway,
        row.gateway_order_id,
    )
    return row


def append_event(row: Transaction, event: PaymentEvent) -> None:
    """Add a raw payload to the row's event history without touching status."""
    metadata = dict(row.metadata or {})
    metadata["events"] = [*metadata.get("events", []), _event_entry(event)]
    Transaction.objects.filter(pk=row.pk).update(metadata=metadata, updated_at=timezone.now())
    row.metadata = metadata


def transition(row: Transaction, event: PaymentEvent) -> bool:
    """
    Move ``row`` from the status it was read with to ``event.status``.

    Returns:
        True if this call applied the change; False if the stored status
        no longer matched (another channel got there first).
    """
    metadata = dict(row.metadata or {})
    metadata["events"] = [*metadata.get("events", []), _event_entry(event)]

    fields: dict[str, Any] = {
        "status": event.status.value,
        "metadata": metadata,
        "updated_at": timezone.now(),
    }
    if event.gateway_payment_id:
        fields["gateway_payment_id"] = event.gateway_payment_id
    if event.signature:
        fields["gateway_signature"] = event.signature[:255]
    if event.instrument.method:
        fields.update(instrument_fields(event.instrument))
    if event.status == TransactionStatus.FAILED:
        fields["error_code"] = event.error_code[:100]
        fields["error_description"] = event.error_description

    updated = Transaction.objects.filter(pk=row.pk, status=row.status).update(**fields)
    if updated:
        previous = row.status
        for name, value in fields.items():
            setattr(row, name, value)
        logger.info(
            "Ledger transition: transaction_id=%s %s -> %s via %s",
            row.pk,
            previous,
            row.status,
            event.channel.value,
        )
    return bool(updated)


def record_refund(
    source: Transaction,
    refund: GatewayRefund,
    amount: Decimal,
    reason: str,
) -> Transaction:
    """Append a refund row. The captured row it reverses is left as it was."""
    row = Transaction.objects.create(
        order=source.order,
        gateway=source.gateway,
        gateway_order_id=source.gateway_order_id,
        gateway_payment_id=source.gateway_payment_id,
        gateway_refund_id=refund.id,
        amount=amount,
        currency=source.currency,
        status=TransactionStatus.REFUNDED,
        payment_method=source.payment_method,
        refund_amount=amount,
        refund_reason=reason,
        metadata={
            "refunded_transaction_id": source.pk,
            "gateway_refund_status": refund.status,
            "events": [{"channel": "refund", "payload": refund.raw}],
        },
    )
    logger.info(
        "Ledger refund row: transaction_id=%s source_id=%s refund_id=%s amount=%s",
        row.pk,
        source.pk,
        refund.id,
        amount,
    )
    return row


# =============================================================================
# Serialization
# =============================================================================


def serialize(row: Transaction) -> dict[str, Any]:
    """Client-safe view of a row: no signature, no raw gateway payloads."""
    return {
        "id": row.pk,
        "order_id": row.order_id,
        "gateway": row.gateway,
        "gateway_order_id": row.gateway_order_id,
        "gateway_payment_id": row.gateway_payment_id,
        "gateway_refund_id": row.gateway_refund_id or None,
        "amount": str(row.amount),
        "currency": row.currency,
        "status": row.status,
        "payment_method": row.payment_method,
        "card_network": row.card_network,
        "card_last4": row.card_last4,
        "bank": row.bank,
        "wallet": row.wallet,
        "vpa": row.vpa,
        "error_code": row.error_code,
        "error_description": row.error_description,
        "refund_amount": str(row.refund_amount) if row.refund_amount is not None else None,
        "refund_reason": row.refund_reason,
        "event_count": len((row.metadata or {}).get("events", [])),
        "created_at": row.created_at.isoformat(),
        "updated_at": row.updated_at.isoformat(),
    }
