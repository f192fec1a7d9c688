"""
Order services - creation, status updates, and cancellation.

create_order() prices the cart, validates the offer, and writes the order
with all its lines in one transaction. Status changes go through the
transition table in restaurant.state_machine.
"""

import logging
from collections.abc import Iterable
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from django.db import transaction
from django.utils import timezone

from apps.web.core.exceptions import (
    NotFoundError,
    OfferInvalidError,
    PermissionDeniedError,
    TransitionError,
)
from apps.web.core.models import Address
from apps.web.notifications.services import create_notification, notify_many
from apps.web.notifications.templates import TemplateName
from apps.web.restaurant.catalog import DatabaseCatalog
from apps.web.restaurant.models import (
    Order,
    OrderItem,
    OrderItemAddOn,
    OrderStatus,
    PaymentStatus,
)
from apps.web.restaurant.offers import validate_offer_code
from apps.web.restaurant.pricing import (
    ZERO,
    CartLine,
    Catalog,
    compute_total,
    price_cart,
)
from apps.web.restaurant.state_machine import ensure_transition

if TYPE_CHECKING:
    from apps.web.core.models import User

logger = logging.getLogger(__name__)

# Statuses a customer may still cancel from; admins follow the full table
CUSTOMER_CANCELLABLE = frozenset({OrderStatus.PENDING_PAYMENT, OrderStatus.PENDING})

STATUS_NOTIFICATIONS: dict[str, TemplateName] = {
    OrderStatus.CONFIRMED: TemplateName.ORDER_CONFIRMED,
    OrderStatus.PREPARING: TemplateName.ORDER_PREPARING,
    OrderStatus.READY: TemplateName.ORDER_READY,
    OrderStatus.COMPLETED: TemplateName.ORDER_DELIVERED,
}


def order_notification_data(order: Order, **extra: Any) -> dict[str, Any]:
    """Common template data for an order."""
    return {
        "order_id": order.pk,
        "user_id": order.user_id,
        "total_price": order.total_price,
        "customer_phone": getattr(order.user, "phone", ""),
        **extra,
    }


def create_order(
    user: "User",
    *,
    address_id: int,
    lines: Iterable[CartLine],
    offer_code: str | None = None,
    special_instructions: str = "",
    delivery_charge: Decimal = ZERO,
    now: datetime | None = None,
    catalog: Catalog | None = None,
) -> Order:
    """
    Create an order in ``pending_payment``.

    Pricing and offer validation run inside the same transaction as the
    writes, so an offer is checked against the same usage counts it is
    committed with. Any failure leaves nothing behind.

    Args:
        user: Customer placing the order.
        address_id: Delivery address; must belong to ``user``.
        lines: Cart lines.
        offer_code: Optional promo code.
        special_instructions: Free text for the kitchen.
        delivery_charge: Delivery charge before any free-delivery offer.
        now: Evaluation time for offer validity windows.
        catalog: Catalog lookup. Defaults to the database catalog.

    Returns:
        The created Order.

    Raises:
        NotFoundError: Unknown address, item size, or add-on.
        ValidationError: Empty cart or bad quantities.
        OfferInvalidError: Offer rejected; carries the customer-facing reason.
    """
    catalog = catalog or DatabaseCatalog()
    now = now or timezone.now()

    with transaction.atomic():
        try:
            address = Address.objects.owned_by(user).get(pk=address_id)
        except Address.DoesNotExist as e:
            raise NotFoundError(
                f"Address {address_id} not found", address_id=address_id
            ) from e

        breakdown = price_cart(lines, catalog)

        discount = ZERO
        offer_id = None
        if offer_code:
            verdict = validate_offer_code(
                offer_code,
                user,
                subtotal=breakdown.subtotal,
                category_ids=breakdown.category_ids,
                item_ids=breakdown.item_ids,
                now=now,
            )
            if not verdict.valid:
                raise OfferInvalidError(verdict.message, code=offer_code)
            discount = verdict.discount_amount
            offer_id = verdict.offer_id
            if verdict.free_delivery:
                delivery_charge = ZERO

        order = Order.objects.create(
            user=user,
            address_snapshot=address.snapshot(),
            offer_id=offer_id,
            status=OrderStatus.PENDING_PAYMENT,
            payment_status=PaymentStatus.PENDING,
            subtotal=breakdown.subtotal,
            gst_amount=breakdown.gst_amount,
            discount_amount=discount,
            delivery_charge=delivery_charge,
            total_price=compute_total(
                breakdown.subtotal, breakdown.gst_amount, delivery_charge, discount
            ),
            special_instructions=special_instructions,
        )

        for line in breakdown.lines:
            order_item = OrderItem.objects.create(
                order=order,
                item_id=line.entry.item_id,
                item_size_id=line.entry.item_size_id,
                category_name=line.entry.category_name,
                item_name=line.entry.item_name,
                size_label=line.entry.size_label,
                base_price=line.entry.base_price,
                quantity=line.quantity,
                line_total=line.line_total,
            )
            OrderItemAddOn.objects.bulk_create(
                [
                    OrderItemAddOn(
                        order_item=order_item,
                        add_on_id=a.add_on.add_on_id,
                        name=a.add_on.name,
                        price=a.add_on.price,
                        quantity=a.quantity,
                    )
                    for a in line.add_ons
                ]
            )

        transaction.on_commit(
            lambda: create_notification(
                TemplateName.ORDER_CREATED, order_notification_data(order)
            )
        )

    logger.info(
        "Order created: order_id=%s user_id=%s total=%s offer_id=%s",
        order.pk,
        user.pk,
        order.total_price,
        offer_id,
    )
    return order


def get_order(order_id: int, user: "User") -> Order:
    """
    Fetch an order the user may see.

    Raises:
        NotFoundError: If the order does not exist or belongs to someone else.
    """
    try:
        return Order.objects.visible_to(user).select_related("user").get(pk=order_id)
    except Order.DoesNotExist as e:
        raise NotFoundError(f"Order {order_id} not found", order_id=order_id) from e


def _apply_status(order: Order, target: str, **fields: Any) -> Order:
    """
    Move ``order`` to ``target`` if the table allows it.

    The write only lands if the stored status still matches what was checked;
    otherwise the fresh status is re-checked and reported.
    """
    ensure_transition(order.status, target)
    updated = Order.objects.filter(pk=order.pk, status=order.status).update(
        status=target, updated_at=timezone.now(), **fields
    )
    if not updated:
        order.refresh_from_db()
        raise TransitionError(order.status, target)
    order.refresh_from_db()
    return order


def update_order_status(order_id: int, new_status: str, actor: "User") -> Order:
    """
    Apply a staff-driven status change and notify the customer.

    Raises:
        NotFoundError: Unknown order.
        TransitionError: Change not allowed from the current status.
    """
    order = get_order(order_id, actor)
    if new_status == OrderStatus.CANCELLED:
        return cancel_order(order_id, actor)

    extra: dict[str, Any] = {}
    if new_status == OrderStatus.COMPLETED:
        extra["delivered_at"] = timezone.now()

    previous = order.status
    order = _apply_status(order, new_status, **extra)
    logger.info(
        "Order status updated: order_id=%s %s -> %s by user_id=%s",
        order.pk,
        previous,
        new_status,
        actor.pk,
    )

    template = STATUS_NOTIFICATIONS.get(new_status)
    if template:
        create_notification(template, order_notification_data(order))
    return order


def cancel_order(order_id: int, user: "User", reason: str = "") -> Order:
    """
    Cancel an order.

    Customers may cancel only before the restaurant confirms; admins may
    cancel from any non-terminal status.

    Raises:
        NotFoundError: Unknown order.
        PermissionDeniedError: Customer cancelling after confirmation.
        TransitionError: Order already completed or cancelled.
    """
    order = get_order(order_id, user)
    if not user.is_admin and order.status not in CUSTOMER_CANCELLABLE:
        raise PermissionDeniedError(
            "Order can no longer be cancelled; please contact the restaurant",
            status=order.status,
        )

    order = _apply_status(
        order,
        OrderStatus.CANCELLED,
        cancelled_at=timezone.now(),
        cancellation_reason=reason,
    )
    logger.info(
        "Order cancelled: order_id=%s by user_id=%s reason=%s", order.pk, user.pk, reason
    )

    data = order_notification_data(order, reason=reason)
    notify_many(
        (TemplateName.ORDER_CANCELLED, data),
        (TemplateName.ORDER_CANCELLED_ADMIN, data),
    )
    return order
