"""
Offer validation.

evaluate_offer() is pure: the verdict depends only on its arguments, including
the ``now`` it is given. validate_offer_code() is the database-facing wrapper
that loads the offer and the customer's usage history first.
"""

from collections.abc import Collection
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from django.db.models import Q, QuerySet
from django.utils import timezone

from apps.web.restaurant.models import DiscountType, Offer, Order, OrderStatus
from apps.web.restaurant.pricing import ZERO, round2

if TYPE_CHECKING:
    from apps.web.core.models import User


@dataclass(frozen=True)
class OfferRules:
    """The parts of an Offer that decide eligibility and discount."""

    code: str
    discount_type: str
    discount_value: Decimal | None = None
    max_discount_amount: Decimal | None = None
    min_order_value: Decimal | None = None
    category_id: int | None = None
    category_name: str = ""
    item_id: int | None = None
    item_name: str = ""
    first_order_only: bool = False
    max_uses_per_user: int | None = None
    valid_from: datetime | None = None
    valid_to: datetime | None = None
    is_active: bool = True
    offer_id: int | None = None

    @classmethod
    def from_model(cls, offer: Offer) -> "OfferRules":
        return cls(
            code=offer.code,
            discount_type=offer.discount_type,
            discount_value=offer.discount_value,
            max_discount_amount=offer.max_discount_amount,
            min_order_value=offer.min_order_value,
            category_id=offer.category_id,
            category_name=offer.category.name if offer.category else "",
            item_id=offer.item_id,
            item_name=offer.item.name if offer.item else "",
            first_order_only=offer.first_order_only,
            max_uses_per_user=offer.max_uses_per_user,
            valid_from=offer.valid_from,
            valid_to=offer.valid_to,
            is_active=offer.is_active,
            offer_id=offer.pk,
        )


@dataclass(frozen=True)
class UsageHistory:
    """Customer's non-cancelled order counts."""

    order_count: int = 0
    offer_uses: int = 0


@dataclass(frozen=True)
class OfferVerdict:
    valid: bool
    message: str
    discount_amount: Decimal = ZERO
    free_delivery: bool = False
    offer_id: int | None = None


def _reject(message: str) -> OfferVerdict:
    return OfferVerdict(valid=False, message=message)


def evaluate_offer(  # noqa: PLR0911
    offer: OfferRules | None,
    *,
    subtotal: Decimal,
    category_ids: Collection[int],
    item_ids: Collection[int],
    now: datetime,
    history: UsageHistory,
) -> OfferVerdict:
    """
    Decide whether an offer applies and how much it is worth.

    Checks run in a fixed order and stop at the first failure.

    Args:
        offer: Offer rules, or None when the code does not exist.
        subtotal: Cart subtotal before tax and delivery.
        category_ids: Categories present in the cart.
        item_ids: Items present in the cart.
        now: Evaluation time.
        history: Customer's non-cancelled order and offer-use counts.

    Returns:
        OfferVerdict. Rejections carry a customer-facing message.
    """
    if offer is None:
        return _reject("Invalid offer code")
    if not offer.is_active:
        return _reject("This offer is no longer active")
    if offer.valid_from and now < offer.valid_from:
        return _reject("This offer is not yet valid")
    if offer.valid_to and now > offer.valid_to:
        return _reject("This offer has expired")
    if offer.min_order_value is not None and subtotal < offer.min_order_value:
        return _reject(f"Minimum order value of ₹{offer.min_order_value} required")
    if offer.category_id is not None and offer.category_id not in category_ids:
        label = offer.category_name or "a specific category"
        return _reject(f"This offer is only valid on items from {label}")
    if offer.item_id is not None and offer.item_id not in item_ids:
        label = offer.item_name or "a specific item"
        return _reject(f"This offer is only valid when {label} is in your cart")
    if offer.first_order_only and history.order_count > 0:
        return _reject("This offer is only valid on your first order")
    if offer.max_uses_per_user is not None and history.offer_uses >= offer.max_uses_per_user:
        return _reject("You have already used this offer the maximum number of times")

    match offer.discount_type:
        case DiscountType.PERCENTAGE:
            discount = round2(subtotal * (offer.discount_value or ZERO) / Decimal("100"))
            if offer.max_discount_amount is not None:
                discount = min(discount, offer.max_discount_amount)
            return OfferVerdict(
                valid=True,
                message=f"{offer.discount_value}% off applied",
                discount_amount=discount,
                offer_id=offer.offer_id,
            )
        case DiscountType.FLAT:
            discount = min(offer.discount_value or ZERO, subtotal)
            return OfferVerdict(
                valid=True,
                message=f"₹{discount} off applied",
                discount_amount=discount,
                offer_id=offer.offer_id,
            )
        case DiscountType.FREE_DELIVERY:
            return OfferVerdict(
                valid=True,
                message="Free delivery applied",
                free_delivery=True,
                offer_id=offer.offer_id,
            )
        case _:
            return _reject("Invalid offer code")


def load_offer(code: str) -> OfferRules | None:
    """Look up an offer by code, case-insensitively."""
    offer = (
        Offer.objects.select_related("category", "item")
        .filter(code=code.strip().upper())
        .first()
    )
    return OfferRules.from_model(offer) if offer else None


def usage_history(user: "User", offer_id: int | None) -> UsageHistory:
    """Count the user's non-cancelled orders, overall and with this offer."""
    orders = Order.objects.owned_by(user).exclude(status=OrderStatus.CANCELLED)
    return UsageHistory(
        order_count=orders.count(),
        offer_uses=orders.filter(offer_id=offer_id).count() if offer_id else 0,
    )


def validate_offer_code(
    code: str,
    user: "User",
    *,
    subtotal: Decimal,
    category_ids: Collection[int],
    item_ids: Collection[int],
    now: datetime | None = None,
) -> OfferVerdict:
    """Load an offer and the user's history, then evaluate."""
    offer = load_offer(code)
    history = usage_history(user, offer.offer_id if offer else None)
    return evaluate_offer(
        offer,
        subtotal=subtotal,
        category_ids=category_ids,
        item_ids=item_ids,
        now=now or timezone.now(),
        history=history,
    )


def offer_catalog(
    user: "User",
    *,
    is_active: bool | None = None,
    discount_type: str | None = None,
    now: datetime | None = None,
) -> QuerySet[Offer]:
    """
    Offers the user may browse, newest first.

    Customers only ever see offers that are active and inside their validity
    window. Admins see everything, optionally filtered by ``is_active``.
    """
    offers = Offer.objects.select_related("category", "item")
    if user.is_admin:
        if is_active is not None:
            offers = offers.filter(is_active=is_active)
    else:
        now = now or timezone.now()
        offers = offers.filter(is_active=True).filter(
            Q(valid_from__isnull=True) | Q(valid_from__lte=now),
            Q(valid_to__isnull=True) | Q(valid_to__gte=now),
        )
    if discount_type:
        offers = offers.filter(discount_type=discount_type)
    return offers


def offer_usage(user: "User", offer_id: int | None = None) -> QuerySet[Order]:
    """The user's orders placed with an offer, newest first."""
    orders = Order.objects.owned_by(user).filter(offer__isnull=False).select_related("offer")
    if offer_id:
        orders = orders.filter(offer_id=offer_id)
    return orders.order_by("-created_at")
