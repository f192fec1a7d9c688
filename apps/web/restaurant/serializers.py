"""
Pydantic schemas for the order API.

These schemas define the public API contract for orders and offers.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from apps.web.restaurant.models import DiscountType, Offer, Order, OrderStatus
from apps.web.restaurant.pricing import AddOnSelection, CartLine

# =============================================================================
# Requests
# =============================================================================


class AddOnSelectionSchema(BaseModel):
    add_on_id: int
    quantity: int = Field(default=1, ge=1, le=20)


class CartLineSchema(BaseModel):
    """A single item size in a cart."""

    item_size_id: int
    quantity: int = Field(..., ge=1, le=99)
    add_ons: list[AddOnSelectionSchema] = Field(default_factory=list)

    def to_cart_line(self) -> CartLine:
        return CartLine(
            item_size_id=self.item_size_id,
            quantity=self.quantity,
            add_ons=tuple(
                AddOnSelection(add_on_id=a.add_on_id, quantity=a.quantity)
                for a in self.add_ons
            ),
        )


class OrderCreateRequest(BaseModel):
    """Request body for POST /orders."""

    address_id: int
    items: list[CartLineSchema] = Field(..., min_length=1)
    offer_code: str | None = Field(default=None, max_length=50)
    special_instructions: str = Field(default="", max_length=1000)

    def cart_lines(self) -> list[CartLine]:
        return [line.to_cart_line() for line in self.items]


class OrderStatusUpdateRequest(BaseModel):
    """Request body for POST /orders/{order_id}/status."""

    status: OrderStatus


class OrderCancelRequest(BaseModel):
    reason: str = Field(default="", max_length=500)


class OfferListFilter(BaseModel):
    """Query parameters for GET /offers."""

    is_active: bool | None = None
    discount_type: DiscountType | None = None


class OfferUsageFilter(BaseModel):
    offer_id: int | None = None


class OfferValidateRequest(BaseModel):
    """Request body for POST /offers/validate."""

    code: str = Field(..., min_length=1, max_length=50)
    items: list[CartLineSchema] = Field(..., min_length=1)

    def cart_lines(self) -> list[CartLine]:
        return [line.to_cart_line() for line in self.items]


# =============================================================================
# Responses
# =============================================================================


class OrderItemAddOnSchema(BaseModel):
    name: str
    price: Decimal
    quantity: int


class OrderItemSchema(BaseModel):
    """A line item in an order response. Values are the snapshot taken at order time."""

    id: int
    item_id: int | None
    item_size_id: int | None
    category_name: str
    item_name: str
    size_label: str
    base_price: Decimal
    quantity: int
    line_total: Decimal
    add_ons: list[OrderItemAddOnSchema] = Field(default_factory=list)


class OrderSummarySchema(BaseModel):
    """Order row in GET /orders."""

    order_id: int
    status: str
    payment_status: str
    total_price: Decimal
    created_at: datetime


class OrderDetailResponse(BaseModel):
    """Response for POST /orders and GET /orders/{order_id}."""

    order_id: int
    user_id: int
    status: str
    payment_status: str
    payment_method: str
    address: str
    offer_id: int | None
    items: list[OrderItemSchema]
    subtotal: Decimal
    gst_amount: Decimal
    discount_amount: Decimal
    delivery_charge: Decimal
    total_price: Decimal
    special_instructions: str
    cancellation_reason: str
    created_at: datetime
    paid_at: datetime | None
    cancelled_at: datetime | None
    delivered_at: datetime | None

    @classmethod
    def from_order(cls, order: Order) -> "OrderDetailResponse":
        return cls(
            order_id=order.pk,
            user_id=order.user_id,
            status=order.status,
            payment_status=order.payment_status,
            payment_method=order.payment_method,
            address=order.address_snapshot,
            offer_id=order.offer_id,
            items=[
                OrderItemSchema(
                    id=item.pk,
                    item_id=item.item_id,
                    item_size_id=item.item_size_id,
                    category_name=item.category_name,
                    item_name=item.item_name,
                    size_label=item.size_label,
                    base_price=item.base_price,
                    quantity=item.quantity,
                    line_total=item.line_total,
                    add_ons=[
                        OrderItemAddOnSchema(name=a.name, price=a.price, quantity=a.quantity)
                        for a in item.add_ons.all()
                    ],
                )
                for item in order.items.all()
            ],
            subtotal=order.subtotal,
            gst_amount=order.gst_amount,
            discount_amount=order.discount_amount,
            delivery_charge=order.delivery_charge,
            total_price=order.total_price,
            special_instructions=order.special_instructions,
            cancellation_reason=order.cancellation_reason,
            created_at=order.created_at,
            paid_at=order.paid_at,
            cancelled_at=order.cancelled_at,
            delivered_at=order.delivered_at,
        )


class OrderListResponse(BaseModel):
    orders: list[OrderSummarySchema]


class OfferValidateResponse(BaseModel):
    """Response for POST /offers/validate."""

    valid: bool
    message: str
    subtotal: Decimal
    discount_amount: Decimal
    free_delivery: bool


class OfferSchema(BaseModel):
    """An offer as shown on the cart screen."""

    id: int
    code: str
    title: str
    description: str
    discount_type: str
    discount_value: Decimal | None
    max_discount_amount: Decimal | None
    min_order_value: Decimal | None
    category_id: int | None
    category_name: str | None
    item_id: int | None
    item_name: str | None
    first_order_only: bool
    max_uses_per_user: int | None
    valid_from: datetime | None
    valid_to: datetime | None
    is_active: bool

    @classmethod
    def from_offer(cls, offer: Offer) -> "OfferSchema":
        return cls(
            id=offer.pk,
            code=offer.code,
            title=offer.title,
            description=offer.description,
            discount_type=offer.discount_type,
            discount_value=offer.discount_value,
            max_discount_amount=offer.max_discount_amount,
            min_order_value=offer.min_order_value,
            category_id=offer.category_id,
            category_name=offer.category.name if offer.category else None,
            item_id=offer.item_id,
            item_name=offer.item.name if offer.item else None,
            first_order_only=offer.first_order_only,
            max_uses_per_user=offer.max_uses_per_user,
            valid_from=offer.valid_from,
            valid_to=offer.valid_to,
            is_active=offer.is_active,
        )


class OfferListResponse(BaseModel):
    offers: list[OfferSchema]


class OfferDetailResponse(BaseModel):
    offer: OfferSchema


class OfferUseSchema(BaseModel):
    """An order placed with an offer."""

    order_id: int
    offer_id: int
    offer_code: str
    offer_title: str
    discount_type: str
    discount_amount: Decimal
    status: str
    total_price: Decimal
    created_at: datetime


class OfferUsageResponse(BaseModel):
    """Response for GET /offers/usage/history."""

    orders: list[OfferUseSchema]
    order_count: int
    offer_uses: int | None = None
