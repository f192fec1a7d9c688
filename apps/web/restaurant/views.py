"""
Order and offer API views.

All bodies are JSON with snake_case keys. Errors are rendered from the
service exception's kind by core.decorators.service_errors.
"""

from django.http import HttpRequest, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from pydantic import ValidationError as PydanticValidationError

from apps.web.core.decorators import admin_required, api_login_required, service_errors
from apps.web.core.exceptions import NotFoundError, ValidationError
from apps.web.core.responses import parse_body, schema_response
from apps.web.restaurant import services
from apps.web.restaurant.catalog import DatabaseCatalog
from apps.web.restaurant.models import Order
from apps.web.restaurant.offers import (
    offer_catalog,
    offer_usage,
    usage_history,
    validate_offer_code,
)
from apps.web.restaurant.pricing import price_cart
from apps.web.restaurant.serializers import (
    OfferDetailResponse,
    OfferListFilter,
    OfferListResponse,
    OfferSchema,
    OfferUsageFilter,
    OfferUsageResponse,
    OfferUseSchema,
    OfferValidateRequest,
    OfferValidateResponse,
    OrderCancelRequest,
    OrderCreateRequest,
    OrderDetailResponse,
    OrderListResponse,
    OrderStatusUpdateRequest,
    OrderSummarySchema,
)


def _detail(order: Order, status: int = 200) -> JsonResponse:
    order = Order.objects.prefetch_related("items__add_ons").get(pk=order.pk)
    return schema_response(OrderDetailResponse.from_order(order), status=status)


@csrf_exempt
@require_http_methods(["GET", "POST"])
@api_login_required
@service_errors
def orders(request: HttpRequest) -> JsonResponse:
    """
    GET /orders - the caller's orders, newest first
    POST /orders - create an order awaiting payment

    Request body: OrderCreateRequest schema
    Response: OrderDetailResponse schema (201)
    """
    if request.method == "GET":
        rows = Order.objects.owned_by(request.user).only(
            "pk", "status", "payment_status", "total_price", "created_at"
        )
        return schema_response(
            OrderListResponse(
                orders=[
                    OrderSummarySchema(
                        order_id=o.pk,
                        status=o.status,
                        payment_status=o.payment_status,
                        total_price=o.total_price,
                        created_at=o.created_at,
                    )
                    for o in rows
                ]
            )
        )

    body = parse_body(request, OrderCreateRequest)
    order = services.create_order(
        request.user,
        address_id=body.address_id,
        lines=body.cart_lines(),
        offer_code=body.offer_code,
        special_instructions=body.special_instructions,
    )
    return _detail(order, status=201)


@require_GET
@api_login_required
@service_errors
def order_detail(request: HttpRequest, order_id: int) -> JsonResponse:
    """GET /orders/{order_id}"""
    return _detail(services.get_order(order_id, request.user))


@csrf_exempt
@require_POST
@admin_required
@service_errors
def order_status(request: HttpRequest, order_id: int) -> JsonResponse:
    """
    POST /orders/{order_id}/status

    Staff-driven status change. Disallowed transitions get 400.
    """
    body = parse_body(request, OrderStatusUpdateRequest)
    order = services.update_order_status(order_id, body.status, request.user)
    return _detail(order)


@csrf_exempt
@require_POST
@api_login_required
@service_errors
def order_cancel(request: HttpRequest, order_id: int) -> JsonResponse:
    """POST /orders/{order_id}/cancel"""
    body = parse_body(request, OrderCancelRequest)
    order = services.cancel_order(order_id, request.user, reason=body.reason)
    return _detail(order)


@csrf_exempt
@require_POST
@api_login_required
@service_errors
def offer_validate(request: HttpRequest) -> JsonResponse:
    """
    POST /offers/validate

    Preview an offer against a cart. Rejections are a normal 200 answer with
    ``valid: false``; only malformed carts are errors.
    """
    body = parse_body(request, OfferValidateRequest)
    breakdown = price_cart(body.cart_lines(), DatabaseCatalog())
    verdict = validate_offer_code(
        body.code,
        request.user,
        subtotal=breakdown.subtotal,
        category_ids=breakdown.category_ids,
        item_ids=breakdown.item_ids,
    )
    return schema_response(
        OfferValidateResponse(
            valid=verdict.valid,
            message=verdict.message,
            subtotal=breakdown.subtotal,
            discount_amount=verdict.discount_amount,
            free_delivery=verdict.free_delivery,
        )
    )


@require_GET
@api_login_required
@service_errors
def offer_list(request: HttpRequest) -> JsonResponse:
    """
    GET /offers

    Offers for the cart screen. Admins may filter with ``is_active``; both
    audiences may filter with ``discount_type``.
    """
    try:
        filters = OfferListFilter.model_validate(request.GET.dict())
    except PydanticValidationError as e:
        raise ValidationError("Invalid filter", errors=e.error_count()) from e

    offers = offer_catalog(
        request.user, is_active=filters.is_active, discount_type=filters.discount_type
    )
    return schema_response(OfferListResponse(offers=[OfferSchema.from_offer(o) for o in offers]))


@require_GET
@api_login_required
@service_errors
def offer_by_code(request: HttpRequest, code: str) -> JsonResponse:
    """GET /offers/code/{code} - lookup is case-insensitive."""
    offer = offer_catalog(request.user).filter(code=code.strip().upper()).first()
    if offer is None:
        raise NotFoundError("Offer not found", code=code)
    return schema_response(OfferDetailResponse(offer=OfferSchema.from_offer(offer)))


@require_GET
@api_login_required
@service_errors
def offer_usage_history(request: HttpRequest) -> JsonResponse:
    """
    GET /offers/usage/history[?offer_id=]

    The caller's orders placed with an offer, with the counts the offer
    rules look at.
    """
    try:
        filters = OfferUsageFilter.model_validate(request.GET.dict())
    except PydanticValidationError as e:
        raise ValidationError("Invalid filter", errors=e.error_count()) from e

    history = usage_history(request.user, filters.offer_id)
    return schema_response(
        OfferUsageResponse(
            orders=[
                OfferUseSchema(
                    order_id=o.pk,
                    offer_id=o.offer_id,
                    offer_code=o.offer.code,
                    offer_title=o.offer.title,
                    discount_type=o.offer.discount_type,
                    discount_amount=o.discount_amount,
                    status=o.status,
                    total_price=o.total_price,
                    created_at=o.created_at,
                )
                for o in offer_usage(request.user, filters.offer_id)
            ],
            order_count=history.order_count,
            offer_uses=history.offer_uses if filters.offer_id else None,
        )
    )
