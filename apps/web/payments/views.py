"""
Payment API views.

POST /payments/initiate          - start a payment attempt for an order
POST /payments/verify            - client-reported payment completion
GET  /payments/status/<order_id> - payment summary, optionally polling the gateway
POST /payments/refund            - admin refund
GET  /payments/transactions      - admin ledger listing
GET  /payments/transactions/<id> - admin ledger row
"""

from django.http import HttpRequest, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_POST

from pydantic import ValidationError as PydanticValidationError

from apps.web.core.decorators import admin_required, api_login_required, service_errors
from apps.web.core.exceptions import NotFoundError, ValidationError
from apps.web.core.responses import json_response, parse_body
from apps.web.payments import ledger, refunds, services
from apps.web.payments.models import Transaction
from apps.web.payments.serializers import (
    PaymentInitiateRequest,
    PaymentVerifyRequest,
    RefundRequest,
    TransactionFilter,
)


@csrf_exempt
@require_POST
@api_login_required
@service_errors
def initiate(request: HttpRequest) -> JsonResponse:
    body = parse_body(request, PaymentInitiateRequest)
    return json_response(services.initiate_payment(body.order_id, request.user), status=201)


@csrf_exempt
@require_POST
@api_login_required
@service_errors
def verify(request: HttpRequest) -> JsonResponse:
    """
    Verify a payment the checkout reported as complete.

    Safe to call more than once, and in any order relative to the webhook.
    """
    body = parse_body(request, PaymentVerifyRequest)
    result = services.verify_payment(
        body.gateway_order_id, body.gateway_payment_id, body.gateway_signature, request.user
    )
    return json_response(result)


@require_GET
@api_login_required
@service_errors
def status(request: HttpRequest, order_id: int) -> JsonResponse:
    refresh = request.GET.get("refresh", "").lower() in ("1", "true", "yes")
    return json_response(services.get_payment_status(order_id, request.user, refresh=refresh))


@csrf_exempt
@require_POST
@admin_required
@service_errors
def refund(request: HttpRequest) -> JsonResponse:
    body = parse_body(request, RefundRequest)
    row = refunds.process_refund(
        body.order_id, amount=body.amount, reason=body.reason, actor=request.user
    )
    return json_response(
        {
            "order_id": body.order_id,
            "refund_id": row.gateway_refund_id,
            "refund_amount": str(row.refund_amount),
            "transaction": ledger.serialize(row),
        }
    )


@require_GET
@admin_required
@service_errors
def transaction_list(request: HttpRequest) -> JsonResponse:
    try:
        filters = TransactionFilter.model_validate(request.GET.dict())
    except PydanticValidationError as e:
        raise ValidationError("Invalid filter", errors=e.error_count()) from e

    rows = Transaction.objects.all()
    if filters.status:
        rows = rows.filter(status=filters.status)
    if filters.gateway:
        rows = rows.filter(gateway=filters.gateway)
    if filters.order_id:
        rows = rows.filter(order_id=filters.order_id)

    return json_response(
        {"transactions": [ledger.serialize(row) for row in rows[: filters.limit]]}
    )


@require_GET
@admin_required
@service_errors
def transaction_detail(request: HttpRequest, transaction_id: int) -> JsonResponse:
    try:
        row = Transaction.objects.get(pk=transaction_id)
    except Transaction.DoesNotExist as e:
        raise NotFoundError(
            f"Transaction {transaction_id} not found", transaction_id=transaction_id
        ) from e
    return json_response(ledger.serialize(row))
