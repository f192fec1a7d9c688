"""
Gateway webhook handlers.

POST /webhooks/<gateway>

Each gateway signs the raw body with HMAC-SHA256 and its webhook secret.
Authenticated payloads are normalized into a PaymentEvent and handed to
reconcile(). The endpoint answers 200 for anything it managed to read, so
gateways do not keep retrying payloads we have decided to ignore.
"""

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from django.conf import settings
from django.http import HttpRequest, HttpResponse, QueryDict
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from thali_schemas import GatewayProvider, PaymentEvent

from apps.web.core.exceptions import ServiceError
from apps.web.payments.gateways import razorpay, upigateway
from apps.web.payments.gateways.signing import signature_matches
from apps.web.payments.reconciliation import reconcile

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WebhookSource:
    provider: GatewayProvider
    signature_header: str
    secret_setting: str
    parse: Callable[[dict[str, Any]], PaymentEvent | None]

    @property
    def secret(self) -> str:
        return getattr(settings, self.secret_setting, "")


WEBHOOK_SOURCES: dict[str, WebhookSource] = {
    GatewayProvider.RAZORPAY.value: WebhookSource(
        provider=GatewayProvider.RAZORPAY,
        signature_header="X-Razorpay-Signature",
        secret_setting="RAZORPAY_WEBHOOK_SECRET",
        parse=razorpay.parse_webhook,
    ),
    GatewayProvider.UPIGATEWAY.value: WebhookSource(
        provider=GatewayProvider.UPIGATEWAY,
        signature_header="X-UPIGateway-Signature",
        secret_setting="UPIGATEWAY_WEBHOOK_SECRET",
        parse=upigateway.parse_webhook,
    ),
}


def _decode(request: HttpRequest) -> dict[str, Any]:
    """JSON body, or form fields for gateways that post form-encoded callbacks."""
    if request.content_type == "application/x-www-form-urlencoded":
        return QueryDict(request.body).dict()
    payload = json.loads(request.body)
    if not isinstance(payload, dict):
        raise ValueError("Webhook body is not an object")
    return payload


@csrf_exempt
@require_POST
def gateway_webhook(request: HttpRequest, gateway: str) -> HttpResponse:
    """
    Handle a payment gateway webhook.

    Unknown gateways get 404. Everything else gets 200; rejected payloads
    are logged and leave no trace in the ledger.
    """
    source = WEBHOOK_SOURCES.get(gateway)
    if source is None:
        return HttpResponse("Unknown gateway", status=404)

    signature = request.headers.get(source.signature_header, "")
    if not signature_matches(source.secret, request.body, signature):
        logger.warning("Invalid %s webhook signature", gateway)
        return HttpResponse(status=200)

    try:
        payload = _decode(request)
    except ValueError as e:
        logger.warning("Invalid %s webhook payload: %s", gateway, e)
        return HttpResponse(status=200)

    try:
        event = source.parse(payload)
    except (ValueError, TypeError, AttributeError, ArithmeticError) as e:
        # Authentic but malformed; retrying will not fix it
        logger.warning("Unreadable %s webhook payload: %s", gateway, e)
        return HttpResponse(status=200)
    if event is None:
        logger.debug("Ignoring %s webhook without payment outcome", gateway)
        return HttpResponse(status=200)

    logger.info(
        "Received %s webhook: event=%s gateway_order_id=%s status=%s",
        gateway,
        event.event_type,
        event.gateway_order_id,
        event.status.value,
    )

    try:
        reconcile(event.model_copy(update={"signature": signature}))
    except ServiceError as e:
        logger.warning(
            "Webhook not reconciled: gateway=%s gateway_order_id=%s error=%s",
            gateway,
            event.gateway_order_id,
            e.message,
        )
    except Exception:
        logger.exception(
            "Webhook reconciliation failed: gateway=%s gateway_order_id=%s",
            gateway,
            event.gateway_order_id,
        )

    return HttpResponse(status=200)
