"""Razorpay gateway - signature-based collect flow."""

import logging
from decimal import Decimal
from typing import Any

import httpx
from thali_schemas import (
    EventChannel,
    GatewayOrder,
    GatewayPayment,
    GatewayPaymentStatus,
    GatewayProvider,
    GatewayRefund,
    PaymentEvent,
    PaymentInstrument,
)

from apps.web.core.exceptions import GatewayError, GatewayUnavailable
from apps.web.payments.gateways.signing import (
    payment_signature_message,
    signature_matches,
)

logger = logging.getLogger(__name__)

PAISE = Decimal("100")

_STATUS_MAP = {
    "created": GatewayPaymentStatus.CREATED,
    "authorized": GatewayPaymentStatus.AUTHORIZED,
    "captured": GatewayPaymentStatus.CAPTURED,
    "refunded": GatewayPaymentStatus.REFUNDED,
    "failed": GatewayPaymentStatus.FAILED,
}

# Webhook event -> status it reports
WEBHOOK_EVENTS = {
    "payment.authorized": GatewayPaymentStatus.AUTHORIZED,
    "payment.captured": GatewayPaymentStatus.CAPTURED,
    "payment.failed": GatewayPaymentStatus.FAILED,
    "order.paid": GatewayPaymentStatus.CAPTURED,
}


def to_paise(amount: Decimal) -> int:
    return int((amount * PAISE).quantize(Decimal("1")))


def from_paise(amount: int | str | None) -> Decimal | None:
    if amount is None:
        return None
    return (Decimal(str(amount)) / PAISE).quantize(Decimal("0.01"))


def parse_payment_entity(entity: dict[str, Any]) -> GatewayPayment:
    """Convert a Razorpay payment entity to a GatewayPayment."""
    card = entity.get("card") or {}
    return GatewayPayment(
        provider=GatewayProvider.RAZORPAY,
        id=entity.get("id"),
        order_id=entity.get("order_id"),
        status=_STATUS_MAP.get(entity.get("status", ""), GatewayPaymentStatus.CREATED),
        amount=from_paise(entity.get("amount")),
        instrument=PaymentInstrument(
            method=entity.get("method") or "",
            card_network=card.get("network") or "",
            card_last4=card.get("last4") or "",
            bank=entity.get("bank") or "",
            wallet=entity.get("wallet") or "",
            vpa=entity.get("vpa") or "",
        ),
        error_code=entity.get("error_code") or "",
        error_description=entity.get("error_description") or "",
        raw=entity,
    )


def parse_webhook(payload: dict[str, Any]) -> PaymentEvent | None:
    """
    Normalize a Razorpay webhook payload.

    Returns None for events that carry no payment outcome (refunds, disputes).
    """
    event_type = payload.get("event", "")
    status = WEBHOOK_EVENTS.get(event_type)
    if status is None:
        return None

    body = payload.get("payload") or {}
    entity = (body.get("payment") or {}).get("entity") or {}
    order_entity = (body.get("order") or {}).get("entity") or {}
    payment = parse_payment_entity(entity) if entity else None

    gateway_order_id = (payment and payment.order_id) or order_entity.get("id")
    if not gateway_order_id:
        logger.warning("Razorpay webhook without order id: event=%s", event_type)
        return None

    return PaymentEvent(
        channel=EventChannel.WEBHOOK,
        provider=GatewayProvider.RAZORPAY,
        gateway_order_id=gateway_order_id,
        gateway_payment_id=payment.id if payment else None,
        status=status,
        instrument=payment.instrument if payment else PaymentInstrument(),
        error_code=payment.error_code if payment else "",
        error_description=payment.error_description if payment else "",
        event_type=event_type,
        payload=payload,
    )


class RazorpayGateway:
    """
    Razorpay gateway implementing the PaymentGateway protocol.

    The customer's client opens Razorpay checkout with our key id and the
    gateway order id, then posts back the payment id and signature.

    API Reference: https://razorpay.com/docs/api/
    """

    BASE_URL = "https://api.razorpay.com/v1"
    ORDERS_URL = f"{BASE_URL}/orders"
    PAYMENTS_URL = f"{BASE_URL}/payments"

    CREATE_TIMEOUT = 30.0
    STATUS_TIMEOUT = 15.0

    def __init__(
        self,
        key_id: str,
        key_secret: str,
        http_client: httpx.Client | None = None,
    ) -> None:
        """
        Initialize the Razorpay gateway.

        Args:
            key_id: Public key id.
            key_secret: Secret used for API auth and payment signatures.
            http_client: Optional HTTP client for dependency injection (testing).
        """
        self._key_id = key_id
        self._key_secret = key_secret
        self._auth = httpx.BasicAuth(key_id, key_secret)
        self._client = http_client or httpx.Client(timeout=self.CREATE_TIMEOUT)
        self._owns_client = http_client is None

    def close(self) -> None:
        """Close the HTTP client if we own it."""
        if self._owns_client:
            self._client.close()

    @property
    def provider(self) -> GatewayProvider:
        return GatewayProvider.RAZORPAY

    @property
    def key_id(self) -> str:
        return self._key_id

    # =========================================================================
    # HTTP Helpers
    # =========================================================================

    def _request(
        self,
        method: str,
        url: str,
        *,
        timeout: float,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        try:
            response = self._client.request(
                method, url, json=json, auth=self._auth, timeout=timeout
            )
            response.raise_for_status()
        except httpx.TimeoutException as e:
            raise GatewayUnavailable(
                f"Razorpay request timed out: {method} {url}",
                provider="razorpay",
                timed_out=True,
            ) from e
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            if status_code >= 500:
                raise GatewayUnavailable(
                    f"Razorpay server error: {status_code}",
                    provider="razorpay",
                ) from e
            raise GatewayError(
                self._error_description(e.response),
                provider="razorpay",
                status_code=status_code,
                response_body=e.response.text,
            ) from e
        except httpx.RequestError as e:
            raise GatewayUnavailable(
                f"Razorpay request failed: {e}",
                provider="razorpay",
            ) from e

        return response.json()

    @staticmethod
    def _error_description(response: httpx.Response) -> str:
        try:
            error = response.json().get("error") or {}
        except ValueError:
            error = {}
        return error.get("description") or f"Razorpay API error: {response.status_code}"

    # =========================================================================
    # Gateway Operations
    # =========================================================================

    def create_order(
        self,
        amount: Decimal,
        currency: str,
        receipt: str,
        notes: dict[str, Any],
    ) -> GatewayOrder:
        data = self._request(
            "POST",
            self.ORDERS_URL,
            timeout=self.CREATE_TIMEOUT,
            json={
                "amount": to_paise(amount),
                "currency": currency,
                "receipt": receipt,
                "payment_capture": 1,
                "notes": {k: str(v) for k, v in notes.items()},
            },
        )
        logger.info(
            "Razorpay order created: gateway_order_id=%s receipt=%s",
            data.get("id"),
            receipt,
        )
        return GatewayOrder(
            provider=GatewayProvider.RAZORPAY,
            id=data["id"],
            amount=from_paise(data.get("amount")) or amount,
            currency=data.get("currency", currency),
            receipt=data.get("receipt", receipt),
            status=data.get("status", "created"),
            checkout={"key_id": self._key_id},
            raw=data,
        )

    def verify_signature(
        self,
        gateway_order_id: str,
        gateway_payment_id: str,
        signature: str,
    ) -> bool:
        message = payment_signature_message(gateway_order_id, gateway_payment_id)
        return signature_matches(self._key_secret, message, signature)

    def fetch_payment(self, gateway_payment_id: str) -> GatewayPayment:
        data = self._request(
            "GET",
            f"{self.PAYMENTS_URL}/{gateway_payment_id}",
            timeout=self.STATUS_TIMEOUT,
        )
        return parse_payment_entity(data)

    def create_refund(
        self,
        gateway_payment_id: str,
        amount: Decimal | None,
        notes: dict[str, Any],
    ) -> GatewayRefund:
        body: dict[str, Any] = {
            "speed": "normal",
            "notes": {k: str(v) for k, v in notes.items()},
        }
        if amount is not None:
            body["amount"] = to_paise(amount)

        data = self._request(
            "POST",
            f"{self.PAYMENTS_URL}/{gateway_payment_id}/refund",
            timeout=self.CREATE_TIMEOUT,
            json=body,
        )
        logger.info(
            "Razorpay refund created: refund_id=%s payment_id=%s",
            data.get("id"),
            gateway_payment_id,
        )
        return GatewayRefund(
            provider=GatewayProvider.RAZORPAY,
            id=data["id"],
            payment_id=data.get("payment_id", gateway_payment_id),
            amount=from_paise(data.get("amount")) or amount or Decimal("0"),
            status=data.get("status", "pending"),
            raw=data,
        )
