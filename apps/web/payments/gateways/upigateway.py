"""UPIGateway - QR code / polling flow with no refund API."""

import logging
from decimal import Decimal, InvalidOperation
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

from apps.web.core.exceptions import (
    GatewayError,
    GatewayUnavailable,
    ManualRefundRequired,
)
from apps.web.payments.gateways.signing import (
    payment_signature_message,
    signature_matches,
)

logger = logging.getLogger(__name__)

MANUAL_REFUND_MESSAGE = (
    "UPIGateway does not support refunds via API. Manual refund required."
)

_STATUS_MAP = {
    "success": GatewayPaymentStatus.CAPTURED,
    "failure": GatewayPaymentStatus.FAILED,
    "failed": GatewayPaymentStatus.FAILED,
}


def _decimal(value: Any) -> Decimal | None:
    try:
        return Decimal(str(value)).quantize(Decimal("0.01")) if value not in (None, "") else None
    except InvalidOperation:
        return None


def parse_transaction(data: dict[str, Any], client_txn_id: str | None = None) -> GatewayPayment:
    """
    Convert a UPIGateway transaction record to a GatewayPayment.

    Status check responses and webhooks share this shape. The order
    reference is always our ``client_txn_id``.
    """
    status = _STATUS_MAP.get(str(data.get("status", "")).lower(), GatewayPaymentStatus.CREATED)
    payment_id = data.get("upi_txn_id") or data.get("txn_id") or data.get("id")
    return GatewayPayment(
        provider=GatewayProvider.UPIGATEWAY,
        id=str(payment_id) if payment_id else None,
        order_id=data.get("client_txn_id") or client_txn_id,
        status=status,
        amount=_decimal(data.get("amount")),
        instrument=PaymentInstrument(method="upi", vpa=data.get("customer_vpa") or ""),
        error_code="PAYMENT_FAILED" if status == GatewayPaymentStatus.FAILED else "",
        error_description=(
            data.get("remark") or "UPI payment failed"
            if status == GatewayPaymentStatus.FAILED
            else ""
        ),
        raw=data,
    )


def parse_webhook(payload: dict[str, Any]) -> PaymentEvent | None:
    """
    Normalize a UPIGateway callback.

    Pending callbacks carry no outcome and return None.
    """
    if not payload.get("client_txn_id"):
        logger.warning("UPIGateway webhook without client_txn_id")
        return None

    payment = parse_transaction(payload)
    if payment.status == GatewayPaymentStatus.CREATED:
        return None

    return PaymentEvent.from_payment(
        payment,
        channel=EventChannel.WEBHOOK,
        gateway_order_id=payload["client_txn_id"],
        event_type=f"upigateway.{payload.get('status', '')}",
    ).model_copy(update={"payload": payload})


class UPIGatewayGateway:
    """
    UPIGateway client implementing the PaymentGateway protocol.

    The customer scans a QR code or opens a payment URL; the outcome arrives
    by webhook or by polling check_order_status. Our receipt doubles as the
    gateway's ``client_txn_id`` and is the order reference used everywhere.

    API Reference: https://upigateway.com/docs
    """

    BASE_URL = "https://merchant.upigateway.com/api"
    CREATE_ORDER_URL = f"{BASE_URL}/create_order"
    CHECK_STATUS_URL = f"{BASE_URL}/check_order_status"

    CREATE_TIMEOUT = 30.0
    STATUS_TIMEOUT = 15.0

    def __init__(
        self,
        merchant_key: str,
        redirect_url: str = "",
        http_client: httpx.Client | None = None,
    ) -> None:
        """
        Initialize the UPIGateway client.

        Args:
            merchant_key: Merchant API key; also signs verify payloads.
            redirect_url: Where the payment page sends the customer afterwards.
            http_client: Optional HTTP client for dependency injection (testing).
        """
        self._merchant_key = merchant_key
        self._redirect_url = redirect_url
        self._client = http_client or httpx.Client(timeout=self.CREATE_TIMEOUT)
        self._owns_client = http_client is None

    def close(self) -> None:
        """Close the HTTP client if we own it."""
        if self._owns_client:
            self._client.close()

    @property
    def provider(self) -> GatewayProvider:
        return GatewayProvider.UPIGATEWAY

    @property
    def key_id(self) -> str:
        # No client-side key; checkout uses the QR string or payment URL
        return ""

    # =========================================================================
    # HTTP Helpers
    # =========================================================================

    def _post(self, url: str, payload: dict[str, Any], *, timeout: float) -> dict[str, Any]:
        try:
            response = self._client.post(
                url,
                json={"key": self._merchant_key, **payload},
                headers={"Accept": "application/json"},
                timeout=timeout,
            )
            response.raise_for_status()
        except httpx.TimeoutException as e:
            raise GatewayUnavailable(
                f"UPIGateway request timed out: {url}",
                provider="upigateway",
                timed_out=True,
            ) from e
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            if status_code >= 500:
                raise GatewayUnavailable(
                    f"UPIGateway server error: {status_code}",
                    provider="upigateway",
                ) from e
            raise GatewayError(
                f"UPIGateway API error: {status_code}",
                provider="upigateway",
                status_code=status_code,
                response_body=e.response.text,
            ) from e
        except httpx.RequestError as e:
            raise GatewayUnavailable(
                f"UPIGateway request failed: {e}",
                provider="upigateway",
            ) from e

        body = response.json()
        # The API reports failures as HTTP 200 with status false
        if body.get("status") not in (True, "true"):
            raise GatewayError(
                body.get("msg") or body.get("message") or "UPIGateway request failed",
                provider="upigateway",
                status_code=response.status_code,
                response_body=response.text,
            )
        return body.get("data") or {}

    # =========================================================================
    # Gateway Operations
    # =========================================================================

    def create_order(
        self,
        amount: Decimal,
        currency: str,  # noqa: ARG002
        receipt: str,
        notes: dict[str, Any],
    ) -> GatewayOrder:
        data = self._post(
            self.CREATE_ORDER_URL,
            {
                "client_txn_id": receipt,
                "amount": str(amount),
                "p_info": notes.get("p_info") or f"Order #{notes.get('order_id', receipt)}",
                "customer_name": notes.get("customer_name") or "Customer",
                "customer_email": notes.get("customer_email") or "",
                "customer_mobile": notes.get("customer_mobile") or "",
                "redirect_url": self._redirect_url,
                "udf1": str(notes.get("order_id", "")),
                "udf2": str(notes.get("source", "")),
                "udf3": "",
            },
            timeout=self.CREATE_TIMEOUT,
        )
        logger.info(
            "UPIGateway order created: client_txn_id=%s upigateway_order_id=%s",
            receipt,
            data.get("order_id"),
        )
        return GatewayOrder(
            provider=GatewayProvider.UPIGATEWAY,
            id=receipt,
            amount=amount,
            currency="INR",
            receipt=receipt,
            checkout={
                "upigateway_order_id": data.get("order_id"),
                "payment_url": data.get("payment_url", ""),
                "qr_string": data.get("qr_string", ""),
                "qr_code": data.get("qr_code", ""),
            },
            raw=data,
        )

    def verify_signature(
        self,
        gateway_order_id: str,
        gateway_payment_id: str,
        signature: str,
    ) -> bool:
        message = payment_signature_message(gateway_order_id, gateway_payment_id)
        return signature_matches(self._merchant_key, message, signature)

    def fetch_payment(self, gateway_payment_id: str) -> GatewayPayment:
        data = self._post(
            self.CHECK_STATUS_URL,
            {"client_txn_id": gateway_payment_id},
            timeout=self.STATUS_TIMEOUT,
        )
        return parse_transaction(data, client_txn_id=gateway_payment_id)

    def create_refund(
        self,
        gateway_payment_id: str,
        amount: Decimal | None,  # noqa: ARG002
        notes: dict[str, Any],  # noqa: ARG002
    ) -> GatewayRefund:
        logger.warning(
            "Refund requested on UPIGateway: payment_id=%s", gateway_payment_id
        )
        raise ManualRefundRequired(MANUAL_REFUND_MESSAGE, provider="upigateway")
