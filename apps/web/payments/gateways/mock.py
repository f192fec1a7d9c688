"""Mock payment gateways for development, sandbox mode, and testing."""

import hashlib
import itertools
import logging
from decimal import Decimal
from typing import Any

from thali_schemas import (
    GatewayOrder,
    GatewayPayment,
    GatewayPaymentStatus,
    GatewayProvider,
    GatewayRefund,
    PaymentInstrument,
)

from apps.web.core.exceptions import GatewayError, GatewayUnavailable, ManualRefundRequired
from apps.web.payments.gateways.signing import (
    hmac_sha256_hex,
    payment_signature_message,
    signature_matches,
)
from apps.web.payments.gateways.store import TTLStore
from apps.web.payments.gateways.upigateway import MANUAL_REFUND_MESSAGE

logger = logging.getLogger(__name__)

# 1x1 transparent PNG
MOCK_QR_CODE = (
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)


class MockPaymentGateway:
    """
    Deterministic in-process gateway.

    Ids are derived from receipts and a per-instance counter, so the same
    sequence of calls always yields the same ids. Payment ids embed their
    gateway order id, so instances sharing a TTLStore do not collide.

    Usage:
        gateway = MockRazorpayGateway(store=TTLStore(ttl_seconds=60))
        order = gateway.create_order(Decimal("265.00"), "INR", "order_1_0", {})
        payment = gateway.simulate_payment(order.id)
        signature = gateway.sign(order.id, payment.id)
    """

    KEY_ID = "mock_key_id"
    KEY_SECRET = "mock_key_secret"

    def __init__(
        self,
        store: TTLStore | None = None,
        key_secret: str = KEY_SECRET,
        fail_orders: bool = False,
        unavailable: bool = False,
        default_status: GatewayPaymentStatus = GatewayPaymentStatus.CAPTURED,
    ) -> None:
        """
        Initialize mock gateway.

        Args:
            store: Backing store. A fresh one is created if None.
            key_secret: Secret used to compute payment signatures.
            fail_orders: If True, order creation is rejected.
            unavailable: If True, every call fails as a timeout.
            default_status: Status reported for payments never simulated.
        """
        self._store = store if store is not None else TTLStore()
        self._key_secret = key_secret
        self._fail_orders = fail_orders
        self._unavailable = unavailable
        self._default_status = default_status
        self._sequence = itertools.count(1)

    @property
    def provider(self) -> GatewayProvider:
        raise NotImplementedError

    @property
    def key_id(self) -> str:
        return self.KEY_ID

    # =========================================================================
    # Configuration methods (for test setup)
    # =========================================================================

    def set_unavailable(self, unavailable: bool = True) -> None:
        self._unavailable = unavailable

    def sign(self, gateway_order_id: str, gateway_payment_id: str) -> str:
        """Signature a genuine checkout would hand back to the client."""
        return hmac_sha256_hex(
            self._key_secret,
            payment_signature_message(gateway_order_id, gateway_payment_id),
        )

    def simulate_payment(
        self,
        gateway_order_id: str,
        status: GatewayPaymentStatus = GatewayPaymentStatus.CAPTURED,
        method: str = "upi",
        error_description: str = "",
    ) -> GatewayPayment:
        """Record a customer payment against a gateway order."""
        order = self._store.get(self._order_key(gateway_order_id)) or {}
        payment = GatewayPayment(
            provider=self.provider,
            id=f"pay_{gateway_order_id.removeprefix('order_')}_{next(self._sequence):03d}",
            order_id=gateway_order_id,
            status=status,
            amount=order.get("amount"),
            instrument=self._instrument(method),
            error_code="BAD_REQUEST_ERROR" if status == GatewayPaymentStatus.FAILED else "",
            error_description=error_description
            or ("Payment declined" if status == GatewayPaymentStatus.FAILED else ""),
        )
        payment = payment.model_copy(update={"raw": payment.model_dump(mode="json", exclude={"raw"})})
        self._store.set(self._payment_key(payment.id or ""), payment)
        self._store.set(self._order_payment_key(gateway_order_id), payment)
        return payment

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
        self._check_available()
        if self._fail_orders:
            raise GatewayError("Mock order creation failed", provider=self.provider.value)

        gateway_order_id = self._make_order_id(receipt)
        self._store.set(
            self._order_key(gateway_order_id),
            {"amount": amount, "currency": currency, "receipt": receipt, "notes": notes},
        )
        logger.info("Mock gateway order created: gateway_order_id=%s", gateway_order_id)
        return GatewayOrder(
            provider=self.provider,
            id=gateway_order_id,
            amount=amount,
            currency=currency,
            receipt=receipt,
            checkout=self._checkout(gateway_order_id, amount),
            raw={"id": gateway_order_id, "receipt": receipt, "mock": True},
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
        self._check_available()
        payment = self._store.get(self._payment_key(gateway_payment_id)) or self._store.get(
            self._order_payment_key(gateway_payment_id)
        )
        if payment is not None:
            return payment

        # Canned answer for payments made outside simulate_payment()
        return GatewayPayment(
            provider=self.provider,
            id=gateway_payment_id,
            status=self._default_status,
            instrument=self._instrument("upi"),
            raw={"id": gateway_payment_id, "mock": True},
        )

    def create_refund(
        self,
        gateway_payment_id: str,
        amount: Decimal | None,
        notes: dict[str, Any],
    ) -> GatewayRefund:
        self._check_available()
        payment = self._store.get(self._payment_key(gateway_payment_id))
        refund_amount = amount
        if refund_amount is None:
            refund_amount = payment.amount if payment and payment.amount else Decimal("0")

        refund_id = f"rfnd_mock_{next(self._sequence):06d}"
        logger.info(
            "Mock refund created: refund_id=%s payment_id=%s", refund_id, gateway_payment_id
        )
        return GatewayRefund(
            provider=self.provider,
            id=refund_id,
            payment_id=gateway_payment_id,
            amount=refund_amount,
            status="processed",
            raw={"id": refund_id, "notes": notes, "mock": True},
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    def _check_available(self) -> None:
        if self._unavailable:
            raise GatewayUnavailable(
                "Mock gateway timed out",
                provider=self.provider.value,
                timed_out=True,
            )

    def _make_order_id(self, receipt: str) -> str:
        digest = hashlib.sha256(receipt.encode()).hexdigest()[:14]
        return f"order_mock_{digest}"

    def _checkout(self, gateway_order_id: str, amount: Decimal) -> dict[str, Any]:  # noqa: ARG002
        return {"key_id": self.key_id}

    @staticmethod
    def _instrument(method: str) -> PaymentInstrument:
        if method == "card":
            return PaymentInstrument(method="card", card_network="Visa", card_last4="1111")
        return PaymentInstrument(method=method, vpa="mock@upi" if method == "upi" else "")

    def _order_key(self, gateway_order_id: str) -> str:
        return f"{self.provider.value}:order:{gateway_order_id}"

    def _payment_key(self, gateway_payment_id: str) -> str:
        return f"{self.provider.value}:payment:{gateway_payment_id}"

    def _order_payment_key(self, gateway_order_id: str) -> str:
        return f"{self.provider.value}:order-payment:{gateway_order_id}"


class MockRazorpayGateway(MockPaymentGateway):
    """Mock of the Razorpay collect flow."""

    @property
    def provider(self) -> GatewayProvider:
        return GatewayProvider.RAZORPAY


class MockUPIGateway(MockPaymentGateway):
    """Mock of the UPIGateway QR flow. Refunds are manual, as with the real one."""

    @property
    def provider(self) -> GatewayProvider:
        return GatewayProvider.UPIGATEWAY

    @property
    def key_id(self) -> str:
        return ""

    def _make_order_id(self, receipt: str) -> str:
        return receipt

    def _checkout(self, gateway_order_id: str, amount: Decimal) -> dict[str, Any]:
        return {
            "payment_url": f"https://test.upigateway.com/pay/{gateway_order_id}",
            "qr_string": f"upi://pay?pa=mock@upi&pn=Thali&am={amount}&tr={gateway_order_id}",
            "qr_code": MOCK_QR_CODE,
        }

    def create_refund(
        self,
        gateway_payment_id: str,
        amount: Decimal | None,  # noqa: ARG002
        notes: dict[str, Any],  # noqa: ARG002
    ) -> GatewayRefund:
        self._check_available()
        raise ManualRefundRequired(MANUAL_REFUND_MESSAGE, provider=self.provider.value)
