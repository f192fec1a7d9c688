"""Base payment gateway protocol - interface for all gateway integrations."""

from decimal import Decimal
from typing import Any, Protocol, runtime_checkable

from thali_schemas import GatewayOrder, GatewayPayment, GatewayProvider, GatewayRefund


@runtime_checkable
class PaymentGateway(Protocol):
    """
    Protocol defining the interface for payment gateway integrations.

    All gateways (Razorpay, UPIGateway, and their mocks) implement exactly
    these four operations. Callers never branch on which one they hold; the
    implementation is chosen once, by get_gateway().
    """

    @property
    def provider(self) -> GatewayProvider:
        """The gateway this client talks to."""
        ...

    @property
    def key_id(self) -> str:
        """Public key the customer's client needs to open checkout."""
        ...

    def create_order(
        self,
        amount: Decimal,
        currency: str,
        receipt: str,
        notes: dict[str, Any],
    ) -> GatewayOrder:
        """
        Create a gateway-side order for the customer to pay.

        Args:
            amount: Amount in rupees (two decimal places).
            currency: ISO currency code.
            receipt: Our reference for this payment attempt.
            notes: Free-form key/values stored with the gateway order.

        Returns:
            The gateway order. ``id`` is the reference later callbacks carry.

        Raises:
            GatewayUnavailable: On timeout, network failure, or 5xx.
            GatewayError: If the gateway rejects the request.
        """
        ...

    def verify_signature(
        self,
        gateway_order_id: str,
        gateway_payment_id: str,
        signature: str,
    ) -> bool:
        """
        Check the signature the customer's client received after paying.

        The signature is HMAC-SHA256 of ``"{order_id}|{payment_id}"``.
        """
        ...

    def fetch_payment(self, gateway_payment_id: str) -> GatewayPayment:
        """
        Fetch the current state of a payment.

        Args:
            gateway_payment_id: Payment reference. Gateways that track
                payments by order reference accept the gateway order id.

        Raises:
            GatewayUnavailable: On timeout, network failure, or 5xx.
            GatewayError: If the gateway rejects the request.
        """
        ...

    def create_refund(
        self,
        gateway_payment_id: str,
        amount: Decimal | None,
        notes: dict[str, Any],
    ) -> GatewayRefund:
        """
        Refund a captured payment, fully or partially.

        Args:
            gateway_payment_id: Payment to refund.
            amount: Amount in rupees. None refunds the full payment.
            notes: Free-form key/values stored with the refund.

        Raises:
            ManualRefundRequired: If the gateway has no refund API.
            GatewayUnavailable: On timeout, network failure, or 5xx.
            GatewayError: If the gateway rejects the refund.
        """
        ...
