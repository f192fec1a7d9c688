"""Payment gateways - implementations for each supported provider."""

from functools import lru_cache
from typing import Any

from django.conf import settings

from thali_schemas import GatewayProvider

from apps.web.payments.gateways.base import PaymentGateway
from apps.web.payments.gateways.mock import (
    MockPaymentGateway,
    MockRazorpayGateway,
    MockUPIGateway,
)
from apps.web.payments.gateways.razorpay import RazorpayGateway
from apps.web.payments.gateways.store import TTLStore
from apps.web.payments.gateways.upigateway import UPIGatewayGateway


@lru_cache(maxsize=None)
def mock_store(ttl_seconds: int) -> TTLStore:
    """Process-wide store behind sandbox gateways, so state outlives a single request."""
    return TTLStore(ttl_seconds=ttl_seconds)


def get_gateway(
    provider: GatewayProvider | str,
    *,
    use_mock: bool | None = None,
    **kwargs: Any,
) -> PaymentGateway:
    """
    Get a payment gateway instance for the specified provider.

    This is the only place that decides which implementation is used.
    Everything else receives a PaymentGateway and treats it polymorphically.

    Args:
        provider: The gateway to build (a ledger row's ``gateway`` value works).
        use_mock: Force the mock variant on or off. Defaults to PAYMENT_USE_MOCK.
        **kwargs: Passed to the gateway constructor (e.g. http_client, store).

    Returns:
        An instance implementing the PaymentGateway protocol.

    Raises:
        ValueError: If the provider is not supported.

    Example:
        gateway = get_gateway(GatewayProvider.RAZORPAY)
        order = gateway.create_order(Decimal("265.00"), "INR", "order_1_1700000000", {})
    """
    try:
        provider = GatewayProvider(provider)
    except ValueError:
        supported = ", ".join(p.value for p in GatewayProvider)
        raise ValueError(
            f"Unsupported payment gateway: {provider}. Supported: {supported}"
        ) from None

    if use_mock is None:
        use_mock = settings.PAYMENT_USE_MOCK

    if use_mock:
        kwargs.setdefault("store", mock_store(settings.MOCK_GATEWAY_TTL_SECONDS))
        if provider == GatewayProvider.RAZORPAY:
            return MockRazorpayGateway(**kwargs)
        return MockUPIGateway(**kwargs)

    if provider == GatewayProvider.RAZORPAY:
        return RazorpayGateway(
            key_id=settings.RAZORPAY_KEY_ID,
            key_secret=settings.RAZORPAY_KEY_SECRET,
            **kwargs,
        )
    return UPIGatewayGateway(
        merchant_key=settings.UPIGATEWAY_MERCHANT_KEY,
        redirect_url=settings.UPIGATEWAY_REDIRECT_URL,
        **kwargs,
    )


def get_gateway_for_settings(**kwargs: Any) -> PaymentGateway:
    """Gateway configured by PAYMENT_GATEWAY, used for new payments."""
    return get_gateway(settings.PAYMENT_GATEWAY, **kwargs)


__all__ = [
    "MockPaymentGateway",
    "MockRazorpayGateway",
    "MockUPIGateway",
    "PaymentGateway",
    "RazorpayGateway",
    "TTLStore",
    "UPIGatewayGateway",
    "get_gateway_for_settings",
    "get_gateway",
    "mock_store",
]
