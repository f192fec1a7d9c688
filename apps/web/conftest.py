"""
Pytest configuration for Django app tests.
"""

import pytest
from django.test import Client as DjangoClient

from apps.web.core.models import Address, User
from apps.web.payments.gateways import MockRazorpayGateway, MockUPIGateway, TTLStore, mock_store
from apps.web.restaurant.tests.factories import AddressFactory, AdminFactory, UserFactory


@pytest.fixture
def user(db) -> User:
    """A signed-up customer."""
    return UserFactory(username="testuser")


@pytest.fixture
def admin_user(db) -> User:
    """A restaurant admin."""
    return AdminFactory(username="kitchen")


@pytest.fixture
def address(user: User) -> Address:
    return AddressFactory(user=user)


@pytest.fixture
def api_client() -> DjangoClient:
    """Django test client for API requests."""
    return DjangoClient()


@pytest.fixture
def customer_client(api_client: DjangoClient, user: User) -> DjangoClient:
    api_client.force_login(user)
    return api_client


@pytest.fixture(autouse=True)
def fresh_mock_store():
    """Sandbox gateway state never leaks between tests."""
    mock_store.cache_clear()
    yield
    mock_store.cache_clear()

@pytest.fixture
def razorpay_mock() -> MockRazorpayGateway:
    """Mock Razorpay gateway with its own short-lived store."""
    return MockRazorpayGateway(store=TTLStore(ttl_seconds=60))


@pytest.fixture
def upi_mock() -> MockUPIGateway:
    return MockUPIGateway(store=TTLStore(ttl_seconds=60))


@pytest.fixture
def gateways(razorpay_mock: MockRazorpayGateway, upi_mock: MockUPIGateway):
    """Resolver from a ledger row's gateway name to the mock instances above."""
    by_name = {"razorpay": razorpay_mock, "upigateway": upi_mock}
    return by_name.__getitem__
