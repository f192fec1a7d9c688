"""
Integration tests for order and offer API views.
"""

from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from apps.web.restaurant.models import DiscountType, Order, OrderStatus
from apps.web.restaurant.tests.factories import (
    CategoryFactory,
    ItemFactory,
    ItemSizeFactory,
    OfferFactory,
    OrderFactory,
    OrderItemFactory,
)


@pytest.fixture
def menu(db):
    """One ₹150 thali in a 5% GST category."""
    category = CategoryFactory(name="Thalis", gst_rate=Decimal("5.00"))
    item = ItemFactory(category=category, name="Veg Thali")
    return {"category": category, "item": item, "size": ItemSizeFactory(item=item, price=Decimal("150.00"))}


@pytest.mark.django_db
class TestCreateOrder:
    def test_requires_login(self, api_client) -> None:
        response = api_client.post("/orders", data={}, content_type="application/json")

        assert response.status_code == 401
        assert response.json()["error"] == "authentication_required"

    def test_create_order(self, customer_client, address, menu) -> None:
        OfferFactory(
            code="FLAT100",
            discount_type=DiscountType.FLAT,
            discount_value=Decimal("100.00"),
            min_order_value=Decimal("200.00"),
        )

        response = customer_client.post(
            "/orders",
            data={
                "address_id": address.pk,
                "items": [{"item_size_id": menu["size"].pk, "quantity": 2}],
                "offer_code": "FLAT100",
            },
            content_type="application/json",
        )

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "pending_payment"
        assert data["subtotal"] == "300.00"
        assert data["gst_amount"] == "15.00"
        assert data["discount_amount"] == "100.00"
        assert data["total_price"] == "215.00"
        assert data["items"][0]["item_name"] == "Veg Thali"
        assert data["items"][0]["quantity"] == 2

    def test_invalid_body(self, customer_client) -> None:
        response = customer_client.post(
            "/orders",
            data={"address_id": 1, "items": []},
            content_type="application/json",
        )

        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "validation_error"
        assert "items" in data["details"]

    def test_invalid_json(self, customer_client) -> None:
        response = customer_client.post("/orders", data="{nope", content_type="application/json")

        assert response.status_code == 400

    def test_rejected_offer(self, customer_client, address, menu) -> None:
        OfferFactory(code="OLD", is_active=False)

        response = customer_client.post(
            "/orders",
            data={
                "address_id": address.pk,
                "items": [{"item_size_id": menu["size"].pk, "quantity": 1}],
                "offer_code": "OLD",
            },
            content_type="application/json",
        )

        assert response.status_code == 400
        assert response.json() == {
            "error": "offer_invalid",
            "message": "This offer is no longer active",
            "details": {"code": "OLD"},
        }
        assert not Order.objects.exists()

    def test_unknown_item(self, customer_client, address) -> None:
        response = customer_client.post(
            "/orders",
            data={"address_id": address.pk, "items": [{"item_size_id": 424242, "quantity": 1}]},
            content_type="application/json",
        )

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"


@pytest.mark.django_db
class TestListAndDetail:
    def test_list_own_orders(self, customer_client, user) -> None:
        mine = OrderFactory(user=user)
        OrderFactory()

        response = customer_client.get("/orders")

        assert response.status_code == 200
        assert [o["order_id"] for o in response.json()["orders"]] == [mine.pk]

    def test_detail(self, customer_client, user) -> None:
        line = OrderItemFactory(order=OrderFactory(user=user))

        response = customer_client.get(f"/orders/{line.order.pk}")

        assert response.status_code == 200
        assert response.json()["items"][0]["id"] == line.pk

    def test_detail_of_other_customer_is_404(self, customer_client) -> None:
        order = OrderFactory()

        response = customer_client.get(f"/orders/{order.pk}")

        assert response.status_code == 404


@pytest.mark.django_db
class TestOrderStatus:
    def test_customer_forbidden(self, customer_client, user) -> None:
        order = OrderFactory(user=user, status=OrderStatus.PENDING)

        response = customer_client.post(
            f"/orders/{order.pk}/status",
            data={"status": "confirmed"},
            content_type="application/json",
        )

        assert response.status_code == 403

    def test_admin_confirms(self, admin_client) -> None:
        order = OrderFactory(status=OrderStatus.PENDING)

        response = admin_client.post(
            f"/orders/{order.pk}/status",
            data={"status": "confirmed"},
            content_type="application/json",
        )

        assert response.status_code == 200
        assert response.json()["status"] == "confirmed"

    def test_invalid_transition(self, admin_client) -> None:
        order = OrderFactory(status=OrderStatus.PENDING)

        response = admin_client.post(
            f"/orders/{order.pk}/status",
            data={"status": "completed"},
            content_type="application/json",
        )

        assert response.status_code == 400
        assert response.json()["error"] == "invalid_transition"
        order.refresh_from_db()
        assert order.status == OrderStatus.PENDING

    def test_unknown_status_value(self, admin_client) -> None:
        order = OrderFactory(status=OrderStatus.PENDING)

        response = admin_client.post(
            f"/orders/{order.pk}/status",
            data={"status": "teleported"},
            content_type="application/json",
        )

        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"


@pytest.mark.django_db
class TestCancel:
    def test_customer_cancels(self, customer_client, user) -> None:
        order = OrderFactory(user=user)

        response = customer_client.post(
            f"/orders/{order.pk}/cancel",
            data={"reason": "Ordered twice"},
            content_type="application/json",
        )

        assert response.status_code == 200
        assert response.json()["cancellation_reason"] == "Ordered twice"

    def test_customer_too_late(self, customer_client, user) -> None:
        order = OrderFactory(user=user, status=OrderStatus.PREPARING)

        response = customer_client.post(
            f"/orders/{order.pk}/cancel", data={}, content_type="application/json"
        )

        assert response.status_code == 403
        assert response.json()["error"] == "permission_denied"


@pytest.mark.django_db
class TestOfferValidate:
    def test_valid_offer(self, customer_client, menu) -> None:
        OfferFactory(code="TEN", discount_type=DiscountType.PERCENTAGE, discount_value=Decimal("10"))

        response = customer_client.post(
            "/offers/validate",
            data={"code": "ten", "items": [{"item_size_id": menu["size"].pk, "quantity": 2}]},
            content_type="application/json",
        )

        assert response.status_code == 200
        assert response.json() == {
            "valid": True,
            "message": "10.00% off applied",
            "subtotal": "300.00",
            "discount_amount": "30.00",
            "free_delivery": False,
        }

    def test_rejection_is_not_an_error(self, customer_client, menu) -> None:
        response = customer_client.post(
            "/offers/validate",
            data={"code": "NOPE", "items": [{"item_size_id": menu["size"].pk, "quantity": 1}]},
            content_type="application/json",
        )

        assert response.status_code == 200
        assert response.json()["valid"] is False
        assert response.json()["message"] == "Invalid offer code"


@pytest.mark.django_db
class TestOfferBrowse:
    def test_customers_see_redeemable_offers(self, customer_client) -> None:
        now = timezone.now()
        current = OfferFactory(code="LUNCH", valid_to=now + timedelta(days=1))
        OfferFactory(code="OFF", is_active=False)
        OfferFactory(code="LATER", valid_from=now + timedelta(days=1))
        OfferFactory(code="GONE", valid_to=now - timedelta(days=1))

        response = customer_client.get("/offers")

        assert response.status_code == 200
        assert [o["code"] for o in response.json()["offers"]] == [current.code]

    def test_admin_filters(self, admin_client) -> None:
        OfferFactory(code="LUNCH")
        OfferFactory(code="OFF", is_active=False)
        OfferFactory(code="SHIPFREE", discount_type=DiscountType.FREE_DELIVERY, discount_value=None)

        inactive = admin_client.get("/offers?is_active=false").json()["offers"]
        free = admin_client.get("/offers?discount_type=free_delivery").json()["offers"]

        assert [o["code"] for o in inactive] == ["OFF"]
        assert [o["code"] for o in free] == ["SHIPFREE"]

    def test_bad_filter(self, admin_client) -> None:
        response = admin_client.get("/offers?discount_type=bogo")

        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    def test_by_code(self, customer_client, menu) -> None:
        OfferFactory(code="THALI20", category=menu["category"], min_order_value=Decimal("200"))

        response = customer_client.get("/offers/code/thali20")

        assert response.status_code == 200
        offer = response.json()["offer"]
        assert offer["code"] == "THALI20"
        assert offer["category_name"] == "Thalis"
        assert offer["min_order_value"] == "200.00"

    def test_by_code_hides_inactive_from_customers(self, customer_client, admin_client) -> None:
        OfferFactory(code="OFF", is_active=False)

        assert customer_client.get("/offers/code/OFF").status_code == 404
        assert admin_client.get("/offers/code/OFF").status_code == 200

    def test_requires_login(self, api_client) -> None:
        assert api_client.get("/offers").status_code == 401


@pytest.mark.django_db
class TestOfferUsageHistory:
    def test_lists_orders_placed_with_offers(self, customer_client, user) -> None:
        offer = OfferFactory(code="TEN")
        used = OrderFactory(user=user, offer=offer, discount_amount=Decimal("25.00"))
        OrderFactory(user=user)
        OrderFactory(offer=offer)

        response = customer_client.get("/offers/usage/history")

        assert response.status_code == 200
        data = response.json()
        [row] = data["orders"]
        assert row["order_id"] == used.pk
        assert row["offer_code"] == "TEN"
        assert row["discount_amount"] == "25.00"
        assert data["order_count"] == 2
        assert data["offer_uses"] is None

    def test_counts_uses_of_one_offer(self, customer_client, user) -> None:
        offer = OfferFactory()
        OrderFactory(user=user, offer=offer)
        OrderFactory(user=user, offer=offer, status=OrderStatus.CANCELLED)
        OrderFactory(user=user, offer=OfferFactory())

        response = customer_client.get(f"/offers/usage/history?offer_id={offer.pk}")

        data = response.json()
        assert len(data["orders"]) == 2
        # Cancelled orders are listed but do not count as a use
        assert data["offer_uses"] == 1
