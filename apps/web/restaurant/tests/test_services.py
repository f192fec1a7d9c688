"""Tests for order services."""

from decimal import Decimal
from unittest.mock import patch

import pytest

from apps.web.core.exceptions import (
    NotFoundError,
    OfferInvalidError,
    PermissionDeniedError,
    TransitionError,
    ValidationError,
)
from apps.web.notifications.models import Notification
from apps.web.restaurant.models import (
    DiscountType,
    Order,
    OrderItem,
    OrderItemAddOn,
    OrderStatus,
)
from apps.web.restaurant.pricing import AddOnSelection, CartLine
from apps.web.restaurant.services import (
    cancel_order,
    create_order,
    get_order,
    update_order_status,
)

from .factories import (
    AddOnFactory,
    AddressFactory,
    CategoryFactory,
    ItemFactory,
    ItemSizeFactory,
    OfferFactory,
    OrderFactory,
    UserFactory,
)


@pytest.fixture
def thali_size(db):
    """₹150 thali in a 5% GST category."""
    category = CategoryFactory(name="Thalis", gst_rate=Decimal("5.00"))
    return ItemSizeFactory(item=ItemFactory(category=category, name="Veg Thali"), price=Decimal("150.00"))


@pytest.mark.django_db
class TestCreateOrder:
    def test_flat_offer_scenario(self, user, address, thali_size) -> None:
        OfferFactory(
            code="FLAT100",
            discount_type=DiscountType.FLAT,
            discount_value=Decimal("100.00"),
            min_order_value=Decimal("200.00"),
        )

        order = create_order(
            user,
            address_id=address.pk,
            lines=[CartLine(item_size_id=thali_size.pk, quantity=2)],
            offer_code="flat100",
            delivery_charge=Decimal("50.00"),
        )

        assert order.subtotal == Decimal("300.00")
        assert order.gst_amount == Decimal("15.00")
        assert order.discount_amount == Decimal("100.00")
        assert order.delivery_charge == Decimal("50.00")
        assert order.total_price == Decimal("265.00")
        assert order.total_price == order.expected_total
        assert order.status == OrderStatus.PENDING_PAYMENT
        assert order.offer.code == "FLAT100"

    def test_snapshots_lines_and_address(self, user, address, thali_size) -> None:
        raita = AddOnFactory(name="Raita", price=Decimal("30.00"))

        order = create_order(
            user,
            address_id=address.pk,
            lines=[CartLine(thali_size.pk, 2, add_ons=(AddOnSelection(raita.pk),))],
        )

        line = OrderItem.objects.get(order=order)
        assert line.item_name == "Veg Thali"
        assert line.category_name == "Thalis"
        assert line.base_price == Decimal("150.00")
        assert line.line_total == Decimal("360.00")
        add_on = OrderItemAddOn.objects.get(order_item=line)
        assert (add_on.name, add_on.price, add_on.quantity) == ("Raita", Decimal("30.00"), 1)
        assert order.address_snapshot == address.snapshot()

        # Later catalog edits leave the order alone
        thali_size.price = Decimal("999.00")
        thali_size.save()
        line.refresh_from_db()
        assert line.base_price == Decimal("150.00")

    def test_free_delivery_offer(self, user, address, thali_size) -> None:
        OfferFactory(code="FREEDEL", discount_type=DiscountType.FREE_DELIVERY, discount_value=None)

        order = create_order(
            user,
            address_id=address.pk,
            lines=[CartLine(thali_size.pk, 1)],
            offer_code="FREEDEL",
            delivery_charge=Decimal("40.00"),
        )

        assert order.delivery_charge == Decimal("0")
        assert order.discount_amount == Decimal("0")
        assert order.total_price == Decimal("157.50")

    def test_invalid_offer_leaves_nothing_behind(self, user, address, thali_size) -> None:
        OfferFactory(code="BIG", min_order_value=Decimal("1000.00"))

        with pytest.raises(OfferInvalidError) as exc_info:
            create_order(
                user,
                address_id=address.pk,
                lines=[CartLine(thali_size.pk, 1)],
                offer_code="BIG",
            )

        assert "₹1000.00" in exc_info.value.message
        assert Order.objects.count() == 0

    def test_unknown_item_rolls_back(self, user, address, thali_size) -> None:
        with pytest.raises(NotFoundError):
            create_order(
                user,
                address_id=address.pk,
                lines=[CartLine(thali_size.pk, 1), CartLine(987654, 1)],
            )

        assert Order.objects.count() == 0
        assert OrderItem.objects.count() == 0

    def test_failure_after_insert_rolls_back(self, user, address, thali_size) -> None:
        with (
            patch(
                "apps.web.restaurant.services.OrderItemAddOn.objects.bulk_create",
                side_effect=RuntimeError("disk full"),
            ),
            pytest.raises(RuntimeError),
        ):
            create_order(user, address_id=address.pk, lines=[CartLine(thali_size.pk, 1)])

        assert Order.objects.count() == 0

    def test_unavailable_item_rejected(self, user, address) -> None:
        size = ItemSizeFactory(is_available=False)

        with pytest.raises(NotFoundError):
            create_order(user, address_id=address.pk, lines=[CartLine(size.pk, 1)])

    def test_someone_elses_address(self, user, thali_size) -> None:
        other_address = AddressFactory()

        with pytest.raises(NotFoundError):
            create_order(user, address_id=other_address.pk, lines=[CartLine(thali_size.pk, 1)])

    def test_empty_cart(self, user, address) -> None:
        with pytest.raises(ValidationError):
            create_order(user, address_id=address.pk, lines=[])

    def test_order_created_notification_after_commit(
        self, user, address, thali_size, django_capture_on_commit_callbacks
    ) -> None:
        with django_capture_on_commit_callbacks(execute=True):
            order = create_order(user, address_id=address.pk, lines=[CartLine(thali_size.pk, 1)])

        notification = Notification.objects.get(user=user)
        assert notification.template == "ORDER_CREATED"
        assert notification.order == order


@pytest.mark.django_db
class TestGetOrder:
    def test_owner_and_admin_can_see(self, user, admin_user) -> None:
        order = OrderFactory(user=user)

        assert get_order(order.pk, user) == order
        assert get_order(order.pk, admin_user) == order

    def test_other_customer_gets_not_found(self) -> None:
        order = OrderFactory()

        with pytest.raises(NotFoundError):
            get_order(order.pk, UserFactory())


@pytest.mark.django_db
class TestUpdateOrderStatus:
    def test_allowed_transition_notifies_customer(self, admin_user) -> None:
        order = OrderFactory(status=OrderStatus.PENDING)

        updated = update_order_status(order.pk, OrderStatus.CONFIRMED, admin_user)

        assert updated.status == OrderStatus.CONFIRMED
        assert Notification.objects.filter(user=order.user, template="ORDER_CONFIRMED").exists()

    def test_completion_stamps_delivered_at(self, admin_user) -> None:
        order = OrderFactory(status=OrderStatus.READY)

        updated = update_order_status(order.pk, OrderStatus.COMPLETED, admin_user)

        assert updated.delivered_at is not None

    def test_rejected_transition_leaves_status(self, admin_user) -> None:
        order = OrderFactory(status=OrderStatus.PENDING)

        with pytest.raises(TransitionError):
            update_order_status(order.pk, OrderStatus.READY, admin_user)

        order.refresh_from_db()
        assert order.status == OrderStatus.PENDING
        assert not Notification.objects.exists()

    def test_unpaid_order_cannot_be_marked_pending(self, admin_user) -> None:
        order = OrderFactory(status=OrderStatus.PENDING_PAYMENT)

        with pytest.raises(TransitionError):
            update_order_status(order.pk, OrderStatus.PENDING, admin_user)

    def test_cancel_via_status_update(self, admin_user) -> None:
        order = OrderFactory(status=OrderStatus.PREPARING)

        updated = update_order_status(order.pk, OrderStatus.CANCELLED, admin_user)

        assert updated.status == OrderStatus.CANCELLED
        assert updated.cancelled_at is not None


@pytest.mark.django_db
class TestCancelOrder:
    def test_customer_cancels_unpaid_order(self, user, admin_user) -> None:
        order = OrderFactory(user=user)

        cancelled = cancel_order(order.pk, user, reason="Changed my mind")

        assert cancelled.status == OrderStatus.CANCELLED
        assert cancelled.cancellation_reason == "Changed my mind"
        templates = set(Notification.objects.values_list("template", flat=True))
        assert templates == {"ORDER_CANCELLED", "ORDER_CANCELLED_ADMIN"}

    def test_customer_cannot_cancel_confirmed_order(self, user) -> None:
        order = OrderFactory(user=user, status=OrderStatus.CONFIRMED)

        with pytest.raises(PermissionDeniedError):
            cancel_order(order.pk, user)

    def test_admin_cancels_confirmed_order(self, admin_user) -> None:
        order = OrderFactory(status=OrderStatus.CONFIRMED)

        assert cancel_order(order.pk, admin_user).status == OrderStatus.CANCELLED

    def test_completed_order_cannot_be_cancelled(self, admin_user) -> None:
        order = OrderFactory(status=OrderStatus.COMPLETED)

        with pytest.raises(TransitionError):
            cancel_order(order.pk, admin_user)
