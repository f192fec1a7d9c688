"""Tests for notification templates, the notification service, and the inbox API."""

from decimal import Decimal
from unittest.mock import patch

import pytest

from apps.web.notifications.models import Notification
from apps.web.notifications.services import create_notification, mark_read, notify_many
from apps.web.notifications.templates import TEMPLATES, Audience, TemplateName, get_template
from apps.web.restaurant.tests.factories import AdminFactory, OrderFactory, UserFactory


class TestTemplates:
    def test_every_name_has_a_template(self) -> None:
        assert set(TEMPLATES) == set(TemplateName)

    def test_admin_audience(self) -> None:
        admin_templates = {name for name, t in TEMPLATES.items() if t.audience == Audience.ADMIN}

        assert admin_templates == {
            TemplateName.NEW_ORDER,
            TemplateName.PAYMENT_RECEIVED,
            TemplateName.ORDER_CANCELLED_ADMIN,
            TemplateName.REFUND_REQUESTED,
        }

    def test_unknown_template(self) -> None:
        with pytest.raises(ValueError):
            get_template("ORDER_TELEPORTED")

    def test_payment_failed_uses_error_description(self) -> None:
        render = get_template("PAYMENT_FAILED").render

        assert render({"order_id": 7, "error_description": "Card declined"}).endswith("Card declined")
        assert "try again" in render({"order_id": 7})

    def test_cancellation_mentions_refund_only_when_given(self) -> None:
        render = get_template("ORDER_CANCELLED").render

        assert render({"order_id": 7}) == "Your order #7 has been cancelled."
        assert "₹262.50" in render({"order_id": 7, "refund_amount": Decimal("262.50")})


@pytest.mark.django_db
class TestCreateNotification:
    def test_customer_notification(self) -> None:
        order = OrderFactory()

        [notification] = create_notification(
            "ORDER_CREATED",
            {"order_id": order.pk, "user_id": order.user_id, "total_price": order.total_price},
        )

        assert notification.user == order.user
        assert notification.order == order
        assert notification.title == "Order Being Processed"
        assert "₹262.50" in notification.message
        assert notification.data["total_price"] == "262.50"

    def test_admin_notification_fans_out(self) -> None:
        admins = {AdminFactory(), AdminFactory()}
        AdminFactory(is_active=False)
        staff = UserFactory(is_staff=True)
        UserFactory()
        order = OrderFactory()

        created = create_notification(
            "NEW_ORDER", {"order_id": order.pk, "total_price": order.total_price}
        )

        assert {n.user for n in created} == admins | {staff}

    def test_no_recipients(self) -> None:
        assert create_notification("ORDER_CREATED", {"order_id": None, "total_price": 1}) == []

    def test_unknown_template_is_swallowed(self) -> None:
        assert create_notification("NOT_A_TEMPLATE", {"user_id": UserFactory().pk}) == []

    def test_render_failure_is_swallowed(self) -> None:
        user = UserFactory()

        # ORDER_CREATED needs total_price
        assert create_notification("ORDER_CREATED", {"order_id": 1, "user_id": user.pk}) == []
        assert not Notification.objects.exists()

    def test_database_failure_is_swallowed(self) -> None:
        user = UserFactory()

        with patch(
            "apps.web.notifications.services.Notification.objects.create",
            side_effect=RuntimeError("db gone"),
        ):
            result = create_notification(
                "ORDER_READY", {"order_id": None, "user_id": user.pk}
            )

        assert result == []

    def test_notify_many_counts_rows(self) -> None:
        AdminFactory()
        order = OrderFactory()
        data = {
            "order_id": order.pk,
            "user_id": order.user_id,
            "total_price": order.total_price,
            "amount": order.total_price,
        }

        stored = notify_many(
            (TemplateName.PAYMENT_COMPLETED, data),
            (TemplateName.NEW_ORDER, data),
            ("BROKEN", data),
        )

        assert stored == 2


@pytest.mark.django_db
class TestMarkRead:
    def test_marks_once(self) -> None:
        notification = Notification.objects.create(
            user=UserFactory(), template="ORDER_READY", title="Order Ready", message="Ready"
        )

        mark_read(notification)
        first_read_at = notification.read_at
        mark_read(notification)

        notification.refresh_from_db()
        assert notification.is_read is True
        assert notification.read_at == first_read_at


@pytest.mark.django_db
class TestInboxViews:
    def _notify(self, user, template="ORDER_READY") -> Notification:
        return Notification.objects.create(user=user, template=template, title="t", message="m")

    def test_list_own_notifications(self, customer_client, user) -> None:
        mine = self._notify(user)
        self._notify(UserFactory())

        response = customer_client.get("/notifications/")

        assert response.status_code == 200
        data = response.json()
        assert [n["id"] for n in data["notifications"]] == [mine.pk]
        assert data["unread"] == 1

    def test_mark_read(self, customer_client, user) -> None:
        notification = self._notify(user)

        response = customer_client.post(f"/notifications/{notification.pk}/read")

        assert response.status_code == 200
        assert response.json()["is_read"] is True

    def test_cannot_read_someone_elses(self, customer_client) -> None:
        notification = self._notify(UserFactory())

        response = customer_client.post(f"/notifications/{notification.pk}/read")

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    def test_requires_login(self, api_client) -> None:
        assert api_client.get("/notifications/").status_code == 401
