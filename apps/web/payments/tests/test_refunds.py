"""Tests for refunds."""

from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from apps.web.core.exceptions import (
    GatewayUnavailable,
    ManualRefundRequired,
    NotFoundError,
    RefundNotAllowed,
    ValidationError,
)
from apps.web.notifications.models import Notification
from apps.web.payments.models import Gateway, Transaction, TransactionStatus
from apps.web.payments.refunds import process_refund
from apps.web.restaurant.models import OrderStatus, PaymentStatus

from .factories import TransactionFactory


def paid_row(**kwargs) -> Transaction:
    values = {
        "order__status": OrderStatus.CONFIRMED,
        "order__payment_status": PaymentStatus.COMPLETED,
        "status": TransactionStatus.CAPTURED,
        "gateway_payment_id": "pay_captured01",
        "payment_method": "upi",
    }
    values.update(kwargs)
    return TransactionFactory(**values)


@pytest.mark.django_db
class TestProcessRefund:
    def test_full_refund(self, admin_user, gateways) -> None:
        source = paid_row()

        row = process_refund(source.order.pk, reason="Restaurant closed", actor=admin_user, gateways=gateways)

        assert row.pk != source.pk
        assert row.status == TransactionStatus.REFUNDED
        assert row.refund_amount == Decimal("262.50")
        assert row.refund_reason == "Restaurant closed"
        assert row.gateway_refund_id.startswith("rfnd_mock_")
        assert row.gateway_payment_id == "pay_captured01"
        assert row.metadata["refunded_transaction_id"] == source.pk

        source.refresh_from_db()
        assert source.status == TransactionStatus.CAPTURED
        source.order.refresh_from_db()
        assert source.order.payment_status == PaymentStatus.REFUNDED
        assert source.order.status == OrderStatus.CONFIRMED

    def test_partial_refund_rounds_to_paise(self, admin_user, gateways) -> None:
        source = paid_row()

        row = process_refund(source.order.pk, amount=Decimal("50.005"), gateways=gateways)

        assert row.refund_amount == Decimal("50.01")

    def test_refund_notifies_customer_and_admins(self, admin_user, gateways) -> None:
        source = paid_row()

        process_refund(source.order.pk, amount=Decimal("100.00"), gateways=gateways)

        customer = Notification.objects.get(template="REFUND_PROCESSED")
        assert customer.user == source.order.user
        assert "₹100.00" in customer.message
        assert Notification.objects.get(template="REFUND_REQUESTED").user == admin_user

    def test_unknown_order(self, gateways) -> None:
        with pytest.raises(NotFoundError):
            process_refund(999999, gateways=gateways)

    def test_order_being_prepared(self, gateways) -> None:
        source = paid_row(order__status=OrderStatus.PREPARING)

        with pytest.raises(RefundNotAllowed):
            process_refund(source.order.pk, gateways=gateways)

    @pytest.mark.parametrize(
        "payment_status",
        [PaymentStatus.PENDING, PaymentStatus.PROCESSING, PaymentStatus.FAILED, PaymentStatus.REFUNDED],
    )
    def test_order_not_paid(self, gateways, payment_status) -> None:
        source = paid_row(order__payment_status=payment_status)

        with pytest.raises(RefundNotAllowed):
            process_refund(source.order.pk, gateways=gateways)

    def test_no_captured_row(self, gateways) -> None:
        source = paid_row(status=TransactionStatus.FAILED)

        with pytest.raises(RefundNotAllowed):
            process_refund(source.order.pk, gateways=gateways)

    @pytest.mark.parametrize("amount", ["0", "-5.00", "262.51"])
    def test_amount_out_of_range(self, gateways, amount) -> None:
        source = paid_row()
        resolver = MagicMock(side_effect=gateways)

        with pytest.raises(ValidationError):
            process_refund(source.order.pk, amount=Decimal(amount), gateways=resolver)

        resolver.assert_not_called()

    def test_upigateway_needs_manual_refund(self, gateways) -> None:
        source = paid_row(gateway=Gateway.UPIGATEWAY)

        with pytest.raises(ManualRefundRequired):
            process_refund(source.order.pk, gateways=gateways)

        assert Transaction.objects.count() == 1
        source.order.refresh_from_db()
        assert source.order.payment_status == PaymentStatus.COMPLETED

    def test_gateway_outage_writes_nothing(self, gateways, razorpay_mock) -> None:
        source = paid_row()
        razorpay_mock.set_unavailable()

        with pytest.raises(GatewayUnavailable):
            process_refund(source.order.pk, gateways=gateways)

        assert Transaction.objects.count() == 1
        assert not Notification.objects.exists()
