"""Tests for offer validation."""

from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest

from apps.web.restaurant.models import DiscountType, OrderStatus
from apps.web.restaurant.offers import (
    OfferRules,
    UsageHistory,
    evaluate_offer,
    usage_history,
    validate_offer_code,
)

from .factories import CategoryFactory, OfferFactory, OrderFactory, UserFactory

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


def rules(**overrides) -> OfferRules:
    values = {
        "code": "FLAT100",
        "discount_type": DiscountType.FLAT,
        "discount_value": Decimal("100.00"),
        "offer_id": 1,
    }
    values.update(overrides)
    return OfferRules(**values)


def evaluate(offer, subtotal="300.00", category_ids=(1,), item_ids=(1,), history=None):
    return evaluate_offer(
        offer,
        subtotal=Decimal(subtotal),
        category_ids=set(category_ids),
        item_ids=set(item_ids),
        now=NOW,
        history=history or UsageHistory(),
    )


class TestEvaluateOffer:
    def test_unknown_code(self) -> None:
        verdict = evaluate(None)

        assert verdict.valid is False
        assert verdict.message == "Invalid offer code"

    def test_inactive(self) -> None:
        assert evaluate(rules(is_active=False)).message == "This offer is no longer active"

    def test_not_yet_valid(self) -> None:
        verdict = evaluate(rules(valid_from=NOW + timedelta(days=1)))

        assert verdict.message == "This offer is not yet valid"

    def test_expired(self) -> None:
        verdict = evaluate(rules(valid_to=NOW - timedelta(seconds=1)))

        assert verdict.message == "This offer has expired"

    def test_min_order_value(self) -> None:
        verdict = evaluate(rules(min_order_value=Decimal("500.00")))

        assert verdict.valid is False
        assert "₹500.00" in verdict.message

    def test_category_scope(self) -> None:
        offer = rules(category_id=9, category_name="Desserts")

        assert evaluate(offer, category_ids=(1,)).message == (
            "This offer is only valid on items from Desserts"
        )
        assert evaluate(offer, category_ids=(1, 9)).valid is True

    def test_item_scope(self) -> None:
        offer = rules(item_id=5, item_name="Gulab Jamun")

        assert evaluate(offer, item_ids=(1,)).valid is False
        assert evaluate(offer, item_ids=(5,)).valid is True

    def test_max_uses_per_user(self) -> None:
        offer = rules(max_uses_per_user=2)

        assert evaluate(offer, history=UsageHistory(order_count=3, offer_uses=1)).valid is True
        assert evaluate(offer, history=UsageHistory(order_count=3, offer_uses=2)).valid is False

    def test_checks_stop_at_first_failure(self) -> None:
        offer = rules(is_active=False, min_order_value=Decimal("1000"))

        assert evaluate(offer).message == "This offer is no longer active"

    def test_flat_discount(self) -> None:
        verdict = evaluate(rules())

        assert verdict.valid is True
        assert verdict.discount_amount == Decimal("100.00")
        assert verdict.offer_id == 1

    def test_flat_discount_capped_at_subtotal(self) -> None:
        assert evaluate(rules(), subtotal="60.00").discount_amount == Decimal("60.00")

    def test_percentage_discount_with_cap(self) -> None:
        offer = rules(
            discount_type=DiscountType.PERCENTAGE,
            discount_value=Decimal("20"),
            max_discount_amount=Decimal("50.00"),
        )

        assert evaluate(offer, subtotal="200.00").discount_amount == Decimal("40.00")
        assert evaluate(offer, subtotal="400.00").discount_amount == Decimal("50.00")

    def test_percentage_discount_rounds_half_up(self) -> None:
        offer = rules(discount_type=DiscountType.PERCENTAGE, discount_value=Decimal("15"))

        # 15% of 10.10 = 1.515
        assert evaluate(offer, subtotal="10.10").discount_amount == Decimal("1.52")

    def test_free_delivery(self) -> None:
        verdict = evaluate(rules(discount_type=DiscountType.FREE_DELIVERY, discount_value=None))

        assert verdict.valid is True
        assert verdict.free_delivery is True
        assert verdict.discount_amount == Decimal("0")

    def test_identical_inputs_give_identical_verdicts(self) -> None:
        offer = rules(
            discount_type=DiscountType.PERCENTAGE,
            discount_value=Decimal("12.5"),
            max_uses_per_user=3,
        )
        history = UsageHistory(order_count=4, offer_uses=1)

        verdicts = {evaluate(offer, subtotal="333.33", history=history) for _ in range(5)}

        assert len(verdicts) == 1


@pytest.mark.django_db
class TestFirstOrderOnly:
    def test_accepted_with_no_prior_orders(self) -> None:
        OfferFactory(code="FIRST", first_order_only=True)

        verdict = validate_offer_code(
            "first", UserFactory(), subtotal=Decimal("300"), category_ids=set(), item_ids=set()
        )

        assert verdict.valid is True

    def test_rejected_after_prior_order(self) -> None:
        OfferFactory(code="FIRST", first_order_only=True)
        user = UserFactory()
        OrderFactory(user=user, status=OrderStatus.COMPLETED)

        verdict = validate_offer_code(
            "FIRST", user, subtotal=Decimal("300"), category_ids=set(), item_ids=set()
        )

        assert verdict.valid is False
        assert verdict.message == "This offer is only valid on your first order"

    def test_cancelled_orders_do_not_count(self) -> None:
        OfferFactory(code="FIRST", first_order_only=True)
        user = UserFactory()
        OrderFactory(user=user, status=OrderStatus.CANCELLED)

        verdict = validate_offer_code(
            "FIRST", user, subtotal=Decimal("300"), category_ids=set(), item_ids=set()
        )

        assert verdict.valid is True


@pytest.mark.django_db
class TestUsageHistory:
    def test_counts_offer_uses(self) -> None:
        offer = OfferFactory()
        user = UserFactory()
        OrderFactory(user=user, offer=offer)
        OrderFactory(user=user, offer=offer, status=OrderStatus.CANCELLED)
        OrderFactory(user=user)

        history = usage_history(user, offer.pk)

        assert history == UsageHistory(order_count=2, offer_uses=1)

    def test_category_scope_loaded_from_model(self) -> None:
        category = CategoryFactory(name="Thalis")
        OfferFactory(code="THALI", category=category)

        verdict = validate_offer_code(
            "THALI", UserFactory(), subtotal=Decimal("300"), category_ids={0}, item_ids=set()
        )

        assert verdict.message == "This offer is only valid on items from Thalis"
