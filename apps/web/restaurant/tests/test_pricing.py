"""Tests for cart pricing."""

from decimal import Decimal

import pytest

from apps.web.core.exceptions import NotFoundError, ValidationError
from apps.web.restaurant.pricing import (
    AddOnSelection,
    CartLine,
    CatalogAddOn,
    CatalogEntry,
    compute_total,
    price_cart,
)


class FakeCatalog:
    """In-memory catalog keyed by id."""

    def __init__(self, entries=(), add_ons=()):
        self.entries = {e.item_size_id: e for e in entries}
        self.add_ons = {a.add_on_id: a for a in add_ons}

    def item_size(self, item_size_id):
        return self.entries.get(item_size_id)

    def add_on(self, add_on_id):
        return self.add_ons.get(add_on_id)


def entry(item_size_id, price, category_id=1, rate="5.00", item_id=None):
    return CatalogEntry(
        item_size_id=item_size_id,
        item_id=item_id or item_size_id,
        item_name=f"Dish {item_size_id}",
        size_label="Full",
        base_price=Decimal(price),
        category_id=category_id,
        category_name=f"Category {category_id}",
        gst_rate=Decimal(rate),
    )


class TestPriceCart:
    def test_two_units_with_category_gst(self) -> None:
        catalog = FakeCatalog([entry(1, "150.00")])

        breakdown = price_cart([CartLine(item_size_id=1, quantity=2)], catalog)

        assert breakdown.subtotal == Decimal("300.00")
        assert breakdown.gst_amount == Decimal("15.00")

    def test_add_ons_multiply_with_quantity(self) -> None:
        catalog = FakeCatalog(
            [entry(1, "100.00")],
            [CatalogAddOn(add_on_id=7, name="Extra cheese", price=Decimal("20.00"))],
        )

        breakdown = price_cart(
            [CartLine(item_size_id=1, quantity=3, add_ons=(AddOnSelection(7, 2),))],
            catalog,
        )

        # (100 * 3) + (20 * 2) * 3
        assert breakdown.lines[0].line_total == Decimal("420.00")
        assert breakdown.subtotal == Decimal("420.00")

    def test_gst_is_rounded_per_category_total(self) -> None:
        catalog = FakeCatalog(
            [entry(1, "10.10"), entry(2, "10.10"), entry(3, "99.99", category_id=2, rate="12.00")]
        )

        breakdown = price_cart(
            [CartLine(1, 1), CartLine(2, 1), CartLine(3, 1)],
            catalog,
        )

        # Category 1: 20.20 * 5% = 1.01; category 2: 99.99 * 12% = 11.9988 -> 12.00
        assert [t.gst for t in breakdown.taxes] == [Decimal("1.01"), Decimal("12.00")]
        assert breakdown.gst_amount == Decimal("13.01")

    def test_half_up_rounding(self) -> None:
        catalog = FakeCatalog([entry(1, "0.50", rate="5.00")])

        breakdown = price_cart([CartLine(1, 1)], catalog)

        # 0.025 rounds up
        assert breakdown.gst_amount == Decimal("0.03")

    def test_category_and_item_ids(self) -> None:
        catalog = FakeCatalog([entry(1, "50", category_id=4, item_id=40), entry(2, "50", category_id=5, item_id=50)])

        breakdown = price_cart([CartLine(1, 1), CartLine(2, 1)], catalog)

        assert breakdown.category_ids == {4, 5}
        assert breakdown.item_ids == {40, 50}

    def test_empty_cart_rejected(self) -> None:
        with pytest.raises(ValidationError):
            price_cart([], FakeCatalog())

    def test_zero_quantity_rejected(self) -> None:
        with pytest.raises(ValidationError):
            price_cart([CartLine(1, 0)], FakeCatalog([entry(1, "10")]))

    def test_unknown_item_size(self) -> None:
        with pytest.raises(NotFoundError) as exc_info:
            price_cart([CartLine(99, 1)], FakeCatalog())

        assert exc_info.value.details["item_size_id"] == 99

    def test_unknown_add_on(self) -> None:
        with pytest.raises(NotFoundError):
            price_cart(
                [CartLine(1, 1, add_ons=(AddOnSelection(5),))],
                FakeCatalog([entry(1, "10")]),
            )


class TestComputeTotal:
    def test_total_formula(self) -> None:
        total = compute_total(
            Decimal("300.00"), Decimal("15.00"), Decimal("50.00"), Decimal("100.00")
        )

        assert total == Decimal("265.00")

    def test_total_clamped_at_zero(self) -> None:
        assert compute_total(Decimal("50"), Decimal("0"), Decimal("0"), Decimal("80")) == Decimal("0")

    @pytest.mark.parametrize(
        ("subtotal", "gst", "delivery", "discount"),
        [
            ("0.10", "0.01", "0", "0"),
            ("999.99", "49.99", "40.00", "100.00"),
            ("120.00", "6.00", "0", "126.00"),
        ],
    )
    def test_total_matches_components(self, subtotal, gst, delivery, discount) -> None:
        values = [Decimal(v) for v in (subtotal, gst, delivery, discount)]

        total = compute_total(*values)

        assert total == max(values[0] + values[1] + values[2] - values[3], Decimal("0"))
        assert total >= 0
