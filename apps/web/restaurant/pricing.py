"""
Cart pricing.

price_cart() turns cart lines into priced lines, a subtotal and GST. Tax is
computed per category on the category's summed total, never per line, and
rounded half-up to two places at that aggregation point only.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Protocol

from apps.web.core.exceptions import NotFoundError, ValidationError

TWO_PLACES = Decimal("0.01")
ZERO = Decimal("0.00")


def round2(value: Decimal) -> Decimal:
    """Round half-up to two decimal places."""
    return value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


# =============================================================================
# Inputs
# =============================================================================


@dataclass(frozen=True)
class AddOnSelection:
    add_on_id: int
    quantity: int = 1


@dataclass(frozen=True)
class CartLine:
    item_size_id: int
    quantity: int
    add_ons: tuple[AddOnSelection, ...] = ()


@dataclass(frozen=True)
class CatalogEntry:
    """Catalog values for one orderable item size."""

    item_size_id: int
    item_id: int
    item_name: str
    size_label: str
    base_price: Decimal
    category_id: int
    category_name: str
    gst_rate: Decimal


@dataclass(frozen=True)
class CatalogAddOn:
    add_on_id: int
    name: str
    price: Decimal


class Catalog(Protocol):
    """Read-only catalog lookup. Returns None for unknown or unavailable rows."""

    def item_size(self, item_size_id: int) -> CatalogEntry | None: ...

    def add_on(self, add_on_id: int) -> CatalogAddOn | None: ...


# =============================================================================
# Outputs
# =============================================================================


@dataclass(frozen=True)
class PricedAddOn:
    add_on: CatalogAddOn
    quantity: int

    @property
    def total(self) -> Decimal:
        return self.add_on.price * self.quantity


@dataclass(frozen=True)
class PricedLine:
    entry: CatalogEntry
    quantity: int
    add_ons: tuple[PricedAddOn, ...]

    @property
    def line_total(self) -> Decimal:
        add_on_total = sum((a.total for a in self.add_ons), ZERO)
        return self.entry.base_price * self.quantity + add_on_total * self.quantity


@dataclass(frozen=True)
class CategoryTax:
    category_id: int
    category_name: str
    subtotal: Decimal
    rate: Decimal
    gst: Decimal


@dataclass(frozen=True)
class PriceBreakdown:
    lines: tuple[PricedLine, ...]
    subtotal: Decimal
    gst_amount: Decimal
    taxes: tuple[CategoryTax, ...] = field(default_factory=tuple)

    @property
    def category_ids(self) -> set[int]:
        return {line.entry.category_id for line in self.lines}

    @property
    def item_ids(self) -> set[int]:
        return {line.entry.item_id for line in self.lines}


# =============================================================================
# Pricing
# =============================================================================


def price_cart(lines: Iterable[CartLine], catalog: Catalog) -> PriceBreakdown:
    """
    Price a cart.

    Args:
        lines: Cart lines as submitted by the customer.
        catalog: Catalog used to resolve sizes, add-ons, and GST rates.

    Returns:
        PriceBreakdown with priced lines, subtotal, and per-category GST.

    Raises:
        ValidationError: If the cart is empty or a quantity is below 1.
        NotFoundError: If an item size or add-on cannot be resolved.
    """
    priced: list[PricedLine] = []
    for index, line in enumerate(lines):
        if line.quantity < 1:
            raise ValidationError(
                "Quantity must be at least 1", line=index, quantity=line.quantity
            )

        entry = catalog.item_size(line.item_size_id)
        if entry is None:
            raise NotFoundError(
                f"Item size {line.item_size_id} not found",
                item_size_id=line.item_size_id,
            )

        add_ons: list[PricedAddOn] = []
        for selection in line.add_ons:
            if selection.quantity < 1:
                raise ValidationError(
                    "Add-on quantity must be at least 1",
                    line=index,
                    add_on_id=selection.add_on_id,
                )
            add_on = catalog.add_on(selection.add_on_id)
            if add_on is None:
                raise NotFoundError(
                    f"Add-on {selection.add_on_id} not found",
                    add_on_id=selection.add_on_id,
                )
            add_ons.append(PricedAddOn(add_on=add_on, quantity=selection.quantity))

        priced.append(PricedLine(entry=entry, quantity=line.quantity, add_ons=tuple(add_ons)))

    if not priced:
        raise ValidationError("Cart is empty")

    # Sum per category first, then tax each category total once
    category_totals: dict[int, Decimal] = {}
    for line in priced:
        category_id = line.entry.category_id
        category_totals[category_id] = category_totals.get(category_id, ZERO) + line.line_total

    taxes: list[CategoryTax] = []
    for category_id, category_subtotal in category_totals.items():
        entry = next(p.entry for p in priced if p.entry.category_id == category_id)
        gst = round2(category_subtotal * entry.gst_rate / Decimal("100"))
        taxes.append(
            CategoryTax(
                category_id=category_id,
                category_name=entry.category_name,
                subtotal=category_subtotal,
                rate=entry.gst_rate,
                gst=gst,
            )
        )

    subtotal = sum(category_totals.values(), ZERO)
    gst_amount = sum((t.gst for t in taxes), ZERO)

    return PriceBreakdown(
        lines=tuple(priced),
        subtotal=subtotal,
        gst_amount=gst_amount,
        taxes=tuple(taxes),
    )


def compute_total(
    subtotal: Decimal,
    gst_amount: Decimal,
    delivery_charge: Decimal,
    discount_amount: Decimal,
) -> Decimal:
    """subtotal + GST + delivery - discount, rounded and clamped at zero."""
    total = round2(subtotal + gst_amount + delivery_charge - discount_amount)
    return max(total, ZERO)
