"""
Restaurant models - catalog, offers, and orders.

Catalog rows are maintained elsewhere and only read here. Orders keep an
immutable snapshot of every catalog value they were priced with.
"""

from decimal import Decimal

from django.conf import settings
from django.db import models

from apps.web.core.managers import OwnedQuerySet
from apps.web.core.models import TimestampedModel

# =============================================================================
# Catalog
# =============================================================================


class Category(TimestampedModel):
    """Menu category. Carries the GST rate applied to everything in it."""

    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    gst_rate = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        null=True,
        blank=True,
        help_text="GST percentage (e.g., 5.00). Blank = DEFAULT_GST_RATE",
    )
    is_active = models.BooleanField(default=True)
    display_order = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ["display_order", "name"]
        verbose_name_plural = "categories"

    def __str__(self) -> str:
        return self.name


class Item(TimestampedModel):
    """A dish. Priced through its sizes."""

    category = models.ForeignKey(
        Category,
        on_delete=models.PROTECT,
        related_name="items",
    )
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    image_url = models.URLField(blank=True)
    is_vegetarian = models.BooleanField(default=True)
    is_available = models.BooleanField(default=True)
    display_order = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ["display_order", "name"]
        indexes = [
            models.Index(fields=["category", "is_available"], name="item_category_available_idx"),
        ]

    def __str__(self) -> str:
        return self.name


class ItemSize(TimestampedModel):
    """Orderable size of an item (Half, Full, Regular)."""

    item = models.ForeignKey(
        Item,
        on_delete=models.CASCADE,
        related_name="sizes",
    )
    label = models.CharField(max_length=50)
    price = models.DecimalField(max_digits=10, decimal_places=2)
    is_available = models.BooleanField(default=True)
    display_order = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ["display_order", "price"]

    def __str__(self) -> str:
        return f"{self.item.name} ({self.label})"


class AddOn(TimestampedModel):
    """Extra that can be added to any line (extra cheese, raita)."""

    name = models.CharField(max_length=200)
    price = models.DecimalField(max_digits=10, decimal_places=2)
    is_available = models.BooleanField(default=True)

    class Meta:
        ordering = ["name"]

    def __str__(self) -> str:
        return f"{self.name} (+₹{self.price})"


# =============================================================================
# Offers
# =============================================================================


class DiscountType(models.TextChoices):
    """How an offer reduces the bill."""

    PERCENTAGE = "percentage", "Percentage"
    FLAT = "flat", "Flat"
    FREE_DELIVERY = "free_delivery", "Free Delivery"


class Offer(TimestampedModel):
    """
    Promotional code.

    Read-only input to pricing; payment reconciliation never touches it.
    """

    code = models.CharField(max_length=50, unique=True, help_text="Stored upper-case")
    title = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    discount_type = models.CharField(max_length=20, choices=DiscountType.choices)
    discount_value = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
        help_text="Required for percentage and flat offers",
    )
    max_discount_amount = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
        help_text="Cap for percentage offers",
    )
    min_order_value = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
    )
    category = models.ForeignKey(
        Category,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="offers",
        help_text="Only valid when the cart contains this category",
    )
    item = models.ForeignKey(
        Item,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="offers",
        help_text="Only valid when the cart contains this item",
    )
    first_order_only = models.BooleanField(default=False)
    max_uses_per_user = models.PositiveIntegerField(null=True, blank=True)
    valid_from = models.DateTimeField(null=True, blank=True)
    valid_to = models.DateTimeField(null=True, blank=True)
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return self.code

    def save(self, *args, **kwargs) -> None:  # type: ignore[no-untyped-def]
        self.code = self.code.strip().upper()
        super().save(*args, **kwargs)


# =============================================================================
# Orders
# =============================================================================


class OrderStatus(models.TextChoices):
    """Order lifecycle status."""

    PENDING_PAYMENT = "pending_payment", "Pending Payment"
    PENDING = "pending", "Pending"
    CONFIRMED = "confirmed", "Confirmed"
    PREPARING = "preparing", "Preparing"
    READY = "ready", "Ready"
    COMPLETED = "completed", "Completed"
    CANCELLED = "cancelled", "Cancelled"


class PaymentStatus(models.TextChoices):
    """Order-level payment status."""

    PENDING = "pending", "Pending"
    PROCESSING = "processing", "Processing"
    COMPLETED = "completed", "Completed"
    FAILED = "failed", "Failed"
    REFUNDED = "refunded", "Refunded"


class Order(TimestampedModel):
    """
    Customer order.

    Totals are computed once at creation. Status changes go through
    restaurant.state_machine; payment status changes come from reconciliation.
    """

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="orders",
    )
    address_snapshot = models.TextField(help_text="Delivery address at order time")
    offer = models.ForeignKey(
        Offer,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="orders",
    )

    status = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.PENDING_PAYMENT,
    )
    payment_status = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING,
    )
    payment_method = models.CharField(max_length=30, blank=True)

    # Pricing
    subtotal = models.DecimalField(max_digits=10, decimal_places=2)
    gst_amount = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    discount_amount = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    delivery_charge = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    total_price = models.DecimalField(max_digits=10, decimal_places=2)

    special_instructions = models.TextField(blank=True)
    cancellation_reason = models.TextField(blank=True)

    # Timestamps
    paid_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    delivered_at = models.DateTimeField(null=True, blank=True)

    objects = OwnedQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["user", "status"], name="order_user_status_idx"),
            models.Index(fields=["status", "created_at"], name="order_status_created_idx"),
            models.Index(fields=["payment_status"], name="order_payment_status_idx"),
        ]

    def __str__(self) -> str:
        return f"Order #{self.pk} - {self.user}"

    @property
    def expected_total(self) -> Decimal:
        """subtotal + GST + delivery - discount, never below zero."""
        total = (
            self.subtotal + self.gst_amount + self.delivery_charge - self.discount_amount
        )
        return max(total, Decimal("0.00"))


class OrderItem(models.Model):
    """
    Line item in an order.

    Stores a snapshot of category, item, size and price at order time.
    """

    order = models.ForeignKey(
        Order,
        on_delete=models.CASCADE,
        related_name="items",
    )
    item = models.ForeignKey(
        Item,
        on_delete=models.SET_NULL,
        null=True,
        related_name="order_items",
        help_text="Reference to the catalog item (for analytics)",
    )
    item_size = models.ForeignKey(
        ItemSize,
        on_delete=models.SET_NULL,
        null=True,
        related_name="order_items",
    )

    # Snapshot of catalog values at order time
    category_name = models.CharField(max_length=200)
    item_name = models.CharField(max_length=200)
    size_label = models.CharField(max_length=50)
    base_price = models.DecimalField(max_digits=10, decimal_places=2)
    quantity = models.PositiveIntegerField(default=1)

    line_total = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        help_text="(base_price + add-ons) * quantity",
    )

    class Meta:
        ordering = ["pk"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gte=1),
                name="order_item_quantity_positive",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.quantity}x {self.item_name} ({self.size_label})"


class OrderItemAddOn(models.Model):
    """Add-on snapshot attached to an order line."""

    order_item = models.ForeignKey(
        OrderItem,
        on_delete=models.CASCADE,
        related_name="add_ons",
    )
    add_on = models.ForeignKey(
        AddOn,
        on_delete=models.SET_NULL,
        null=True,
        related_name="order_item_add_ons",
    )
    name = models.CharField(max_length=200)
    price = models.DecimalField(max_digits=10, decimal_places=2)
    quantity = models.PositiveIntegerField(default=1)

    class Meta:
        ordering = ["pk"]

    def __str__(self) -> str:
        return f"{self.quantity}x {self.name}"
