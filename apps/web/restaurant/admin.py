"""Admin registration for restaurant models."""

from django.contrib import admin

from apps.web.restaurant.models import (
    AddOn,
    Category,
    Item,
    ItemSize,
    Offer,
    Order,
    OrderItem,
)


class ItemInline(admin.TabularInline):
    """Inline for items within a category."""

    model = Item
    extra = 0
    fields = ["name", "is_vegetarian", "is_available", "display_order"]


class ItemSizeInline(admin.TabularInline):
    """Inline for sizes within an item."""

    model = ItemSize
    extra = 0
    fields = ["label", "price", "is_available", "display_order"]


class OrderItemInline(admin.TabularInline):
    """Inline for items within an order."""

    model = OrderItem
    extra = 0
    fields = ["item_name", "size_label", "quantity", "base_price", "line_total"]
    readonly_fields = ["item_name", "size_label", "quantity", "base_price", "line_total"]


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ["name", "gst_rate", "is_active", "display_order"]
    list_filter = ["is_active"]
    search_fields = ["name"]
    inlines = [ItemInline]
    readonly_fields = ["created_at", "updated_at"]


@admin.register(Item)
class ItemAdmin(admin.ModelAdmin):
    list_display = ["name", "category", "is_vegetarian", "is_available"]
    list_filter = ["is_available", "is_vegetarian", "category"]
    search_fields = ["name", "description"]
    inlines = [ItemSizeInline]
    readonly_fields = ["created_at", "updated_at"]


@admin.register(AddOn)
class AddOnAdmin(admin.ModelAdmin):
    list_display = ["name", "price", "is_available"]
    list_filter = ["is_available"]
    search_fields = ["name"]


@admin.register(Offer)
class OfferAdmin(admin.ModelAdmin):
    """Admin for promo offers."""

    list_display = [
        "code",
        "title",
        "discount_type",
        "discount_value",
        "is_active",
        "valid_from",
        "valid_to",
    ]
    list_filter = ["discount_type", "is_active", "first_order_only"]
    search_fields = ["code", "title"]
    readonly_fields = ["created_at", "updated_at"]

    fieldsets = [
        (None, {"fields": ["code", "title", "description", "is_active"]}),
        (
            "Discount",
            {
                "fields": [
                    "discount_type",
                    "discount_value",
                    "max_discount_amount",
                    "min_order_value",
                ]
            },
        ),
        ("Scope", {"fields": ["category", "item"]}),
        ("Limits", {"fields": ["first_order_only", "max_uses_per_user"]}),
        ("Validity", {"fields": ["valid_from", "valid_to"]}),
        ("Timestamps", {"fields": ["created_at", "updated_at"]}),
    ]


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    """Admin for orders. Amounts are fixed at creation and shown read-only."""

    list_display = [
        "pk",
        "user",
        "status",
        "payment_status",
        "total_price",
        "created_at",
    ]
    list_filter = ["status", "payment_status", "payment_method"]
    search_fields = ["user__username", "user__phone", "address_snapshot"]
    inlines = [OrderItemInline]
    readonly_fields = [
        "subtotal",
        "gst_amount",
        "discount_amount",
        "delivery_charge",
        "total_price",
        "paid_at",
        "cancelled_at",
        "delivered_at",
        "created_at",
        "updated_at",
    ]
