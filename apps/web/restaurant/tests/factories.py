"""Factory classes for core and restaurant models."""

from decimal import Decimal

import factory

from apps.web.core.models import Address, User
from apps.web.restaurant.models import (
    AddOn,
    Category,
    DiscountType,
    Item,
    ItemSize,
    Offer,
    Order,
    OrderItem,
    OrderStatus,
    PaymentStatus,
)


class UserFactory(factory.django.DjangoModelFactory):
    """Factory for customer users."""

    class Meta:
        model = User

    username = factory.Sequence(lambda n: f"customer{n}")
    email = factory.LazyAttribute(lambda obj: f"{obj.username}@example.com")
    phone = factory.Sequence(lambda n: f"98765{n:05d}")
    role = User.Role.CUSTOMER
    password = factory.django.Password("testpass123")


class AdminFactory(UserFactory):
    """Factory for restaurant admins."""

    username = factory.Sequence(lambda n: f"admin{n}")
    role = User.Role.ADMIN


class AddressFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Address

    user = factory.SubFactory(UserFactory)
    label = "Home"
    line1 = factory.Sequence(lambda n: f"{n} MG Road")
    city = "Bengaluru"
    state = "Karnataka"
    postal_code = "560001"


class CategoryFactory(factory.django.DjangoModelFactory):
    """Factory for Category model."""

    class Meta:
        model = Category

    name = factory.Sequence(lambda n: f"Category {n}")
    gst_rate = Decimal("5.00")
    display_order = factory.Sequence(lambda n: n)


class ItemFactory(factory.django.DjangoModelFactory):
    """Factory for Item model."""

    class Meta:
        model = Item

    category = factory.SubFactory(CategoryFactory)
    name = factory.Sequence(lambda n: f"Dish {n}")
    description = factory.Faker("sentence")


class ItemSizeFactory(factory.django.DjangoModelFactory):
    """Factory for ItemSize model."""

    class Meta:
        model = ItemSize

    item = factory.SubFactory(ItemFactory)
    label = "Full"
    price = Decimal("250.00")


class AddOnFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = AddOn

    name = factory.Sequence(lambda n: f"Add-on {n}")
    price = Decimal("20.00")


class OfferFactory(factory.django.DjangoModelFactory):
    """Factory for Offer model. Defaults to 10% off, no limits."""

    class Meta:
        model = Offer

    code = factory.Sequence(lambda n: f"SAVE{n}")
    title = factory.LazyAttribute(lambda obj: f"Offer {obj.code}")
    discount_type = DiscountType.PERCENTAGE
    discount_value = Decimal("10.00")


class OrderFactory(factory.django.DjangoModelFactory):
    """
    Factory for Order model.

    Amounts describe a single ₹250 item with 5% GST.
    """

    class Meta:
        model = Order

    user = factory.SubFactory(UserFactory)
    address_snapshot = "1 MG Road, Bengaluru, Karnataka - 560001, India"
    status = OrderStatus.PENDING_PAYMENT
    payment_status = PaymentStatus.PENDING
    subtotal = Decimal("250.00")
    gst_amount = Decimal("12.50")
    discount_amount = Decimal("0.00")
    delivery_charge = Decimal("0.00")
    total_price = Decimal("262.50")


class OrderItemFactory(factory.django.DjangoModelFactory):
    """Factory for OrderItem model."""

    class Meta:
        model = OrderItem

    order = factory.SubFactory(OrderFactory)
    item_size = factory.SubFactory(ItemSizeFactory)
    item = factory.SelfAttribute("item_size.item")
    category_name = factory.SelfAttribute("item.category.name")
    item_name = factory.SelfAttribute("item.name")
    size_label = factory.SelfAttribute("item_size.label")
    base_price = factory.SelfAttribute("item_size.price")
    quantity = 1
    line_total = factory.LazyAttribute(lambda obj: obj.base_price * obj.quantity)
