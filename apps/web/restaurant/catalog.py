"""Database-backed catalog lookup used by pricing."""

from decimal import Decimal

from django.conf import settings

from apps.web.restaurant.models import AddOn, ItemSize
from apps.web.restaurant.pricing import CatalogAddOn, CatalogEntry


class DatabaseCatalog:
    """Resolve sizes and add-ons from the catalog tables. Unavailable rows resolve to None."""

    def __init__(self, default_gst_rate: Decimal | None = None) -> None:
        self._default_gst_rate = (
            default_gst_rate
            if default_gst_rate is not None
            else Decimal(str(settings.DEFAULT_GST_RATE))
        )

    def item_size(self, item_size_id: int) -> CatalogEntry | None:
        try:
            size = ItemSize.objects.select_related("item__category").get(
                pk=item_size_id,
                is_available=True,
                item__is_available=True,
                item__category__is_active=True,
            )
        except ItemSize.DoesNotExist:
            return None

        category = size.item.category
        rate = category.gst_rate if category.gst_rate is not None else self._default_gst_rate
        return CatalogEntry(
            item_size_id=size.pk,
            item_id=size.item.pk,
            item_name=size.item.name,
            size_label=size.label,
            base_price=size.price,
            category_id=category.pk,
            category_name=category.name,
            gst_rate=rate,
        )

    def add_on(self, add_on_id: int) -> CatalogAddOn | None:
        try:
            add_on = AddOn.objects.get(pk=add_on_id, is_available=True)
        except AddOn.DoesNotExist:
            return None
        return CatalogAddOn(add_on_id=add_on.pk, name=add_on.name, price=add_on.price)
