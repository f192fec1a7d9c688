"""Django app configuration for the menu and order module."""

from django.apps import AppConfig


class RestaurantConfig(AppConfig):
    """Menu, offers and orders."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.web.restaurant"
    verbose_name = "Menu & Orders"
