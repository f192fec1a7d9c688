"""
URL routing for order and offer endpoints.

All endpoints require a signed-in user; status changes require an admin.
"""

from django.urls import path

from apps.web.restaurant import views

app_name = "restaurant"

urlpatterns = [
    # Order endpoints
    path("orders", views.orders, name="orders"),
    path("orders/<int:order_id>", views.order_detail, name="order_detail"),
    path("orders/<int:order_id>/status", views.order_status, name="order_status"),
    path("orders/<int:order_id>/cancel", views.order_cancel, name="order_cancel"),
    # Offer endpoints
    path("offers", views.offer_list, name="offer_list"),
    path("offers/code/<str:code>", views.offer_by_code, name="offer_by_code"),
    path("offers/usage/history", views.offer_usage_history, name="offer_usage_history"),
    path("offers/validate", views.offer_validate, name="offer_validate"),
]
