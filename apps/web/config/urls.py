"""
URL configuration for Thali.
"""

from django.contrib import admin
from django.urls import include, path

from apps.web.payments import webhooks

urlpatterns = [
    path("admin/", admin.site.urls),
    path("payments/", include("apps.web.payments.urls")),
    path("webhooks/<str:gateway>", webhooks.gateway_webhook, name="gateway-webhook"),
    path("notifications/", include("apps.web.notifications.urls")),
    # Orders and offers
    path("", include("apps.web.restaurant.urls")),
]
