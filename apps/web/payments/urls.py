"""
URL routing for payment endpoints.

Gateway webhooks are mounted separately at /webhooks/<gateway>.
"""

from django.urls import path

from apps.web.payments import views

app_name = "payments"

urlpatterns = [
    path("initiate", views.initiate, name="initiate"),
    path("verify", views.verify, name="verify"),
    path("status/<int:order_id>", views.status, name="status"),
    path("refund", views.refund, name="refund"),
    path("transactions", views.transaction_list, name="transaction-list"),
    path(
        "transactions/<int:transaction_id>",
        views.transaction_detail,
        name="transaction-detail",
    ),
]
