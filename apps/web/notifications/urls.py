"""
URL routing for the notification inbox.
"""

from django.urls import path

from apps.web.notifications import views

app_name = "notifications"

urlpatterns = [
    path("", views.notification_list, name="list"),
    path("<int:notification_id>/read", views.notification_read, name="read"),
]
