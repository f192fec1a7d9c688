"""Notification inbox API for the signed-in user."""

from django.http import HttpRequest, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_POST

from apps.web.core.decorators import api_login_required, service_errors
from apps.web.core.exceptions import NotFoundError
from apps.web.core.responses import json_response
from apps.web.notifications.models import Notification
from apps.web.notifications.services import mark_read


def _serialize(notification: Notification) -> dict[str, object]:
    return {
        "id": notification.pk,
        "template": notification.template,
        "title": notification.title,
        "message": notification.message,
        "order_id": notification.order_id,
        "is_read": notification.is_read,
        "created_at": notification.created_at.isoformat(),
    }


@require_GET
@api_login_required
def notification_list(request: HttpRequest) -> JsonResponse:
    """
    GET /notifications

    Latest 50 notifications, with the unread count.
    """
    qs = Notification.objects.owned_by(request.user)
    return json_response(
        {
            "notifications": [_serialize(n) for n in qs[:50]],
            "unread": qs.filter(is_read=False).count(),
        }
    )


@csrf_exempt
@require_POST
@api_login_required
@service_errors
def notification_read(request: HttpRequest, notification_id: int) -> JsonResponse:
    """POST /notifications/{id}/read"""
    try:
        notification = Notification.objects.owned_by(request.user).get(pk=notification_id)
    except Notification.DoesNotExist as e:
        raise NotFoundError(f"Notification {notification_id} not found") from e
    return json_response(_serialize(mark_read(notification)))
