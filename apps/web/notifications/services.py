"""
Notification service.

create_notification() is fire-and-forget: it logs and swallows every failure
so callers (order creation, reconciliation, refunds) are never affected.
"""

import logging
from typing import Any

from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from apps.web.notifications.models import Notification
from apps.web.notifications.templates import Audience, get_template

logger = logging.getLogger(__name__)


def _resolve_recipients(audience: Audience, data: dict[str, Any]) -> list[Any]:
    """Customer from ``data["user_id"]``, or every active admin."""
    User = get_user_model()
    if audience == Audience.ADMIN:
        return list(
            User.objects.filter(is_active=True).filter(
                Q(role=User.Role.ADMIN) | Q(is_staff=True)
            )
        )

    user_id = data.get("user_id")
    if user_id is None:
        return []
    return list(User.objects.filter(pk=user_id, is_active=True))


def create_notification(template_name: str, data: dict[str, Any]) -> list[Notification]:
    """
    Render a template and store one notification per recipient.

    Args:
        template_name: Name from notifications.templates.TemplateName.
        data: Template data. ``order_id`` links the rows to an order.

    Returns:
        Created notifications. Empty when nothing was sent or sending failed.
    """
    try:
        template = get_template(template_name)
        recipients = _resolve_recipients(template.audience, data)
        if not recipients:
            logger.warning(
                "No recipients for notification: template=%s order_id=%s",
                template_name,
                data.get("order_id"),
            )
            return []

        message = template.render(data)
        payload = {k: str(v) for k, v in data.items() if v is not None}
        # Own savepoint; the caller's transaction must survive a failed insert
        with transaction.atomic():
            created = [
                Notification.objects.create(
                    user=recipient,
                    order_id=data.get("order_id"),
                    template=template.name.value,
                    title=template.title,
                    message=message,
                    data=payload,
                )
                for recipient in recipients
            ]
    except Exception:
        logger.exception(
            "Failed to create notification: template=%s order_id=%s",
            template_name,
            data.get("order_id"),
        )
        return []

    logger.info(
        "Notification created: template=%s recipients=%d order_id=%s",
        template_name,
        len(created),
        data.get("order_id"),
    )
    return created


def notify_many(*notifications: tuple[str, dict[str, Any]]) -> int:
    """Emit several notifications; returns how many rows were stored."""
    return sum(len(create_notification(name, data)) for name, data in notifications)


def mark_read(notification: Notification) -> Notification:
    if not notification.is_read:
        notification.is_read = True
        notification.read_at = timezone.now()
        notification.save(update_fields=["is_read", "read_at"])
    return notification
