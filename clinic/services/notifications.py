"""
Notification storage and realtime push.

``notify`` must be called inside the same transaction as the state
change it reports: the row is written with the caller's transaction and
the websocket push is deferred until that transaction commits.
"""
from __future__ import annotations

import logging
from typing import Any, Iterable, Optional

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.db import transaction
from django.utils import timezone

from clinic.models import Notification, User
from clinic.services.identifiers import new_notification_id

logger = logging.getLogger(__name__)


def group_name(user_id: int) -> str:
    return f"notifications.{user_id}"


def format_notification(n: Notification) -> dict:
    return {
        'id': n.notification_id,
        'title': n.title,
        'message': n.message,
        'type': n.type,
        'priority': n.priority,
        'status': n.status,
        'data': n.data,
        'createdAt': n.created_at.isoformat() if n.created_at else None,
        'readAt': n.read_at.isoformat() if n.read_at else None,
    }


def _push(user_id: int, payload: dict) -> None:
    channel_layer = get_channel_layer()
    if channel_layer is None:
        return
    async_to_sync(channel_layer.group_send)(group_name(user_id), {
        'type': 'notification.created',
        'notification': payload,
    })


def notify(recipient: User, *, type: str, title: str, message: str,
           data: Optional[dict[str, Any]] = None, priority: str = 'medium') -> Notification:
    n = Notification.objects.create(
        notification_id=new_notification_id(),
        recipient=recipient,
        recipient_type=recipient.role,
        title=title,
        message=message[:1000],
        type=type,
        priority=priority,
        data=data or {},
    )
    payload = format_notification(n)
    transaction.on_commit(lambda: _push(recipient.id, payload))
    logger.debug("Queued notification %s for user %s", n.notification_id, recipient.id)
    return n


def notify_many(recipients: Iterable[User], **kwargs) -> list[Notification]:
    seen: set[int] = set()
    out = []
    for r in recipients:
        if r is None or r.id in seen:
            continue
        seen.add(r.id)
        out.append(notify(r, **kwargs))
    return out


def active_managers() -> list[User]:
    return list(User.objects.filter(role=User.ROLE_MANAGER, is_active=True))


def mark_read(user: User, notification_id: str) -> Notification:
    n = Notification.objects.get(notification_id=notification_id, recipient=user)
    if n.status != 'read':
        n.status = 'read'
        n.read_at = timezone.now()
        n.save(update_fields=['status', 'read_at'])
    return n


def mark_all_read(user: User) -> int:
    return Notification.objects.filter(recipient=user, status='unread').update(status='read', read_at=timezone.now())
