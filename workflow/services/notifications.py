"""
Notification rows and their real-time delivery.

Every workflow side effect is recorded as a :class:`Notification` first and
published afterwards.  Publishing is deferred to ``transaction.on_commit``
so that clients never hear about a change that was rolled back, and it is
best-effort: a missing router or a failing channel layer is logged and
skipped.
"""
from __future__ import annotations

import logging
from typing import Any, Iterable, Optional

from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from workflow.exceptions import NotFound
from workflow.models import Notification, User
from workflow.realtime.router import (
    ADMIN_ROLES,
    ADMIN_ROOM,
    ChannelRouter,
    department_room,
    user_room,
)
from workflow.services.formatting import format_notification

logger = logging.getLogger(__name__)

NOTIFICATION_EVENT = 'notification'


def publish_after_commit(router: Optional[ChannelRouter], rooms: Iterable[str], event: str, payload: Any) -> None:
    """Publish ``event`` to each room once the current transaction commits."""
    if router is None:
        return
    targets = [room for room in rooms if room]

    def _send():
        for room in targets:
            router.publish(room, event, payload)

    transaction.on_commit(_send)


class Notifier:
    def __init__(self, router: Optional[ChannelRouter] = None):
        self.router = router

    def notify(self, title: str, message: str, *, room: Optional[str] = None,
               to: Optional[User] = None, data: Optional[dict] = None) -> Notification:
        note = Notification.objects.create(title=title, message=message, room=room, to=to, data=data)
        logger.debug('notification.created', extra={'notification': note.id, 'room': room})
        rooms = [room]
        if to is not None:
            rooms.append(user_room(to.pk))
        publish_after_commit(self.router, rooms, NOTIFICATION_EVENT, format_notification(note))
        return note


def visible_rooms(user: User) -> list:
    """Rooms whose persisted notifications ``user`` may read when polling."""
    rooms = [user_room(user.id)]
    if user.role in ADMIN_ROLES:
        rooms.append(ADMIN_ROOM)
    if user.department_id:
        rooms.append(department_room(user.department_id))
    return rooms


def _visible_to(user: User):
    q = Q(to=user) | Q(room__in=visible_rooms(user))
    if user.role in ADMIN_ROLES:
        q |= Q(room__startswith='department_') | Q(room__startswith='patient_')
    return Notification.objects.filter(q)


def list_for_user(user: User, *, unread_only: bool = False, page: int = 1, page_size: int = 20):
    qs = _visible_to(user)
    if unread_only:
        qs = qs.filter(is_read=False)
    total = qs.count()
    page = max(1, int(page or 1))
    page_size = min(100, max(1, int(page_size or 20)))
    start = (page - 1) * page_size
    items = qs.order_by('-created_at', '-id')[start:start + page_size]
    return [format_notification(n) for n in items], total


def mark_read(user: User, notification_id: int) -> Notification:
    note = _visible_to(user).filter(pk=notification_id).first()
    if note is None:
        raise NotFound(f'Notification {notification_id} not found')
    if not note.is_read:
        note.is_read = True
        note.save(update_fields=['is_read', 'updated_at'])
    return note


def mark_all_read(user: User) -> int:
    return _visible_to(user).filter(is_read=False).update(is_read=True, updated_at=timezone.now())
