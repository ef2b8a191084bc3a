"""
Room-based publish/subscribe over the Channels layer.

Workflow services never talk to the channel layer directly; they receive an
optional :class:`ChannelRouter` when they are built.  ``None`` (no channel
layer configured) and any error raised by the layer turn a publish into a
no-op so that real-time delivery can never fail a workflow operation.
"""
from __future__ import annotations

import logging
import re
from typing import Any, Optional

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer

logger = logging.getLogger(__name__)

ADMIN_ROOM = 'admin_room'
BROADCAST_GROUP = 'broadcast'
EVENT_MESSAGE_TYPE = 'workflow.event'

ADMIN_ROLES = {'admin', 'super_admin'}
STAFF_ROLES = {'reception', 'department_user'}

# Channels group names: ASCII alphanumerics, hyphens, underscores or periods, under 100 chars.
ROOM_NAME_RE = re.compile(r'^[A-Za-z0-9_.\-]{1,99}$')


def department_room(department_id) -> str:
    return f'department_{department_id}'


def patient_room(patient_id) -> str:
    return f'patient_{patient_id}'


def user_room(user_id) -> str:
    return f'user_{user_id}'


def can_join(user, room: str) -> bool:
    """Room access policy for WebSocket subscribers."""
    if not (user and getattr(user, 'is_authenticated', False)):
        return False
    if not ROOM_NAME_RE.match(room):
        return False
    role = getattr(user, 'role', '')
    if role in ADMIN_ROLES:
        return True
    if room == user_room(user.id):
        return True
    if room == ADMIN_ROOM:
        return False
    if room.startswith('department_'):
        dept_id = getattr(user, 'department_id', None)
        return role in STAFF_ROLES and dept_id is not None and room == department_room(dept_id)
    if room.startswith('patient_'):
        return role in STAFF_ROLES
    return False


class ChannelRouter:
    """Thin adapter over a Channels layer."""

    def __init__(self, layer):
        self.layer = layer

    def join(self, channel_name: str, room: str) -> None:
        async_to_sync(self.layer.group_add)(room, channel_name)

    def leave(self, channel_name: str, room: str) -> None:
        async_to_sync(self.layer.group_discard)(room, channel_name)

    def publish(self, room: str, event: str, payload: Any) -> None:
        try:
            async_to_sync(self.layer.group_send)(
                room, {'type': EVENT_MESSAGE_TYPE, 'event': event, 'payload': payload}
            )
        except Exception as exc:  # delivery is best-effort
            logger.warning('realtime.publish_failed', extra={'room': room, 'event': event, 'error': str(exc)})

    def publish_global(self, event: str, payload: Any) -> None:
        self.publish(BROADCAST_GROUP, event, payload)


def get_router() -> Optional[ChannelRouter]:
    layer = get_channel_layer()
    if layer is None:
        return None
    return ChannelRouter(layer)
