import json

from channels.generic.websocket import AsyncWebsocketConsumer
from django.contrib.auth.models import AnonymousUser

from workflow.realtime.router import (
    ADMIN_ROLES,
    ADMIN_ROOM,
    BROADCAST_GROUP,
    can_join,
    department_room,
    user_room,
)


async def _ws_error(ws, code: int, message: str):
    await ws.send(json.dumps({"type": "error", "code": code, "message": message}))


class WorkflowConsumer(AsyncWebsocketConsumer):
    """Delivers workflow events to dashboards and the patient portal.

    Clients are placed in their default rooms on connect and may ask for
    more with ``{"type": "joinRoom", "room": "patient_12"}`` /
    ``{"type": "leaveRoom", ...}``.
    """

    async def connect(self):
        user = self.scope.get("user") or AnonymousUser()
        if not getattr(user, "is_authenticated", False):
            await self.close(code=4001)
            return

        self.user = user
        self.rooms = set()
        defaults = [BROADCAST_GROUP, user_room(user.id)]
        role = getattr(user, "role", "")
        if role in ADMIN_ROLES:
            defaults.append(ADMIN_ROOM)
        if role == "department_user" and getattr(user, "department_id", None):
            defaults.append(department_room(user.department_id))

        for room in defaults:
            await self.channel_layer.group_add(room, self.channel_name)
            self.rooms.add(room)
        await self.accept()
        await self.send(json.dumps({"type": "welcome", "rooms": sorted(self.rooms)}))

    async def disconnect(self, close_code):
        for room in getattr(self, "rooms", ()):
            await self.channel_layer.group_discard(room, self.channel_name)

    async def receive(self, text_data=None, bytes_data=None):
        if not text_data:
            return
        try:
            data = json.loads(text_data)
        except ValueError:
            await _ws_error(self, 4000, "invalid_json")
            return
        if not isinstance(data, dict):
            await _ws_error(self, 4000, "invalid_payload")
            return

        action = data.get("type")
        room = data.get("room")
        if action not in ("joinRoom", "leaveRoom"):
            await _ws_error(self, 4002, "unsupported_type")
            return
        if not isinstance(room, str) or not room:
            await _ws_error(self, 4000, "missing_room")
            return

        if action == "joinRoom":
            if not can_join(self.user, room):
                await _ws_error(self, 4003, "forbidden")
                return
            await self.channel_layer.group_add(room, self.channel_name)
            self.rooms.add(room)
            await self.send(json.dumps({"type": "joined", "room": room}))
        else:
            await self.channel_layer.group_discard(room, self.channel_name)
            self.rooms.discard(room)
            await self.send(json.dumps({"type": "left", "room": room}))

    # group_send handler: {"type": "workflow.event", "event": ..., "payload": ...}
    async def workflow_event(self, event):
        await self.send(json.dumps({"event": event.get("event"), "payload": event.get("payload")}))
