import json

from channels.generic.websocket import AsyncWebsocketConsumer

from clinic.services.notifications import group_name


class NotificationConsumer(AsyncWebsocketConsumer):
    """Per-user notification stream; the group is joined on connect."""

    async def connect(self):
        user = self.scope.get("user")
        if user is None or not getattr(user, "is_authenticated", False):
            await self.close(code=4401)
            return
        self.group = group_name(user.id)
        await self.channel_layer.group_add(self.group, self.channel_name)
        await self.accept()
        await self.send(json.dumps({"type": "welcome", "userId": user.public_id}))

    async def disconnect(self, close_code):
        group = getattr(self, "group", None)
        if group:
            await self.channel_layer.group_discard(group, self.channel_name)

    async def receive(self, text_data=None, bytes_data=None):
        # clients may ping to keep intermediaries from dropping the socket
        if text_data and text_data.strip() == "ping":
            await self.send(json.dumps({"type": "pong"}))

    async def notification_created(self, event):
        # event: {"type": "notification.created", "notification": {...}}
        await self.send(json.dumps({"type": "notification", "notification": event["notification"]}))
