import json
from channels.generic.websocket import AsyncWebsocketConsumer


class UpdatesConsumer(AsyncWebsocketConsumer):
    """Pushes live refresh hints (bed board changes) to connected desks."""
    GROUP = "updates"

    async def connect(self):
        await self.channel_layer.group_add(self.GROUP, self.channel_name)
        await self.accept()
        await self.send(json.dumps({"type": "welcome", "message": "connected"}))

    async def disconnect(self, close_code):
        await self.channel_layer.group_discard(self.GROUP, self.channel_name)

    async def broadcast_refresh(self, event):
        # event: {"type": "broadcast.refresh", "ts": "...", "keys": [...], "beds": [...]}
        await self.send(json.dumps(event))
