import json

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncWebsocketConsumer

from media_ingest.models import AudioUpload
from media_ingest.serializers import upload_status
from .progress import group_name


class UploadProgressConsumer(AsyncWebsocketConsumer):
    """Streams progress events for one upload job to its owner."""

    async def connect(self):
        self.upload_id = self.scope["url_route"]["kwargs"]["upload_id"]
        self.group = group_name(self.upload_id)
        user = self.scope.get("user")
        if user is None or not user.is_authenticated:
            await self.close(code=4401)
            return

        snapshot = await self._snapshot(user)
        if snapshot is None:
            await self.close(code=4404)
            return

        await self.channel_layer.group_add(self.group, self.channel_name)
        await self.accept()
        await self.send(text_data=json.dumps({"type": "upload.progress", **snapshot}))

    async def disconnect(self, close_code):
        await self.channel_layer.group_discard(self.group, self.channel_name)

    async def receive(self, text_data=None, bytes_data=None):
        # Read-only stream.
        return

    async def upload_progress(self, event):
        await self.send(text_data=json.dumps({"type": "upload.progress", **event["payload"]}))

    @database_sync_to_async
    def _snapshot(self, user):
        upload = (
            AudioUpload.objects.select_related("meeting")
            .filter(id=self.upload_id, owner=user)
            .first()
        )
        return upload_status(upload) if upload else None
