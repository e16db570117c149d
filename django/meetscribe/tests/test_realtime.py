import pytest
from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from channels.routing import URLRouter
from channels.testing import WebsocketCommunicator
from django.contrib.auth.models import AnonymousUser

from media_ingest.constants import STATUS_QUEUED
from media_ingest.models import AudioUpload
from realtime.progress import group_name
from realtime.routing import websocket_urlpatterns

pytestmark = pytest.mark.django_db(transaction=True)


class ScopeUser:
    """Puts a fixed user into the websocket scope."""

    def __init__(self, app, user):
        self.app = app
        self.user = user

    async def __call__(self, scope, receive, send):
        return await self.app({**scope, "user": self.user}, receive, send)


def communicator_for(user, upload_id):
    app = ScopeUser(URLRouter(websocket_urlpatterns), user)
    return WebsocketCommunicator(app, f"/ws/uploads/{upload_id}/")


@pytest.fixture
def upload(user):
    return AudioUpload.objects.create(
        owner=user,
        file=f"audio/{user.pk}/1-standup.mp3",
        original_name="standup.mp3",
        content_type="audio/mpeg",
        size=3,
        status=STATUS_QUEUED,
    )


def test_anonymous_connection_is_closed(upload):
    async def run():
        communicator = communicator_for(AnonymousUser(), upload.id)
        return await communicator.connect()

    assert async_to_sync(run)() == (False, 4401)


def test_foreign_upload_is_closed(upload, other_user):
    async def run():
        communicator = communicator_for(other_user, upload.id)
        return await communicator.connect()

    assert async_to_sync(run)() == (False, 4404)


def test_owner_gets_snapshot_then_relayed_events(upload, user):
    async def run():
        communicator = communicator_for(user, upload.id)
        connected, _ = await communicator.connect()
        assert connected
        snapshot = await communicator.receive_json_from()

        await get_channel_layer().group_send(
            group_name(upload.id),
            {
                "type": "upload.progress",
                "payload": {"upload_id": str(upload.id), "status": "RUNNING"},
            },
        )
        event = await communicator.receive_json_from()
        await communicator.disconnect()
        return snapshot, event

    snapshot, event = async_to_sync(run)()

    assert snapshot["type"] == "upload.progress"
    assert snapshot["upload_id"] == str(upload.id)
    assert snapshot["status"] == STATUS_QUEUED
    assert snapshot["progress"] == {"stage": None, "chunks_done": 0, "chunks_total": 0}
    assert event == {"type": "upload.progress", "upload_id": str(upload.id), "status": "RUNNING"}


def test_client_messages_are_ignored(upload, user):
    async def run():
        communicator = communicator_for(user, upload.id)
        await communicator.connect()
        await communicator.receive_json_from()
        await communicator.send_json_to({"type": "ping"})
        nothing = await communicator.receive_nothing()
        await communicator.disconnect()
        return nothing

    assert async_to_sync(run)() is True
