"""Tests for the live channel and the change events the manager emits."""

import asyncio
import json

from mindmap_backend.live import LiveChannel, Subscriber


class FakeSocket:
    """Records sent text; fails every send when `broken` is set."""

    def __init__(self, broken=False):
        self.sent = []
        self.broken = broken
        self.accepted = False

    async def accept(self):
        self.accepted = True

    async def send_text(self, text):
        if self.broken:
            raise RuntimeError("connection closed")
        self.sent.append(json.loads(text))


class TestSubscriber:
    """Tests for per-document filtering."""

    def test_unsubscribed_wants_everything(self):
        subscriber = Subscriber(FakeSocket())
        assert subscriber.wants({"type": "state_updated", "document_id": "a"})

    def test_subscribed_filters_document_updates(self):
        subscriber = Subscriber(FakeSocket(), document_id="a")
        assert subscriber.wants({"type": "state_updated", "document_id": "a"})
        assert not subscriber.wants({"type": "state_updated", "document_id": "b"})
        assert subscriber.wants({"type": "document_deleted", "document_ids": ["b"]})


class TestLiveChannel:
    """Tests for LiveChannel."""

    def test_publish_drops_failed_clients(self):
        channel = LiveChannel()
        healthy, broken = FakeSocket(), FakeSocket(broken=True)

        async def scenario():
            await channel.connect(healthy)
            await channel.connect(broken)
            await channel.publish({"type": "navigation"})

        asyncio.run(scenario())
        assert healthy.sent == [{"type": "navigation"}]
        assert channel.connection_count == 1

    def test_subscribe_and_unsubscribe(self):
        channel = LiveChannel()
        socket = FakeSocket()

        async def scenario():
            await channel.connect(socket)
            reply = channel.handle_message(socket, json.dumps({"type": "subscribe", "document_id": "a"}))
            await channel.publish({"type": "state_updated", "document_id": "b"})
            await channel.publish({"type": "state_updated", "document_id": "a"})
            channel.handle_message(socket, '{"type": "unsubscribe"}')
            await channel.publish({"type": "state_updated", "document_id": "b"})
            return reply

        assert asyncio.run(scenario()) == {"type": "subscribed", "document_id": "a"}
        assert [m["document_id"] for m in socket.sent] == ["a", "b"]

    def test_unknown_messages(self):
        channel = LiveChannel()
        socket = FakeSocket()
        asyncio.run(channel.connect(socket))
        assert channel.handle_message(socket, "ping") == {"type": "pong"}
        assert channel.handle_message(socket, "[1, 2]")["type"] == "error"
        assert channel.handle_message(socket, '{"type": "shout"}')["type"] == "error"

    def test_emit_delivers_in_order(self):
        channel = LiveChannel()
        socket = FakeSocket()

        async def scenario():
            await channel.connect(socket)
            pump = channel.start()
            for i in range(3):
                channel.emit({"type": "state_updated", "document_id": str(i)})
            await asyncio.sleep(0.02)
            channel.stop()
            pump.cancel()

        asyncio.run(scenario())
        assert [m["document_id"] for m in socket.sent] == ["0", "1", "2"]

    def test_emit_while_stopped_is_dropped(self):
        channel = LiveChannel()
        channel.emit({"type": "navigation"})
        assert channel.connection_count == 0


class TestManagerEvents:
    """Tests for the events MindMapManager passes to change callbacks."""

    def test_event_types(self, manager):
        events = []
        manager.on_change(events.append)
        manager.load()
        first_id = manager.state.active_document_id

        manager.editor.add_child("root")
        second = manager.create_document("Second")
        manager.rename_document(second.id, "Renamed")
        manager.delete_document(second.id)
        manager.toggle_sidebar()

        assert [e["type"] for e in events] == [
            "state_updated", "navigation", "state_updated", "document_deleted", "settings_updated",
        ]
        assert events[0]["document_id"] == first_id
        assert events[1] == {"type": "navigation", "active_document_id": second.id, "breadcrumb": [second.id]}
        assert events[3]["document_ids"] == [second.id]
        assert events[3]["active_document_id"] == first_id
        assert events[4]["sidebar_open"] is False

    def test_opening_portal_is_navigation(self, manager):
        events = []
        manager.on_change(events.append)
        manager.load()
        manager.editor.toggle_portal("root")
        manager.editor.open_portal("root")

        assert [e["type"] for e in events] == ["state_updated", "navigation"]
        assert len(events[1]["breadcrumb"]) == 2
