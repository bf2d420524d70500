"""
Live channel - pushes manager change events to WebSocket clients.

The manager reports every change as an event dict. Events are queued from
whatever thread raised them and delivered by one pump task on the server
loop, so clients see them in the order they happened.

Event types:
- state_updated: one document's graph or metadata changed (document_id)
- navigation: the active document or breadcrumb changed
- document_deleted: a document subtree was removed (document_ids)
- settings_updated: layout mode, theme or sidebar changed

A client may subscribe to one document; it then skips `state_updated`
events for every other document. All other events reach every client.
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import WebSocket


logger = logging.getLogger(__name__)

DOCUMENT_SCOPED_EVENTS = {"state_updated"}


@dataclass(eq=False)
class Subscriber:
    """One connected client and the document it follows, if any."""
    websocket: WebSocket
    document_id: Optional[str] = None

    def wants(self, event: dict) -> bool:
        if self.document_id is None or event.get("type") not in DOCUMENT_SCOPED_EVENTS:
            return True
        return event.get("document_id") == self.document_id


class LiveChannel:
    """Client registry plus the queue bridging manager callbacks to the loop."""

    def __init__(self):
        self._subscribers: dict[WebSocket, Subscriber] = {}
        self._queue: Optional[asyncio.Queue] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    @property
    def connection_count(self) -> int:
        return len(self._subscribers)

    # --- Lifecycle ---

    def start(self) -> asyncio.Task:
        """Bind to the running loop and start delivering events."""
        self._loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue()
        return asyncio.create_task(self._pump())

    def stop(self):
        """Stop accepting events. Queued events are dropped."""
        self._loop = None
        self._queue = None

    def emit(self, event: dict):
        """Queue an event for delivery. Safe to call from any thread."""
        loop, queue = self._loop, self._queue
        if loop is None or queue is None or loop.is_closed():
            return
        loop.call_soon_threadsafe(queue.put_nowait, event)

    async def _pump(self):
        queue = self._queue
        while True:
            event = await queue.get()
            await self.publish(event)

    # --- Clients ---

    async def connect(self, websocket: WebSocket) -> Subscriber:
        await websocket.accept()
        subscriber = Subscriber(websocket)
        self._subscribers[websocket] = subscriber
        logger.info("Live client connected (%d open)", len(self._subscribers))
        return subscriber

    def disconnect(self, websocket: WebSocket):
        if self._subscribers.pop(websocket, None) is not None:
            logger.info("Live client disconnected (%d open)", len(self._subscribers))

    def handle_message(self, websocket: WebSocket, text: str) -> Optional[dict]:
        """
        Handle a client message and return the reply, if any.

        Accepts the bare "ping" keepalive and JSON `subscribe` (with a
        document_id) or `unsubscribe` requests.
        """
        if text == "ping":
            return {"type": "pong"}
        try:
            message = json.loads(text)
        except json.JSONDecodeError:
            return {"type": "error", "message": "Malformed message"}
        if not isinstance(message, dict):
            return {"type": "error", "message": "Malformed message"}

        subscriber = self._subscribers.get(websocket)
        kind = message.get("type")
        if subscriber is None or kind not in ("subscribe", "unsubscribe"):
            return {"type": "error", "message": f"Unknown message type: {kind}"}

        subscriber.document_id = message.get("document_id") if kind == "subscribe" else None
        return {"type": "subscribed", "document_id": subscriber.document_id}

    async def publish(self, event: dict):
        """Send an event to every interested client, dropping clients that fail."""
        text = json.dumps(event)
        for websocket, subscriber in list(self._subscribers.items()):
            if not subscriber.wants(event):
                continue
            try:
                await websocket.send_text(text)
            except Exception as e:
                logger.warning("Dropping live client after failed send: %s", e)
                self._subscribers.pop(websocket, None)
