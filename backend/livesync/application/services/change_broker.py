"""Change Broker — in-process fan-out of row changes to change feed clients."""

import asyncio
import json
import logging
from collections.abc import AsyncGenerator
from dataclasses import dataclass

from livesync.application.schemas.change_feed import TransportMessage
from livesync.domain.entities import ChangeOperation, RowFilter

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_SIZE = 1000


@dataclass(eq=False)
class _Client:
    entity_type: str
    filter: RowFilter | None
    queue: asyncio.Queue[str | None]

    def wants(self, message: TransportMessage) -> bool:
        if message.entity_type != self.entity_type:
            return False
        if self.filter is None:
            return True
        return self.filter.matches(message.after) or self.filter.matches(message.before)


class ChangeBroker:
    """Manages change feed connections and publishes committed row changes.

    Each connected client gets its own bounded asyncio.Queue, scoped to one
    entity type and an optional equality filter. Publishing pushes the event
    to every matching queue. Clients consume events via an async generator.
    """

    def __init__(self, queue_size: int = DEFAULT_QUEUE_SIZE) -> None:
        self._queue_size = queue_size
        self._clients: list[_Client] = []

    async def subscribe(
        self,
        entity_type: str,
        filter: RowFilter | None = None,
    ) -> AsyncGenerator[str, None]:
        """Subscribe to one entity type's changes. Yields formatted SSE strings.

        The first frame is a ``ready`` event so clients know the feed is live.
        The generator automatically unsubscribes when the client disconnects.
        """
        client = _Client(entity_type, filter, asyncio.Queue(maxsize=self._queue_size))
        self._clients.append(client)
        logger.debug("Feed client joined %s (%s)", entity_type, filter or "*")
        try:
            yield f"event: ready\ndata: {json.dumps({'entity_type': entity_type})}\n\n"
            while True:
                event = await client.queue.get()
                if event is None:
                    break
                yield event
        finally:
            if client in self._clients:
                self._clients.remove(client)
            logger.debug("Feed client left %s", entity_type)

    def publish(self, message: TransportMessage) -> int:
        """Publish a change to every matching client. Returns the number reached."""
        sse_message = f"event: change\ndata: {message.model_dump_json()}\n\n"
        dead_clients: list[_Client] = []
        delivered = 0

        for client in self._clients:
            if not client.wants(message):
                continue
            try:
                client.queue.put_nowait(sse_message)
                delivered += 1
            except asyncio.QueueFull:
                dead_clients.append(client)
                logger.warning("Feed client queue full for %s; disconnecting", client.entity_type)

        for client in dead_clients:
            self._disconnect(client)
        return delivered

    def publish_change(
        self,
        entity_type: str,
        operation: ChangeOperation,
        *,
        before: dict | None = None,
        after: dict | None = None,
    ) -> int:
        return self.publish(
            TransportMessage(operation=operation, entity_type=entity_type, before=before, after=after)
        )

    async def shutdown(self) -> None:
        """Disconnect all connected clients."""
        for client in list(self._clients):
            self._disconnect(client)
        self._clients.clear()

    def _disconnect(self, client: _Client) -> None:
        # drain one slot so the sentinel always fits
        if client.queue.full():
            client.queue.get_nowait()
        client.queue.put_nowait(None)
        if client in self._clients:
            self._clients.remove(client)

    @property
    def client_count(self) -> int:
        return len(self._clients)
