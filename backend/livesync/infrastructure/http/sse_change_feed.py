"""Server-Sent-Events change feed — implements the ChangeFeedTransport port.

Each subscription is one long-lived ``GET /api/v1/feed/{entity_type}``
stream read by a background task. The subscription counts as open once the
server's ``ready`` event arrives; every later ``change`` event is handed to
``on_message`` as its raw JSON text. When the stream fails or ends, the
failure is reported once through ``on_error``.
"""

import asyncio
import contextlib
import logging
from dataclasses import dataclass
from typing import Any

import httpx

from livesync.application.interfaces import AggregateFeed, ChangeFeedTransport
from livesync.application.interfaces.change_feed_transport import ErrorCallback, MessageCallback
from livesync.domain.entities import RowFilter
from livesync.domain.exceptions import TransportError

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class FeedChannel:
    """Handle for one open SSE stream."""

    entity_type: str
    task: asyncio.Task


class SseChangeFeedTransport(ChangeFeedTransport):
    """Infrastructure adapter — consumes the reference backend's SSE change feed."""

    def __init__(
        self,
        base_url: str,
        http_client: httpx.AsyncClient | None = None,
        connect_timeout: float = 10.0,
    ):
        self._base_url = base_url.rstrip("/")
        self._http_client = http_client
        self._connect_timeout = connect_timeout
        self._channels: set[FeedChannel] = set()

    @property
    def channel_count(self) -> int:
        return len(self._channels)

    async def subscribe(
        self,
        entity_type: str,
        filter: RowFilter | None,
        on_message: MessageCallback,
        on_error: ErrorCallback,
    ) -> FeedChannel:
        url = f"{self._base_url}/api/v1/feed/{entity_type}"
        params: dict[str, Any] = {}
        if filter is not None:
            params = {"column": filter.column, "value": filter.text}

        ready: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        task = asyncio.create_task(self._run(entity_type, url, params, on_message, on_error, ready))
        try:
            await asyncio.wait_for(asyncio.shield(ready), timeout=self._connect_timeout)
        except asyncio.TimeoutError:
            await self._cancel(task)
            raise TransportError(entity_type, f"no ready event within {self._connect_timeout:g}s") from None
        except TransportError:
            await self._cancel(task)
            raise

        channel = FeedChannel(entity_type=entity_type, task=task)
        self._channels.add(channel)
        logger.debug("Feed stream open for %s (%s)", entity_type, filter or "*")
        return channel

    async def unsubscribe(self, handle: FeedChannel) -> None:
        self._channels.discard(handle)
        await self._cancel(handle.task)
        logger.debug("Feed stream closed for %s", handle.entity_type)

    async def close(self) -> None:
        """Cancel every open stream."""
        for channel in list(self._channels):
            await self.unsubscribe(channel)

    # ── Stream reader ────────────────────────────────────────────────

    async def _run(
        self,
        entity_type: str,
        url: str,
        params: dict[str, Any],
        on_message: MessageCallback,
        on_error: ErrorCallback,
        ready: asyncio.Future[None],
    ) -> None:
        client = self._http_client or httpx.AsyncClient(timeout=None)
        should_close = self._http_client is None
        try:
            async with client.stream(
                "GET", url, params=params, headers={"Accept": "text/event-stream"}
            ) as response:
                if response.is_error:
                    raise TransportError(entity_type, f"feed refused with HTTP {response.status_code}")

                event_type = "message"
                data_lines: list[str] = []
                async for line in response.aiter_lines():
                    if not line:
                        if data_lines:
                            self._dispatch(event_type, "\n".join(data_lines), on_message, ready)
                        event_type, data_lines = "message", []
                        continue
                    if line.startswith(":"):
                        continue
                    name, _, value = line.partition(":")
                    if value.startswith(" "):
                        value = value[1:]
                    if name == "event":
                        event_type = value
                    elif name == "data":
                        data_lines.append(value)

            raise TransportError(entity_type, "stream closed by server")
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            if isinstance(exc, TransportError):
                error = exc
            else:
                error = TransportError(entity_type, str(exc) or type(exc).__name__)
            if not ready.done():
                ready.set_exception(error)
            else:
                logger.warning("Feed stream for %s failed: %s", entity_type, error.message)
                on_error(error)
        finally:
            if should_close:
                await client.aclose()

    @staticmethod
    def _dispatch(
        event_type: str,
        data: str,
        on_message: MessageCallback,
        ready: asyncio.Future[None],
    ) -> None:
        if event_type == "ready":
            if not ready.done():
                ready.set_result(None)
        elif event_type == "change":
            on_message(data)

    @staticmethod
    async def _cancel(task: asyncio.Task) -> None:
        if task.done():
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task


class SseAggregateFeed(SseChangeFeedTransport, AggregateFeed):
    """The same SSE stream, used for a materialized metric table."""
