"""One shared httpx client wired into every adapter for the reference backend."""

from dataclasses import dataclass

import httpx

from livesync.config import Settings, get_settings
from livesync.infrastructure.http.http_crud_api import HttpCrudApi
from livesync.infrastructure.http.sse_change_feed import SseAggregateFeed, SseChangeFeedTransport


@dataclass
class BackendAdapters:
    """The three ports a SyncedCollection needs, talking to ``backend_base_url``."""

    api: HttpCrudApi
    transport: SseChangeFeedTransport
    aggregate_feed: SseAggregateFeed
    http_client: httpx.AsyncClient

    async def aclose(self) -> None:
        await self.transport.close()
        await self.aggregate_feed.close()
        await self.http_client.aclose()

    async def __aenter__(self) -> "BackendAdapters":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()


def create_backend_adapters(
    settings: Settings | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> BackendAdapters:
    """Build CRUD and feed adapters sharing one connection pool.

    Feed streams are long-lived, so the shared client only bounds connect
    time; ``HttpCrudApi`` applies its own per-request timeout.
    """
    settings = settings or get_settings()
    http_client = http_client or httpx.AsyncClient(timeout=httpx.Timeout(None, connect=10.0))
    base_url = settings.backend_base_url
    return BackendAdapters(
        api=HttpCrudApi(base_url, http_client=http_client),
        transport=SseChangeFeedTransport(base_url, http_client=http_client),
        aggregate_feed=SseAggregateFeed(base_url, http_client=http_client),
        http_client=http_client,
    )
