"""CRUD API client — implements the CrudApi port against the reference backend.

Rows are read and written through ``/api/v1/rows/{entity_type}``. A non-2xx
response is turned into a ``RemoteError`` carrying the backend's error code
from ``{"detail": {"code", "message"}}``.
"""

import logging
from typing import Any

import httpx

from livesync.application.interfaces import CrudApi
from livesync.domain.entities import RowFilter, RowPage
from livesync.domain.exceptions import RemoteError

logger = logging.getLogger(__name__)

NETWORK_ERROR = "network"


class HttpCrudApi(CrudApi):
    """Infrastructure adapter — talks to the reference backend over HTTP.

    Pass an ``http_client`` to share one connection pool across calls
    (and to inject a mock transport in tests).
    """

    def __init__(
        self,
        base_url: str,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ):
        self._base_url = base_url.rstrip("/")
        self._http_client = http_client
        self._timeout = timeout

    def _rows_url(self, entity_type: str, row_id: str | None = None) -> str:
        url = f"{self._base_url}/api/v1/rows/{entity_type}"
        return f"{url}/{row_id}" if row_id is not None else url

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        client = self._http_client or httpx.AsyncClient(timeout=self._timeout)
        should_close = self._http_client is None
        try:
            response = await client.request(method, url, timeout=self._timeout, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", method, url, exc)
            raise RemoteError(NETWORK_ERROR, str(exc) or type(exc).__name__) from exc
        finally:
            if should_close:
                await client.aclose()

        if response.is_error:
            self._raise_remote_error(response)
        return response

    @staticmethod
    def _raise_remote_error(response: httpx.Response) -> None:
        """Map an error response to RemoteError."""
        code: str | None = None
        message = response.reason_phrase or f"HTTP {response.status_code}"
        try:
            detail = response.json().get("detail")
        except ValueError:
            detail = None
        if isinstance(detail, dict):
            code = detail.get("code")
            message = detail.get("message") or message
        elif isinstance(detail, str):
            message = detail
        raise RemoteError(code or str(response.status_code), message, response.status_code)

    async def fetch_page(
        self,
        entity_type: str,
        filter: RowFilter | None,
        offset: int,
        limit: int,
    ) -> RowPage:
        params: dict[str, Any] = {"skip": offset, "limit": limit}
        if filter is not None:
            params["column"] = filter.column
            params["value"] = filter.text
        response = await self._request("GET", self._rows_url(entity_type), params=params)
        data = response.json()
        return RowPage(rows=list(data.get("rows") or []), total_count=int(data.get("total_count") or 0))

    async def insert(self, entity_type: str, payload: dict[str, Any]) -> dict[str, Any]:
        body: dict[str, Any] = {"data": {k: v for k, v in payload.items() if k not in ("id", "unique_key")}}
        if payload.get("id") is not None:
            body["id"] = str(payload["id"])
        if payload.get("unique_key") is not None:
            body["unique_key"] = payload["unique_key"]
        response = await self._request("POST", self._rows_url(entity_type), json=body)
        return response.json()

    async def update(self, entity_type: str, row_id: str, patch: dict[str, Any]) -> dict[str, Any]:
        response = await self._request("PATCH", self._rows_url(entity_type, row_id), json={"data": patch})
        return response.json()

    async def delete(self, entity_type: str, row_id: str) -> None:
        await self._request("DELETE", self._rows_url(entity_type, row_id))
