"""Change feed endpoint — Server-Sent-Events stream of committed row changes."""

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse

from livesync.application.services import ChangeBroker
from livesync.infrastructure.dependencies import get_change_broker
from livesync.presentation.api.v1.endpoints.rows import parse_filter

router = APIRouter(prefix="/feed", tags=["Change Feed"])


@router.get("/{entity_type}")
async def change_feed(
    entity_type: str,
    column: str | None = Query(None, description="Filter column (equality)"),
    value: str | None = Query(None, description="Filter value"),
    broker: ChangeBroker = Depends(get_change_broker),
) -> StreamingResponse:
    """SSE endpoint for one entity type's row changes.

    Clients connect via EventSource, receive a 'ready' event once the feed
    is live, then one 'change' event per INSERT, UPDATE or DELETE matching
    the optional filter.
    """
    return StreamingResponse(
        broker.subscribe(entity_type, parse_filter(column, value)),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )
