from .backend_client import BackendAdapters, create_backend_adapters
from .http_crud_api import HttpCrudApi
from .sse_change_feed import FeedChannel, SseAggregateFeed, SseChangeFeedTransport

__all__ = [
    "BackendAdapters",
    "create_backend_adapters",
    "FeedChannel",
    "HttpCrudApi",
    "SseAggregateFeed",
    "SseChangeFeedTransport",
]
