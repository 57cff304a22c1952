from .aggregate_feed import AggregateFeed
from .change_feed_transport import ChangeFeedTransport, ErrorCallback, MessageCallback
from .crud_api import CrudApi
from .row_repository import RowRepository

__all__ = [
    "AggregateFeed",
    "ChangeFeedTransport",
    "ErrorCallback",
    "MessageCallback",
    "CrudApi",
    "RowRepository",
]
