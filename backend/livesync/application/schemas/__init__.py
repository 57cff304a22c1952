from .change_feed import TransportMessage
from .rows import ErrorDetail, RowCreate, RowPageResponse, RowUpdate

__all__ = [
    "TransportMessage",
    "ErrorDetail",
    "RowCreate",
    "RowPageResponse",
    "RowUpdate",
]
