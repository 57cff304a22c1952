from .synced_row import SyncedRowModel

__all__ = [
    "SyncedRowModel",
]
