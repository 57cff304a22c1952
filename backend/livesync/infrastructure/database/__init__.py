from .base import Base
from .session import engine, async_session_factory, create_tables, get_db_session, prepare_database
from .models import SyncedRowModel

__all__ = [
    "Base",
    "engine",
    "async_session_factory",
    "create_tables",
    "get_db_session",
    "prepare_database",
    "SyncedRowModel",
]
