from .row_repository import SQLAlchemyRowRepository

__all__ = [
    "SQLAlchemyRowRepository",
]
