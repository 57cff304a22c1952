"""FastAPI dependency injection — wires infrastructure to application layer."""

from collections.abc import AsyncGenerator
from functools import lru_cache

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from livesync.application.services import ChangeBroker, RowService
from livesync.config import get_settings
from livesync.infrastructure.database.repositories import SQLAlchemyRowRepository
from livesync.infrastructure.database.session import get_db_session


@lru_cache
def get_change_broker() -> ChangeBroker:
    """Process-wide broker shared by every request and feed client."""
    return ChangeBroker(queue_size=get_settings().feed_queue_size)


async def get_row_service(
    session: AsyncSession = Depends(get_db_session),
    broker: ChangeBroker = Depends(get_change_broker),
) -> AsyncGenerator[RowService, None]:
    """Provides a RowService instance with its repository and broker wired up."""
    repository = SQLAlchemyRowRepository(session)
    yield RowService(
        repository,
        broker,
        read_only_entity_types=set(get_settings().read_only_entity_types),
        commit=session.commit,
    )
