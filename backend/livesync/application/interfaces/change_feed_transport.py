"""Abstract change feed transport interface (port) for server-pushed row changes."""

from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from typing import Any

from livesync.domain.entities import RowFilter

MessageCallback = Callable[[Mapping[str, Any] | str | bytes], None]
ErrorCallback = Callable[[Exception], None]


class ChangeFeedTransport(ABC):
    """Port for a push-notification channel — implemented in the infrastructure layer.

    Messages have the shape ``{operation, entity_type, before?, after?}``.
    Per-channel order is preserved; nothing is promised across channels.
    """

    @abstractmethod
    async def subscribe(
        self,
        entity_type: str,
        filter: RowFilter | None,
        on_message: MessageCallback,
        on_error: ErrorCallback,
    ) -> Any:
        """Open a channel and return an opaque handle for ``unsubscribe``."""
        ...

    @abstractmethod
    async def unsubscribe(self, handle: Any) -> None:
        """Close the channel identified by ``handle``."""
        ...
