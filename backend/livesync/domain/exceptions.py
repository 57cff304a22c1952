"""Domain-specific exceptions — framework-independent.

Two families live here:

* the synchronization taxonomy (``SyncError`` and subclasses) raised or
  returned by the sync core, and
* backend-side persistence errors raised by the reference row service.
"""

from livesync.domain import error_codes


class SyncError(Exception):
    """Base class for every error the synchronization core reports."""


class TransportError(SyncError):
    """A change feed subscription dropped or failed to connect. Non-fatal."""

    def __init__(self, entity_type: str, message: str):
        self.entity_type = entity_type
        self.message = message
        super().__init__(f"[{entity_type}] transport error: {message}")


class MalformedEvent(SyncError):
    """A pushed message could not be decoded into a ChangeEvent."""

    def __init__(self, message: str, payload: object = None):
        self.message = message
        self.payload = payload
        super().__init__(message)


class RemoteError(SyncError):
    """A CRUD request failed on the backend.

    Carries the backend's machine-readable ``code`` so callers can tell a
    unique violation from a permission failure.
    """

    def __init__(self, code: str | None, message: str, status_code: int | None = None):
        self.code = code
        self.message = message
        self.status_code = status_code
        super().__init__(f"{code or 'unknown'}: {message}")


class WriteConflict(SyncError):
    """The write was already applied (e.g. a duplicate like row)."""

    def __init__(self, message: str = "already applied"):
        self.message = message
        super().__init__(message)


class WriteRejected(SyncError):
    """The backend rejected the write for validation or generic reasons."""

    def __init__(self, message: str, code: str | None = None):
        self.message = message
        self.code = code
        super().__init__(message)


class MutationTimeout(WriteRejected):
    """The remote write neither confirmed nor failed within the allowed window."""

    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(f"remote write did not settle within {timeout:g}s")


class PermissionDenied(SyncError):
    """An authorization rule (e.g. a row-level policy) rejected the write."""

    def __init__(self, message: str = "you lack permission for this action"):
        self.message = message
        super().__init__(message)


def classify_remote_error(error: RemoteError) -> SyncError:
    """Map a backend failure onto the synchronization error taxonomy."""
    if error.code == error_codes.UNIQUE_VIOLATION:
        return WriteConflict(error.message)
    if error.code == error_codes.INSUFFICIENT_PRIVILEGE or error.status_code == 403:
        return PermissionDenied(error.message)
    return WriteRejected(error.message, code=error.code)


# ── Backend persistence errors ───────────────────────────────────────


class EntityNotFoundError(Exception):
    """Raised when a requested entity does not exist."""

    def __init__(self, entity_type: str, entity_id: int | str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} with id '{entity_id}' not found")


class DuplicateEntityError(Exception):
    """Raised when attempting to create a duplicate entity."""

    def __init__(self, entity_type: str, field: str, value: str):
        self.entity_type = entity_type
        self.field = field
        self.value = value
        super().__init__(f"{entity_type} with {field}='{value}' already exists")


class ReadOnlyEntityError(Exception):
    """Raised when a write targets an entity type clients may only read."""

    def __init__(self, entity_type: str):
        self.entity_type = entity_type
        super().__init__(f"{entity_type} is read-only for clients")
