"""
Typed failures raised at the relationship-store boundary.

The REST layer maps each type to a status code (see main.py) and the socket
layer maps each type to an ack error code (see realtime/socketio.py).
"""


class HubError(Exception):
    """Base class for every failure the core reports to its callers."""

    code = "error"

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class NotFound(HubError):
    code = "not_found"

    def __init__(self, kind: str, entity_id: str) -> None:
        super().__init__(f"{kind.capitalize()} {entity_id} not found")
        self.kind = kind
        self.entity_id = entity_id


class UniqueConstraintViolation(HubError):
    code = "unique_violation"


class DuplicateEmail(UniqueConstraintViolation):
    code = "duplicate_email"

    def __init__(self, email: str) -> None:
        super().__init__(f"Email '{email}' already registered")
        self.email = email


class ValidationFailure(HubError):
    code = "validation_failed"


class StorageUnavailable(HubError):
    """Transient backend failure. Retryable by the caller, never by the core."""

    code = "storage_unavailable"
