"""
Domain errors raised by the booking core.

Every error carries a stable machine-readable `code` and the HTTP status the
API layer renders it with. Services raise these; they never raise
HTTPException themselves.
"""


class RailbookError(Exception):
    """Base class for all booking-core errors."""

    code = "railbook_error"
    status_code = 500
    retryable = False
    headers: dict = {}

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class InvalidRequest(RailbookError):
    """Malformed input, e.g. a non-positive seat count."""

    code = "invalid_request"
    status_code = 422


class NotFound(RailbookError):
    """Referenced train, schedule or ticket does not exist."""

    code = "not_found"
    status_code = 404


class Unauthenticated(RailbookError):
    """Missing or wrong credentials."""

    code = "unauthenticated"
    status_code = 401
    headers = {"WWW-Authenticate": "Basic"}


class Forbidden(RailbookError):
    """Authenticated, but not allowed to use the endpoint."""

    code = "forbidden"
    status_code = 403


class NotOwner(RailbookError):
    """Cancellation attempted by a user who does not own the ticket."""

    code = "not_owner"
    status_code = 403


class DuplicateKey(RailbookError):
    """Insert violated a uniqueness constraint."""

    code = "duplicate_key"
    status_code = 409


class TrainInUse(RailbookError):
    """Train cannot be deleted while schedules reference it."""

    code = "train_in_use"
    status_code = 409


class InsufficientSeats(RailbookError):
    """Requested seats exceed the current availability."""

    code = "insufficient_seats"
    status_code = 409

    def __init__(self, requested: int, available: int):
        self.requested = requested
        self.available = available
        super().__init__(
            f"Not enough seats. Requested: {requested}, Available: {available}"
        )


class TransientFailure(RailbookError):
    """Transaction conflict, lock timeout or deadlock. Safe to retry."""

    code = "transient_failure"
    status_code = 503
    retryable = True


class StorageFailure(RailbookError):
    """Unexpected persistence fault. Needs operator attention."""

    code = "storage_failure"
    status_code = 500
