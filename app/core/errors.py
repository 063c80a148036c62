"""
Error taxonomy for the route optimization and delivery lifecycle core.

Every error carries a machine-readable ``kind`` that the API layer puts into
the response envelope, and the HTTP status family it maps to.
"""

import enum
from fastapi import status


class ErrorKind(str, enum.Enum):
    INVALID_INPUT = "invalid_input"
    PROVIDER_UNAVAILABLE = "provider_unavailable"
    INVALID_STATE = "invalid_state"
    NOT_FOUND = "not_found"
    PERSISTENCE_FAILURE = "persistence_failure"
    INTERNAL_ERROR = "internal_error"


class DeliveryServiceError(Exception):
    """Base class for all errors surfaced by the core services."""

    kind: ErrorKind
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    # Whether the message is safe to show to clients outside debug mode
    public: bool = True

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInput(DeliveryServiceError):
    """Malformed or empty origin/destinations, or inconsistent route data."""
    kind = ErrorKind.INVALID_INPUT
    status_code = status.HTTP_400_BAD_REQUEST


class ProviderUnavailable(DeliveryServiceError):
    """The distance provider could not be reached or returned a non-OK status."""
    kind = ErrorKind.PROVIDER_UNAVAILABLE
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class InvalidState(DeliveryServiceError):
    """A lifecycle operation was attempted from an incompatible state."""
    kind = ErrorKind.INVALID_STATE
    status_code = status.HTTP_409_CONFLICT


class NotFound(DeliveryServiceError):
    """Delivery or destination is unknown or not owned by the caller."""
    kind = ErrorKind.NOT_FOUND
    status_code = status.HTTP_404_NOT_FOUND


class PersistenceFailure(DeliveryServiceError):
    """A transactional write failed and was rolled back."""
    kind = ErrorKind.PERSISTENCE_FAILURE
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    public = False
