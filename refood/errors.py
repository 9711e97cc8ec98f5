"""Error kinds raised inside the reservation core.

Every failure is a ``ReservationError`` subclass tagged with an
``ErrorKind`` so the service boundary can turn it into a uniform
``OperationResult`` without per-call exception handling.
"""

from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """Discriminator carried by failed results."""

    VALIDATION_ERROR = "ValidationError"
    UNAUTHORIZED = "Unauthorized"
    NOT_FOUND = "NotFound"
    INVALID_TRANSITION = "InvalidTransition"
    DUPLICATE_RESERVATION = "DuplicateReservation"
    LOT_ALREADY_RESERVED = "LotAlreadyReserved"
    LOT_UNAVAILABLE = "LotUnavailable"
    CENTER_REQUIRED = "CenterRequired"
    TIMEOUT = "Timeout"
    NETWORK_ERROR = "NetworkError"
    SERVER_ERROR = "ServerError"
    UNKNOWN = "Unknown"


class ReservationError(Exception):
    """Base class for all reservation core errors."""

    kind: ErrorKind = ErrorKind.UNKNOWN

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details = details


class ReservationValidationError(ReservationError):
    """Malformed input that could not be corrected."""

    kind = ErrorKind.VALIDATION_ERROR


class UnauthorizedError(ReservationError):
    """Missing or expired credentials, or a role without permission."""

    kind = ErrorKind.UNAUTHORIZED


class NotFoundError(ReservationError):
    """The target reservation, lot or center does not exist."""

    kind = ErrorKind.NOT_FOUND


class InvalidTransitionError(ReservationError):
    """A state change not allowed by the transition table."""

    kind = ErrorKind.INVALID_TRANSITION


class DuplicateReservationError(ReservationError):
    """The acting center already holds an active reservation on the lot."""

    kind = ErrorKind.DUPLICATE_RESERVATION


class LotAlreadyReservedError(ReservationError):
    """Another center holds an active reservation on the lot."""

    kind = ErrorKind.LOT_ALREADY_RESERVED


class LotUnavailableError(ReservationError):
    """The lot is not open for reservation."""

    kind = ErrorKind.LOT_UNAVAILABLE


class CenterRequiredError(ReservationError):
    """The acting center could not be resolved automatically."""

    kind = ErrorKind.CENTER_REQUIRED


class RequestTimeoutError(ReservationError):
    """The remote call did not answer in time."""

    kind = ErrorKind.TIMEOUT


class NetworkError(ReservationError):
    """The remote call failed before any response was received."""

    kind = ErrorKind.NETWORK_ERROR


class RemoteError(ReservationError):
    """An HTTP error response from the remote service."""

    def __init__(
        self,
        message: str,
        status_code: int,
        payload: Any = None,
        **details: Any,
    ):
        super().__init__(message, status_code=status_code, **details)
        self.status_code = status_code
        self.payload = payload


class RequestRejected(RemoteError):
    """A 4xx response not covered by a more specific kind."""

    kind = ErrorKind.VALIDATION_ERROR


class ServerError(RemoteError):
    """A 5xx response."""

    kind = ErrorKind.SERVER_ERROR


# Errors meaning the check or call could not be completed at all.
UNREACHABLE_ERRORS = (RequestTimeoutError, NetworkError, ServerError)

# Errors on a primary write that hand control to the fallback resolver.
FALLBACK_ELIGIBLE_ERRORS = (RequestRejected, ServerError)
