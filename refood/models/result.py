"""Result envelopes returned across the public boundary."""

from typing import Any

from pydantic import BaseModel, Field

from refood.errors import ErrorKind, ReservationError
from refood.models.reservation import Reservation


class OperationResult(BaseModel):
    """Normalized response for single-reservation operations."""

    success: bool
    message: str
    reservation: Reservation | None = None
    error: Any = None
    error_kind: ErrorKind | None = None
    details: dict[str, Any] = Field(default_factory=dict)
    fallback_applied: bool = False

    @classmethod
    def ok(
        cls,
        message: str,
        reservation: Reservation | None = None,
        fallback_applied: bool = False,
    ) -> "OperationResult":
        return cls(
            success=True,
            message=message,
            reservation=reservation,
            fallback_applied=fallback_applied,
        )

    @classmethod
    def from_error(cls, error: ReservationError) -> "OperationResult":
        """Build a failed result from a core error."""
        payload = getattr(error, "payload", None)
        return cls(
            success=False,
            message=error.message,
            error=payload if payload is not None else error.message,
            error_kind=error.kind,
            details=dict(error.details),
        )


class ReservationListResult(BaseModel):
    """Normalized response for list reads."""

    success: bool
    message: str
    reservations: list[Reservation] = Field(default_factory=list)
    pagination: dict[str, Any] | None = None
    from_cache: bool = False
    error: Any = None
    error_kind: ErrorKind | None = None
