"""Data models for the reservation core."""

from refood.models.center import Center, CenterKind
from refood.models.lot import Lot, LotStatus
from refood.models.notification import (
    Audience,
    AudienceDelivery,
    AudienceRole,
    DispatchReport,
    NotificationMessage,
    TransitionKind,
)
from refood.models.reservation import (
    ACTIVE_STATES,
    Reservation,
    ReservationFilters,
    ReservationPage,
    ReservationState,
    normalize_state,
    parse_state,
    states_equal,
)
from refood.models.result import OperationResult, ReservationListResult

__all__ = [
    # Center
    "Center",
    "CenterKind",
    # Lot
    "Lot",
    "LotStatus",
    # Notification
    "Audience",
    "AudienceDelivery",
    "AudienceRole",
    "DispatchReport",
    "NotificationMessage",
    "TransitionKind",
    # Reservation
    "ACTIVE_STATES",
    "Reservation",
    "ReservationFilters",
    "ReservationPage",
    "ReservationState",
    "normalize_state",
    "parse_state",
    "states_equal",
    # Results
    "OperationResult",
    "ReservationListResult",
]
