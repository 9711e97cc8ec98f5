"""Reservation models and canonical state normalization."""

from datetime import date, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from refood.errors import ReservationValidationError
from refood.models.center import CenterKind
from refood.models.lot import Lot


class ReservationState(str, Enum):
    """Canonical reservation states.

    Values are the spellings the remote service accepts on its generic
    update endpoint.
    """

    REQUESTED = "Prenotato"
    CONFIRMED = "Confermato"
    IN_TRANSIT = "InTransito"
    DELIVERED = "Consegnato"
    CANCELLED = "Annullato"
    REJECTED = "Rifiutato"
    DELETED = "Eliminato"


ACTIVE_STATES = frozenset(
    {
        ReservationState.REQUESTED,
        ReservationState.CONFIRMED,
        ReservationState.IN_TRANSIT,
    }
)

_STATE_ALIASES: dict[ReservationState, tuple[str, ...]] = {
    ReservationState.REQUESTED: (
        "Prenotato",
        "Prenotata",
        "Richiesta",
        "Richiesto",
        "InAttesa",
        "In_Attesa",
        "Requested",
        "Pending",
    ),
    ReservationState.CONFIRMED: (
        "Confermato",
        "Confermata",
        "Accettato",
        "Accettata",
        "ProntoPerRitiro",
        "Confirmed",
        "Accepted",
    ),
    ReservationState.IN_TRANSIT: (
        "InTransito",
        "In_Transito",
        "Transito",
        "InTransit",
        "In_Transit",
    ),
    ReservationState.DELIVERED: (
        "Consegnato",
        "Consegnata",
        "Completato",
        "Completata",
        "Ricevuto",
        "Delivered",
        "Completed",
    ),
    ReservationState.CANCELLED: (
        "Annullato",
        "Annullata",
        "Cancellato",
        "Cancelled",
        "Canceled",
    ),
    ReservationState.REJECTED: ("Rifiutato", "Rifiutata", "Rejected"),
    ReservationState.DELETED: ("Eliminato", "Eliminata", "Deleted"),
}


def _alias_key(value: str) -> str:
    return "".join(ch for ch in value.strip().lower() if ch not in " _-")


STATE_ALIAS_TABLE: dict[str, ReservationState] = {
    _alias_key(alias): state
    for state, aliases in _STATE_ALIASES.items()
    for alias in aliases
}


def parse_state(value: Any) -> ReservationState | None:
    """Map any known spelling to its canonical state, or None."""
    if isinstance(value, ReservationState):
        return value
    if not isinstance(value, str):
        return None
    return STATE_ALIAS_TABLE.get(_alias_key(value))


def normalize_state(value: Any) -> ReservationState:
    """Map any known spelling to its canonical state.

    Raises ReservationValidationError for unknown spellings.
    """
    state = parse_state(value)
    if state is None:
        raise ReservationValidationError(
            f"Stato prenotazione non riconosciuto: {value!r}", state=value
        )
    return state


def states_equal(left: Any, right: Any) -> bool:
    """Two spellings are equal when they normalize to the same state."""
    left_state = parse_state(left)
    return left_state is not None and left_state == parse_state(right)


class Reservation(BaseModel):
    """A claim by a receiving center on a lot."""

    # 0 until a payload carrying the identifier is seen
    id: int = 0
    lot_id: int = 0
    origin_center_id: int | None = None
    receiving_center_id: int | None = None
    state: ReservationState = ReservationState.REQUESTED
    created_at: datetime | None = None
    updated_at: datetime | None = None
    pickup_date: date | None = None
    notes: str | None = None

    # Denormalized data the remote service joins in
    lot: Lot | None = None
    origin_center_name: str | None = None
    receiving_center_name: str | None = None
    receiving_center_kind: CenterKind | None = None

    @property
    def is_active(self) -> bool:
        """Check if the reservation still blocks its lot."""
        return self.state in ACTIVE_STATES


class ReservationFilters(BaseModel):
    """Filters accepted by the reservation list endpoint."""

    state: ReservationState | None = None
    date_from: date | None = None
    date_to: date | None = None
    center_id: int | None = None
    lot_id: int | None = None

    def to_query_params(self) -> dict[str, str]:
        """Translate to the remote query parameter names."""
        params: dict[str, str] = {}
        if self.state is not None:
            params["stato"] = self.state.value
        if self.date_from is not None:
            params["data_inizio"] = self.date_from.isoformat()
        if self.date_to is not None:
            params["data_fine"] = self.date_to.isoformat()
        if self.center_id is not None:
            params["centro_id"] = str(self.center_id)
        if self.lot_id is not None:
            params["lotto_id"] = str(self.lot_id)
        return params


class ReservationPage(BaseModel):
    """A normalized page of reservations."""

    reservations: list[Reservation] = Field(default_factory=list)
    pagination: dict[str, Any] | None = None
