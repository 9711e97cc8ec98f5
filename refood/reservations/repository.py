"""Remote reads and writes for reservations, lots and centers."""

from datetime import date
from typing import Any

from refood.client.http import RefoodClient
from refood.config import Settings, get_settings
from refood.errors import ReservationError
from refood.models.center import Center
from refood.models.lot import Lot
from refood.models.reservation import (
    Reservation,
    ReservationFilters,
    ReservationPage,
    ReservationState,
)
from refood.reservations.normalize import (
    extract_reservation_payload,
    normalize_center,
    normalize_lot,
    normalize_page,
    normalize_reservation,
)
from refood.state.cache import CacheLayer
from refood.utils.logging import get_logger

logger = get_logger(__name__)

RESERVATIONS_PATH = "/prenotazioni"
RESERVATIONS_NAMESPACE = "prenotazioni"


class ReservationRepository:
    """Reservation endpoints, with collection reads served from the cache."""

    def __init__(
        self,
        client: RefoodClient,
        cache: CacheLayer,
        settings: Settings | None = None,
    ):
        self.client = client
        self.cache = cache
        self.settings = settings or get_settings()

    def _path(self, reservation_id: int, action: str | None = None) -> str:
        path = f"{RESERVATIONS_PATH}/{reservation_id}"
        return f"{path}/{action}" if action else path

    def _reservation_from(
        self, body: Any, default_state: ReservationState | None = None
    ) -> Reservation | None:
        payload = extract_reservation_payload(body)
        if payload is None:
            return None
        return normalize_reservation(
            payload, self.settings.near_expiry_days, default_state=default_state
        )

    # Reads

    async def get(self, reservation_id: int) -> Reservation:
        """Fetch a single reservation."""
        body = await self.client.get(self._path(reservation_id))
        reservation = self._reservation_from(body)
        if reservation is None:
            raise ReservationError(
                f"Risposta non valida per la prenotazione {reservation_id}",
                reservation_id=reservation_id,
            )
        return reservation

    async def list_reservations(
        self,
        filters: ReservationFilters | None = None,
        force_refresh: bool = False,
    ) -> tuple[ReservationPage, bool]:
        """Fetch a filtered page; the flag tells whether it came from cache."""
        params = (filters or ReservationFilters()).to_query_params()
        key = self.cache.make_key(RESERVATIONS_NAMESPACE, params)

        if not force_refresh:
            cached = self.cache.get(key)
            if cached is not None:
                return cached, True

        body = await self.client.get(RESERVATIONS_PATH, params=params or None)
        page = normalize_page(body, self.settings.near_expiry_days)
        self.cache.put(key, page)

        logger.info(
            "reservations_fetched",
            count=len(page.reservations),
            filters=params,
        )
        return page, False

    async def list_for_lot(self, lot_id: int) -> list[Reservation]:
        """All reservations on a lot, always read fresh."""
        body = await self.client.get(RESERVATIONS_PATH, params={"lotto_id": str(lot_id)})
        page = normalize_page(body, self.settings.near_expiry_days)
        # The server may ignore lotto_id, so filter here as well
        return [r for r in page.reservations if r.lot_id == lot_id]

    # Writes

    async def create(
        self,
        lot_id: int,
        receiving_center_id: int,
        pickup_date: date | None = None,
        note: str | None = None,
    ) -> Reservation | None:
        payload: dict[str, Any] = {
            "lotto_id": lot_id,
            "centro_ricevente_id": receiving_center_id,
            "data_ritiro": pickup_date.isoformat() if pickup_date else None,
        }
        if note:
            payload["note"] = note

        body = await self.client.post(RESERVATIONS_PATH, json=payload)
        return self._reservation_from(body, default_state=ReservationState.REQUESTED)

    async def accept(
        self,
        reservation_id: int,
        pickup_date: date | None = None,
        note: str | None = None,
    ) -> Reservation | None:
        body = await self.client.put(
            self._path(reservation_id, "accetta"),
            json={
                "data_prevista_ritiro": pickup_date.isoformat() if pickup_date else None,
                "note": note,
            },
        )
        return self._reservation_from(body, default_state=ReservationState.CONFIRMED)

    async def reject(self, reservation_id: int, reason: str | None = None) -> Reservation | None:
        body = await self.client.put(
            self._path(reservation_id, "rifiuta"),
            json={"motivazione": reason or ""},
        )
        return self._reservation_from(body, default_state=ReservationState.REJECTED)

    async def mark_in_transit(
        self, reservation_id: int, note: str | None = None
    ) -> Reservation | None:
        body = await self.client.put(
            self._path(reservation_id, "transito"),
            json={"note": note},
        )
        return self._reservation_from(body, default_state=ReservationState.IN_TRANSIT)

    async def mark_delivered(
        self, reservation_id: int, note: str | None = None
    ) -> Reservation | None:
        body = await self.client.put(
            self._path(reservation_id, "consegna"),
            json={"note": note},
        )
        return self._reservation_from(body, default_state=ReservationState.DELIVERED)

    async def cancel(self, reservation_id: int, reason: str | None = None) -> Reservation | None:
        body = await self.client.put(
            self._path(reservation_id, "annulla"),
            json={"motivo": reason or ""},
        )
        return self._reservation_from(body, default_state=ReservationState.CANCELLED)

    async def delete(self, reservation_id: int) -> Reservation | None:
        body = await self.client.delete(self._path(reservation_id))
        return self._reservation_from(body, default_state=ReservationState.DELETED)

    async def update_state(
        self,
        reservation_id: int,
        state: ReservationState,
        note: str | None = None,
    ) -> Reservation | None:
        """Generic update, used only as a fallback path."""
        payload: dict[str, Any] = {"stato": state.value}
        if note:
            payload["note"] = note
        body = await self.client.put(self._path(reservation_id), json=payload)
        return self._reservation_from(body, default_state=state)


class LotRepository:
    """Lot lookups."""

    def __init__(self, client: RefoodClient, settings: Settings | None = None):
        self.client = client
        self.settings = settings or get_settings()

    async def get(self, lot_id: int) -> Lot:
        body = await self.client.get(f"/lotti/{lot_id}")
        raw = body.get("data", body) if isinstance(body, dict) else None
        if not isinstance(raw, dict):
            raise ReservationError(f"Risposta non valida per il lotto {lot_id}", lot_id=lot_id)
        return normalize_lot({"id": lot_id, **raw}, self.settings.near_expiry_days)


class CenterRepository:
    """Center lookups."""

    def __init__(self, client: RefoodClient):
        self.client = client

    async def get(self, center_id: int) -> Center:
        body = await self.client.get(f"/centri/{center_id}")
        raw = body.get("data", body) if isinstance(body, dict) else None
        if not isinstance(raw, dict):
            raise ReservationError(
                f"Risposta non valida per il centro {center_id}", center_id=center_id
            )
        return normalize_center({"id": center_id, **raw})

    async def list_user_centers(self) -> list[Center]:
        """Centers the logged-in user belongs to."""
        body = await self.client.get("/users/centri")
        rows = body.get("centri", []) if isinstance(body, dict) else []
        return [normalize_center(row) for row in rows if isinstance(row, dict)]
