"""Availability check performed before a reservation is created."""

from refood.errors import (
    UNREACHABLE_ERRORS,
    DuplicateReservationError,
    LotAlreadyReservedError,
    LotUnavailableError,
)
from refood.reservations.repository import LotRepository, ReservationRepository
from refood.utils.logging import get_logger

logger = get_logger(__name__)


class ConflictGuard:
    """
    Prevents double-booking of a lot from the client side.

    The remote create call stays the final authority: when the check
    cannot be completed the guard lets the caller proceed.
    """

    def __init__(self, reservations: ReservationRepository, lots: LotRepository):
        self.reservations = reservations
        self.lots = lots

    async def check_availability(
        self,
        lot_id: int,
        acting_center_id: int | None = None,
    ) -> None:
        """
        Raise if the lot cannot be reserved by the acting center.

        Args:
            lot_id: Lot to reserve
            acting_center_id: Receiving center placing the reservation, if known

        Raises:
            LotUnavailableError: the lot is not open for reservation
            DuplicateReservationError: the acting center already holds it
            LotAlreadyReservedError: another center holds it
        """
        try:
            lot = await self.lots.get(lot_id)
            if not lot.is_open_for_reservation:
                raise LotUnavailableError(
                    f'Il lotto "{lot.name}" non è disponibile per la prenotazione',
                    lot_id=lot_id,
                    lot_status=lot.status.value,
                )

            existing = await self.reservations.list_for_lot(lot_id)
        except UNREACHABLE_ERRORS as e:
            logger.warning(
                "availability_check_skipped",
                lot_id=lot_id,
                error_kind=e.kind.value,
                error=e.message,
            )
            return

        active = [r for r in existing if r.is_active]
        if not active:
            logger.debug("lot_available", lot_id=lot_id)
            return

        own = next(
            (
                r for r in active
                if acting_center_id is not None and r.receiving_center_id == acting_center_id
            ),
            None,
        )
        if own is not None:
            raise DuplicateReservationError(
                "Hai già una prenotazione attiva per questo lotto",
                lot_id=lot_id,
                existing_reservation_id=own.id,
                existing_state=own.state.value,
            )

        holder = active[0]
        raise LotAlreadyReservedError(
            "Questo lotto è già stato prenotato",
            lot_id=lot_id,
            existing_reservation_id=holder.id,
            existing_state=holder.state.value,
        )
