"""Reservation lifecycle engine: creation and state transitions."""

import re
import time
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

from refood.config import Settings, get_settings
from refood.errors import (
    FALLBACK_ELIGIBLE_ERRORS,
    InvalidTransitionError,
    LotAlreadyReservedError,
    RequestRejected,
    ReservationError,
    ReservationValidationError,
)
from refood.models.notification import TransitionKind
from refood.models.reservation import Reservation, ReservationState, normalize_state
from refood.reservations.centers import CenterResolver
from refood.reservations.fallback import FallbackResolver
from refood.reservations.guard import ConflictGuard
from refood.reservations.hooks import PostCommitHooks
from refood.reservations.repository import ReservationRepository
from refood.reservations.rules import TransitionRule, TransitionRules
from refood.utils.logging import LifecycleLogger
from refood.utils.tracing import OperationTracer

ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

# Accepted spellings that are silently rewritten to YYYY-MM-DD
CORRECTABLE_DATE_FORMATS = ("%d/%m/%Y", "%d-%m-%Y", "%Y/%m/%d")


def normalize_pickup_date(value: Any) -> date | None:
    """
    Coerce a pickup date to a calendar date.

    Raises:
        ReservationValidationError: the value is not a recognizable date
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise ReservationValidationError(
            "Formato data non valido. Usa il formato YYYY-MM-DD.", pickup_date=value
        )

    text = value.strip()
    try:
        if ISO_DATE.match(text):
            return date.fromisoformat(text)
    except ValueError as e:
        raise ReservationValidationError(
            f"Data non valida: {text}", pickup_date=value
        ) from e

    for fmt in CORRECTABLE_DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue

    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError as e:
        raise ReservationValidationError(
            "Formato data non valido. Usa il formato YYYY-MM-DD.", pickup_date=value
        ) from e


def merge_reservation(
    current: Reservation,
    updated: Reservation | None,
    target: ReservationState,
    **changes: Any,
) -> Reservation:
    """Project the target state onto the snapshot, preferring remote fields when present.

    Only the fields the remote echo actually carried replace snapshot values.
    """
    update = {key: value for key, value in changes.items() if value is not None}
    if updated is not None:
        update.update({name: getattr(updated, name) for name in updated.model_fields_set})
    update["state"] = target
    return current.model_copy(update=update)


@dataclass
class TransitionOutcome:
    """Authoritative result of a transition."""

    reservation: Reservation
    previous_state: ReservationState
    fallback_applied: bool = False


class TransitionEngine:
    """
    Validates and applies reservation state changes.

    Every mutation invalidates the list cache before post-commit hooks
    (notification fan-out) run, and hook failures never undo a mutation.
    """

    def __init__(
        self,
        repository: ReservationRepository,
        resolver: FallbackResolver,
        hooks: PostCommitHooks,
        guard: ConflictGuard,
        centers: CenterResolver,
        settings: Settings | None = None,
    ):
        self.repository = repository
        self.resolver = resolver
        self.hooks = hooks
        self.guard = guard
        self.centers = centers
        self.settings = settings or get_settings()
        self.logger = LifecycleLogger("transition_engine")

    async def transition(
        self,
        reservation_id: int,
        target: ReservationState | str,
        note: str | None = None,
        pickup_date: Any = None,
        snapshot: Reservation | None = None,
        tracer: OperationTracer | None = None,
    ) -> TransitionOutcome:
        """
        Move a reservation to the target state.

        Args:
            reservation_id: Reservation to update
            target: Target state, any known spelling
            note: Note, or reason for rejections and cancellations
            pickup_date: Expected pickup date, only used when confirming
            snapshot: Current reservation, when the caller already has it
            tracer: Optional tracer for monitoring

        Returns:
            TransitionOutcome with the authoritative reservation

        Raises:
            InvalidTransitionError: the table does not allow the change
            ReservationError: any failure from the remote service
        """
        start_time = time.time()
        tracer = tracer or OperationTracer("transition")

        target_state = normalize_state(target)
        rule = TransitionRules.for_target(target_state)
        pickup = normalize_pickup_date(pickup_date)

        if snapshot is None or snapshot.id != reservation_id:
            with tracer.trace_step("snapshot_read", "repository", reservation_id=reservation_id):
                snapshot = await self.repository.get(reservation_id)

        current_state = snapshot.state
        if not rule.allows(current_state):
            raise InvalidTransitionError(
                f"Transizione non consentita: da {current_state.value} a {target_state.value}",
                reservation_id=reservation_id,
                current_state=current_state.value,
                target_state=target_state.value,
                allowed_sources=sorted(s.value for s in rule.sources),
            )

        fallback_applied = False
        notified = False
        if rule.operation is None:
            with tracer.trace_step("fallback", "fallback_resolver", strategy=rule.fallback.value):
                outcome = await self.resolver.resolve(rule, snapshot, note)
            reservation = outcome.reservation
            notified = outcome.notified
        else:
            try:
                with tracer.trace_step(
                    "remote_write", "repository", remote_operation=rule.operation
                ):
                    updated = await self._call_primary(rule, reservation_id, note, pickup)
                reservation = merge_reservation(
                    snapshot, updated, target_state, pickup_date=pickup, notes=note
                )
            except FALLBACK_ELIGIBLE_ERRORS as e:
                with tracer.trace_step(
                    "fallback", "fallback_resolver", strategy=rule.fallback.value
                ):
                    outcome = await self.resolver.resolve(rule, snapshot, note, e)
                reservation = outcome.reservation
                notified = outcome.notified
                fallback_applied = True

        self._invalidate(tracer)

        if not notified:
            with tracer.trace_step("post_commit", "hooks", event_kind=rule.event.value):
                await self.hooks.run(reservation, rule.event, reservation.lot, note)

        self.logger.log_transition(
            reservation_id=reservation_id,
            from_state=current_state.value,
            to_state=target_state.value,
            duration_ms=(time.time() - start_time) * 1000,
            fallback_applied=fallback_applied,
        )

        return TransitionOutcome(
            reservation=reservation,
            previous_state=current_state,
            fallback_applied=fallback_applied,
        )

    async def create(
        self,
        lot_id: int,
        pickup_date: Any = None,
        note: str | None = None,
        override_center_id: int | None = None,
        tracer: OperationTracer | None = None,
    ) -> Reservation:
        """
        Reserve a lot for the acting receiving center.

        Args:
            lot_id: Lot to reserve
            pickup_date: Requested pickup date
            note: Free-text note
            override_center_id: Receiving center chosen explicitly by the user
            tracer: Optional tracer for monitoring

        Returns:
            The created reservation, in state Requested

        Raises:
            LotUnavailableError, DuplicateReservationError, LotAlreadyReservedError,
            UnauthorizedError, CenterRequiredError, or a remote error
        """
        start_time = time.time()
        tracer = tracer or OperationTracer("create")
        pickup = normalize_pickup_date(pickup_date)

        acting_center_id = await self.centers.peek(override_center_id)
        with tracer.trace_step("availability_check", "conflict_guard", lot_id=lot_id):
            await self.guard.check_availability(lot_id, acting_center_id)

        center_id = await self.centers.resolve(override_center_id)

        try:
            with tracer.trace_step("remote_write", "repository", remote_operation="create"):
                created = await self.repository.create(lot_id, center_id, pickup, note)
        except RequestRejected as e:
            if e.status_code == 409:
                raise LotAlreadyReservedError(
                    "Questo lotto è già stato prenotato",
                    lot_id=lot_id,
                    status_code=e.status_code,
                ) from e
            raise

        if created is None or "id" not in created.model_fields_set:
            created = await self._find_created(lot_id, center_id)
        reservation = created.model_copy(
            update={
                "lot_id": created.lot_id or lot_id,
                "receiving_center_id": created.receiving_center_id or center_id,
                "pickup_date": created.pickup_date or pickup,
                "notes": created.notes or note,
            }
        )

        self._invalidate(tracer)

        with tracer.trace_step("post_commit", "hooks", event_kind=TransitionKind.REQUESTED.value):
            await self.hooks.run(reservation, TransitionKind.REQUESTED, reservation.lot, note)

        self.logger.log_transition(
            reservation_id=reservation.id,
            from_state="",
            to_state=reservation.state.value,
            duration_ms=(time.time() - start_time) * 1000,
            lot_id=lot_id,
            center_id=center_id,
        )
        return reservation

    async def _call_primary(
        self,
        rule: TransitionRule,
        reservation_id: int,
        note: str | None,
        pickup: date | None,
    ) -> Reservation | None:
        if rule.operation == "accept":
            return await self.repository.accept(reservation_id, pickup, note)
        if rule.operation == "delete":
            return await self.repository.delete(reservation_id)
        operation = getattr(self.repository, rule.operation)
        return await operation(reservation_id, note)

    async def _find_created(self, lot_id: int, center_id: int) -> Reservation:
        # Some deployments answer the create call without echoing the reservation
        candidates = [
            r
            for r in await self.repository.list_for_lot(lot_id)
            if r.receiving_center_id == center_id and r.is_active
        ]
        if not candidates:
            raise ReservationError(
                "Prenotazione creata ma non restituita dal server",
                lot_id=lot_id,
                center_id=center_id,
            )
        return max(candidates, key=lambda r: r.id)

    def _invalidate(self, tracer: OperationTracer) -> None:
        self.repository.cache.invalidate()
        tracer.add_event("cache_invalidated", "cache_layer")
