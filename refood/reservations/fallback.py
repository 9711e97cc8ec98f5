"""Reconciliation of a rejected primary write with the authoritative remote state."""

from dataclasses import dataclass

from refood.config import Settings, get_settings
from refood.errors import (
    InvalidTransitionError,
    NotFoundError,
    RemoteError,
    ReservationError,
    ServerError,
)
from refood.models.notification import TransitionKind
from refood.models.reservation import Reservation, ReservationState
from refood.notifications.fanout import NotificationFanout
from refood.reservations.repository import ReservationRepository
from refood.reservations.rules import FallbackStrategy, TransitionRule
from refood.utils.logging import LifecycleLogger

STATE_ERROR_MARKERS = ("stato", "transizion", "state")


@dataclass
class FallbackOutcome:
    """A fallback that ended with the remote state agreeing with the target."""

    reservation: Reservation
    strategy: FallbackStrategy
    # True when the resolver already informed both centers
    notified: bool = False


def reclassify(error: ReservationError | None, rule: TransitionRule) -> ReservationError:
    """Error surfaced when neither the primary write nor the fallback succeeded."""
    if error is None:
        return InvalidTransitionError(
            f"Lo stato remoto non corrisponde a {rule.target.value}",
            target_state=rule.target.value,
        )

    message = error.message
    if any(marker in message.lower() for marker in STATE_ERROR_MARKERS):
        return InvalidTransitionError(
            message, **{**error.details, "target_state": rule.target.value}
        )
    if isinstance(error, ServerError):
        return error
    status_code = error.status_code if isinstance(error, RemoteError) else 500
    return ServerError(
        message,
        status_code=status_code,
        payload=getattr(error, "payload", None),
        target_state=rule.target.value,
    )


class FallbackResolver:
    """
    Applies the fallback strategy of a transition rule.

    Success is reported only when a fresh read of the reservation agrees
    with the target (or, for lenient rules, still sits in an allowed
    source state and lagging reads are accepted).
    """

    def __init__(
        self,
        repository: ReservationRepository,
        fanout: NotificationFanout,
        settings: Settings | None = None,
    ):
        self.repository = repository
        self.fanout = fanout
        self.settings = settings or get_settings()
        self.logger = LifecycleLogger("fallback_resolver")

    async def resolve(
        self,
        rule: TransitionRule,
        current: Reservation,
        note: str | None = None,
        original_error: ReservationError | None = None,
    ) -> FallbackOutcome:
        """
        Try to reach the rule's target after the primary write failed.

        Args:
            rule: Transition rule being applied
            current: Reservation snapshot the transition started from
            note: Note or reason of the transition
            original_error: Error raised by the primary write

        Returns:
            FallbackOutcome when the remote state agrees with the target

        Raises:
            InvalidTransitionError or ServerError derived from the original error
        """
        strategies = {
            FallbackStrategy.VERIFY_SOURCE: self._verify_source,
            FallbackStrategy.GENERIC_UPDATE_LENIENT: self._generic_update,
            FallbackStrategy.GENERIC_UPDATE_STRICT: self._generic_update,
            FallbackStrategy.NOTIFY_ONLY: self._notify_only,
            FallbackStrategy.STRICT: self._strict,
        }

        try:
            outcome = await strategies[rule.fallback](rule, current, note)
        except ReservationError as e:
            self.logger.log_error(
                error=e.message,
                operation="fallback_reread",
                reservation_id=current.id,
                target=rule.target.value,
            )
            outcome = None

        self.logger.log_fallback(
            reservation_id=current.id,
            target=rule.target.value,
            strategy=rule.fallback.value,
            success=outcome is not None,
            original_error=original_error.message if original_error else None,
        )

        if outcome is None:
            raise reclassify(original_error, rule) from original_error
        return outcome

    async def _verify_source(
        self, rule: TransitionRule, current: Reservation, note: str | None
    ) -> FallbackOutcome | None:
        fresh = await self.repository.get(current.id)
        if fresh.state != rule.target and not rule.allows(fresh.state):
            return None

        await self.fanout.dispatch(fresh, TransitionKind.FALLBACK_AUDIT, note=note)

        fresh = await self.repository.get(current.id)
        if fresh.state != rule.target:
            return None
        return FallbackOutcome(reservation=fresh, strategy=rule.fallback)

    async def _generic_update(
        self, rule: TransitionRule, current: Reservation, note: str | None
    ) -> FallbackOutcome | None:
        if self.settings.fallback_generic_update:
            try:
                await self.repository.update_state(current.id, rule.target, note)
            except ReservationError as e:
                self.logger.logger.warning(
                    "generic_update_failed",
                    reservation_id=current.id,
                    target=rule.target.value,
                    error=e.message,
                )

        fresh = await self.repository.get(current.id)
        lenient = rule.fallback == FallbackStrategy.GENERIC_UPDATE_LENIENT

        if fresh.state == rule.target:
            reservation = fresh
        elif lenient and self.settings.fallback_accept_lagging and rule.allows(fresh.state):
            reservation = fresh.model_copy(update={"state": rule.target})
            self.logger.logger.info(
                "fallback_accepted_lagging_state",
                reservation_id=current.id,
                remote_state=fresh.state.value,
                target=rule.target.value,
            )
        else:
            return None

        if not lenient:
            return FallbackOutcome(reservation=reservation, strategy=rule.fallback)

        await self.fanout.dispatch(reservation, TransitionKind.STATUS_NOTICE, note=note)
        return FallbackOutcome(reservation=reservation, strategy=rule.fallback, notified=True)

    async def _notify_only(
        self, rule: TransitionRule, current: Reservation, note: str | None
    ) -> FallbackOutcome | None:
        fresh = await self.repository.get(current.id)
        if fresh.state != rule.target:
            return None

        await self.fanout.dispatch(fresh, TransitionKind.STATUS_NOTICE, note=note)
        return FallbackOutcome(reservation=fresh, strategy=rule.fallback, notified=True)

    async def _strict(
        self, rule: TransitionRule, current: Reservation, note: str | None
    ) -> FallbackOutcome | None:
        try:
            fresh = await self.repository.get(current.id)
        except NotFoundError:
            if rule.target != ReservationState.DELETED:
                raise
            # A deleted reservation is no longer readable
            fresh = current.model_copy(update={"state": ReservationState.DELETED})

        if fresh.state != rule.target:
            return None
        return FallbackOutcome(reservation=fresh, strategy=rule.fallback)
