"""Public boundary of the reservation core."""

from typing import Any, Awaitable, Callable

import httpx

from refood.client.http import RefoodClient
from refood.config import Settings, get_settings
from refood.errors import ErrorKind, ReservationError
from refood.models.reservation import (
    Reservation,
    ReservationFilters,
    ReservationState,
)
from refood.models.result import OperationResult, ReservationListResult
from refood.notifications.fanout import NotificationFanout
from refood.notifications.gateway import NotificationGateway
from refood.notifications.polling import PollState, UnreadCountPoller
from refood.reservations.centers import CenterResolver
from refood.reservations.fallback import FallbackResolver
from refood.reservations.guard import ConflictGuard
from refood.reservations.hooks import PostCommitHooks
from refood.reservations.repository import (
    CenterRepository,
    LotRepository,
    ReservationRepository,
)
from refood.reservations.transitions import TransitionEngine
from refood.state.cache import CacheLayer
from refood.state.session import SessionProvider
from refood.utils.logging import get_logger
from refood.utils.messages import MessageTemplates
from refood.utils.tracing import OperationTracer

logger = get_logger(__name__)


class ReservationService:
    """
    Reservation lifecycle operations for one user session.

    Every public method returns a result envelope; errors never escape.
    """

    def __init__(
        self,
        session: SessionProvider,
        settings: Settings | None = None,
        http_client: httpx.AsyncClient | None = None,
        cache: CacheLayer | None = None,
        poll_state: PollState | None = None,
    ):
        self.settings = settings or get_settings()
        self.session = session
        self.client = RefoodClient(session, http_client=http_client, settings=self.settings)
        if cache is None:
            cache = CacheLayer(self.settings.cache_freshness_seconds)
        self.cache = cache

        self.reservations = ReservationRepository(self.client, self.cache, self.settings)
        self.lots = LotRepository(self.client, self.settings)
        self.centers = CenterRepository(self.client)

        self.gateway = NotificationGateway(self.client)
        self.fanout = NotificationFanout(self.gateway, self.lots, self.centers)
        self.poller = UnreadCountPoller(self.gateway, self.settings, state=poll_state)

        self.hooks = PostCommitHooks(background=self.settings.notifications_in_background)
        self.hooks.register("notification_fanout", self.fanout.dispatch)

        self.engine = TransitionEngine(
            repository=self.reservations,
            resolver=FallbackResolver(self.reservations, self.fanout, self.settings),
            hooks=self.hooks,
            guard=ConflictGuard(self.reservations, self.lots),
            centers=CenterResolver(session, self.centers),
            settings=self.settings,
        )

    async def aclose(self) -> None:
        """Wait for background hooks and release the HTTP client."""
        await self.hooks.drain()
        await self.client.aclose()

    # Creation

    async def create_reservation(
        self,
        lot_id: int,
        pickup_date: Any = None,
        note: str | None = None,
        center_id: int | None = None,
    ) -> OperationResult:
        """Reserve a lot for the acting receiving center."""
        tracer = OperationTracer("create_reservation")

        async def run() -> OperationResult:
            reservation = await self.engine.create(
                lot_id,
                pickup_date=pickup_date,
                note=note,
                override_center_id=center_id,
                tracer=tracer,
            )
            return OperationResult.ok(
                MessageTemplates.RESULTS[ReservationState.REQUESTED.value],
                reservation=reservation,
            )

        return await self._guarded("create_reservation", run, tracer=tracer, lot_id=lot_id)

    # Transitions

    async def transition(
        self,
        reservation_id: int,
        target: ReservationState | str,
        note: str | None = None,
        pickup_date: Any = None,
        snapshot: Reservation | None = None,
    ) -> OperationResult:
        """Move a reservation to any target state."""
        tracer = OperationTracer("transition")

        async def run() -> OperationResult:
            outcome = await self.engine.transition(
                reservation_id,
                target,
                note=note,
                pickup_date=pickup_date,
                snapshot=snapshot,
                tracer=tracer,
            )
            return OperationResult.ok(
                MessageTemplates.RESULTS[outcome.reservation.state.value],
                reservation=outcome.reservation,
                fallback_applied=outcome.fallback_applied,
            )

        return await self._guarded(
            "transition",
            run,
            tracer=tracer,
            reservation_id=reservation_id,
            target=str(getattr(target, "value", target)),
        )

    async def confirm(
        self,
        reservation_id: int,
        pickup_date: Any = None,
        note: str | None = None,
    ) -> OperationResult:
        return await self.transition(
            reservation_id, ReservationState.CONFIRMED, note=note, pickup_date=pickup_date
        )

    async def reject(self, reservation_id: int, reason: str | None = None) -> OperationResult:
        return await self.transition(reservation_id, ReservationState.REJECTED, note=reason)

    async def mark_in_transit(
        self, reservation_id: int, note: str | None = None
    ) -> OperationResult:
        return await self.transition(reservation_id, ReservationState.IN_TRANSIT, note=note)

    async def mark_delivered(
        self, reservation_id: int, note: str | None = None
    ) -> OperationResult:
        return await self.transition(reservation_id, ReservationState.DELIVERED, note=note)

    async def cancel(self, reservation_id: int, reason: str | None = None) -> OperationResult:
        return await self.transition(reservation_id, ReservationState.CANCELLED, note=reason)

    async def delete(self, reservation_id: int) -> OperationResult:
        return await self.transition(reservation_id, ReservationState.DELETED)

    # Reads

    async def get_reservation(self, reservation_id: int) -> OperationResult:
        async def run() -> OperationResult:
            reservation = await self.reservations.get(reservation_id)
            return OperationResult.ok("Prenotazione caricata", reservation=reservation)

        return await self._guarded("get_reservation", run, reservation_id=reservation_id)

    async def list_reservations(
        self,
        filters: ReservationFilters | None = None,
        force_refresh: bool = False,
    ) -> ReservationListResult:
        """List reservations, served from the cache when fresh."""
        try:
            page, from_cache = await self.reservations.list_reservations(
                filters, force_refresh=force_refresh
            )
        except ReservationError as e:
            logger.warning(
                "list_reservations_failed",
                error_kind=e.kind.value,
                error=e.message,
            )
            return ReservationListResult(
                success=False,
                message=e.message,
                error=getattr(e, "payload", None) or e.message,
                error_kind=e.kind,
            )
        except Exception as e:
            logger.error("list_reservations_unexpected_error", error=str(e), exc_info=True)
            return ReservationListResult(
                success=False,
                message=MessageTemplates.UNEXPECTED_ERROR,
                error=str(e),
                error_kind=ErrorKind.UNKNOWN,
            )

        return ReservationListResult(
            success=True,
            message=f"{len(page.reservations)} prenotazioni trovate",
            reservations=page.reservations,
            pagination=page.pagination,
            from_cache=from_cache,
        )

    # Notifications

    async def unread_count(self) -> int:
        """Unread notification count; never raises."""
        return await self.poller.poll_once()

    async def _guarded(
        self,
        operation: str,
        run: Callable[[], Awaitable[OperationResult]],
        tracer: OperationTracer | None = None,
        **context: Any,
    ) -> OperationResult:
        try:
            result = await run()
        except ReservationError as e:
            logger.warning(
                "operation_failed",
                operation=operation,
                error_kind=e.kind.value,
                error=e.message,
                **context,
            )
            result = OperationResult.from_error(e)
        except Exception as e:
            logger.error(
                "operation_unexpected_error",
                operation=operation,
                error=str(e),
                exc_info=True,
                **context,
            )
            result = OperationResult(
                success=False,
                message=MessageTemplates.UNEXPECTED_ERROR,
                error=str(e),
                error_kind=ErrorKind.UNKNOWN,
            )

        if tracer is not None:
            logger.info("operation_traced", success=result.success, **tracer.summary())
        return result
