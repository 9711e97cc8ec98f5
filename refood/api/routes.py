"""API routes exposing the reservation core to UI clients."""

from datetime import date
from typing import Any, AsyncGenerator

import httpx
from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from pydantic import BaseModel

from refood.errors import ErrorKind
from refood.models.reservation import ReservationFilters, parse_state
from refood.models.result import OperationResult, ReservationListResult
from refood.reservations.service import ReservationService
from refood.state.manager import StateManager
from refood.state.registry import SessionRegistry
from refood.state.session import RequestSession, SessionProvider, StaticSession
from refood.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()

ERROR_STATUS = {
    ErrorKind.VALIDATION_ERROR: status.HTTP_400_BAD_REQUEST,
    ErrorKind.UNAUTHORIZED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.INVALID_TRANSITION: status.HTTP_409_CONFLICT,
    ErrorKind.DUPLICATE_RESERVATION: status.HTTP_409_CONFLICT,
    ErrorKind.LOT_ALREADY_RESERVED: status.HTTP_409_CONFLICT,
    ErrorKind.LOT_UNAVAILABLE: 422,
    ErrorKind.CENTER_REQUIRED: 422,
    ErrorKind.TIMEOUT: status.HTTP_504_GATEWAY_TIMEOUT,
    ErrorKind.NETWORK_ERROR: status.HTTP_502_BAD_GATEWAY,
    ErrorKind.SERVER_ERROR: status.HTTP_502_BAD_GATEWAY,
    ErrorKind.UNKNOWN: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


# Request Models


class CreateReservationRequest(BaseModel):
    """Request to reserve a lot."""

    lot_id: int
    pickup_date: str | None = None
    note: str | None = None
    center_id: int | None = None


class TransitionRequest(BaseModel):
    """Request to move a reservation to any target state."""

    target: str
    note: str | None = None
    pickup_date: str | None = None


class ConfirmRequest(BaseModel):
    """Request to confirm a reservation."""

    pickup_date: str | None = None
    note: str | None = None


class NoteRequest(BaseModel):
    """Optional note attached to a transition."""

    note: str | None = None


class ReasonRequest(BaseModel):
    """Optional reason for a rejection or cancellation."""

    reason: str | None = None


class UnreadCountResponse(BaseModel):
    """Unread notification count."""

    count: int


# Dependencies


def get_http_client(request: Request) -> httpx.AsyncClient | None:
    """Shared client created by the application lifespan, if any."""
    return getattr(request.app.state, "http_client", None)


def get_key_value_store(request: Request) -> StateManager | None:
    """Store for per-token session data, when the lifespan opened one."""
    return getattr(request.app.state, "state_manager", None)


def get_session_registry(request: Request) -> SessionRegistry | None:
    """Per-token caches and polling state, when the lifespan created them."""
    return getattr(request.app.state, "session_registry", None)


async def get_service(
    authorization: str | None = Header(None),
    x_refood_role: str | None = Header(None),
    x_refood_center: int | None = Header(None),
    http_client: httpx.AsyncClient | None = Depends(get_http_client),
    state_manager: StateManager | None = Depends(get_key_value_store),
    registry: SessionRegistry | None = Depends(get_session_registry),
) -> AsyncGenerator[ReservationService, None]:
    """Build a service bound to the caller's credentials."""
    token = None
    if authorization:
        token = authorization.removeprefix("Bearer ").strip() or None

    user: dict[str, Any] | None = None
    if x_refood_role:
        user = {"ruolo": x_refood_role, "centro_id": x_refood_center}

    session: SessionProvider
    if state_manager is not None:
        session = RequestSession(token, user, state_manager)
    else:
        session = StaticSession(token, user=user)

    if registry is not None:
        shared = registry.for_token(token)
        service = ReservationService(
            session, http_client=http_client, cache=shared.cache, poll_state=shared.poll
        )
    else:
        service = ReservationService(session, http_client=http_client)
    try:
        yield service
    finally:
        await service.aclose()


def _respond(result: OperationResult) -> OperationResult:
    if result.success:
        return result
    raise HTTPException(
        status_code=ERROR_STATUS.get(result.error_kind, status.HTTP_500_INTERNAL_SERVER_ERROR),
        detail=result.model_dump(mode="json"),
    )


# Reservation endpoints


@router.get("/reservations", response_model=ReservationListResult)
async def list_reservations(
    state: str | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    center_id: int | None = None,
    lot_id: int | None = None,
    force_refresh: bool = False,
    service: ReservationService = Depends(get_service),
) -> ReservationListResult:
    """List reservations matching the filters."""
    parsed_state = parse_state(state) if state else None
    if state and parsed_state is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Stato non riconosciuto: {state}",
        )

    filters = ReservationFilters(
        state=parsed_state,
        date_from=date_from,
        date_to=date_to,
        center_id=center_id,
        lot_id=lot_id,
    )
    result = await service.list_reservations(filters, force_refresh=force_refresh)
    if not result.success:
        raise HTTPException(
            status_code=ERROR_STATUS.get(
                result.error_kind, status.HTTP_500_INTERNAL_SERVER_ERROR
            ),
            detail=result.model_dump(mode="json"),
        )
    return result


@router.get("/reservations/{reservation_id}", response_model=OperationResult)
async def get_reservation(
    reservation_id: int,
    service: ReservationService = Depends(get_service),
) -> OperationResult:
    """Get a single reservation."""
    return _respond(await service.get_reservation(reservation_id))


@router.post(
    "/reservations",
    response_model=OperationResult,
    status_code=status.HTTP_201_CREATED,
)
async def create_reservation(
    request: CreateReservationRequest,
    service: ReservationService = Depends(get_service),
) -> OperationResult:
    """
    Reserve a lot.

    The acting center comes from the request body, the X-Refood-Center
    header, or the centers the user belongs to.
    """
    result = await service.create_reservation(
        request.lot_id,
        pickup_date=request.pickup_date,
        note=request.note,
        center_id=request.center_id,
    )

    logger.info(
        "reservation_create_requested",
        lot_id=request.lot_id,
        success=result.success,
        error_kind=result.error_kind.value if result.error_kind else None,
    )
    return _respond(result)


@router.post("/reservations/{reservation_id}/transition", response_model=OperationResult)
async def transition_reservation(
    reservation_id: int,
    request: TransitionRequest,
    service: ReservationService = Depends(get_service),
) -> OperationResult:
    """Move a reservation to any target state."""
    return _respond(
        await service.transition(
            reservation_id,
            request.target,
            note=request.note,
            pickup_date=request.pickup_date,
        )
    )


@router.post("/reservations/{reservation_id}/confirm", response_model=OperationResult)
async def confirm_reservation(
    reservation_id: int,
    request: ConfirmRequest = ConfirmRequest(),
    service: ReservationService = Depends(get_service),
) -> OperationResult:
    return _respond(
        await service.confirm(
            reservation_id, pickup_date=request.pickup_date, note=request.note
        )
    )


@router.post("/reservations/{reservation_id}/reject", response_model=OperationResult)
async def reject_reservation(
    reservation_id: int,
    request: ReasonRequest = ReasonRequest(),
    service: ReservationService = Depends(get_service),
) -> OperationResult:
    return _respond(await service.reject(reservation_id, reason=request.reason))


@router.post("/reservations/{reservation_id}/in-transit", response_model=OperationResult)
async def mark_in_transit(
    reservation_id: int,
    request: NoteRequest = NoteRequest(),
    service: ReservationService = Depends(get_service),
) -> OperationResult:
    return _respond(await service.mark_in_transit(reservation_id, note=request.note))


@router.post("/reservations/{reservation_id}/deliver", response_model=OperationResult)
async def mark_delivered(
    reservation_id: int,
    request: NoteRequest = NoteRequest(),
    service: ReservationService = Depends(get_service),
) -> OperationResult:
    return _respond(await service.mark_delivered(reservation_id, note=request.note))


@router.post("/reservations/{reservation_id}/cancel", response_model=OperationResult)
async def cancel_reservation(
    reservation_id: int,
    request: ReasonRequest = ReasonRequest(),
    service: ReservationService = Depends(get_service),
) -> OperationResult:
    return _respond(await service.cancel(reservation_id, reason=request.reason))


@router.delete("/reservations/{reservation_id}", response_model=OperationResult)
async def delete_reservation(
    reservation_id: int,
    service: ReservationService = Depends(get_service),
) -> OperationResult:
    return _respond(await service.delete(reservation_id))


# Notification endpoints


@router.get("/notifications/unread-count", response_model=UnreadCountResponse)
async def unread_count(
    service: ReservationService = Depends(get_service),
) -> UnreadCountResponse:
    """Unread notification count; falls back to the last known value."""
    return UnreadCountResponse(count=await service.unread_count())
