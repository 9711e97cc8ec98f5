"""Role-aware notification fan-out after reservation events."""

import asyncio

from refood.errors import ReservationError
from refood.models.center import CenterKind
from refood.models.lot import Lot
from refood.models.notification import (
    Audience,
    AudienceDelivery,
    AudienceRole,
    DispatchReport,
    NotificationMessage,
    TransitionKind,
)
from refood.models.reservation import Reservation, ReservationState
from refood.notifications.gateway import NotificationGateway
from refood.reservations.repository import CenterRepository, LotRepository
from refood.utils.logging import LifecycleLogger
from refood.utils.messages import EventTemplate, MessageTemplates, SideTemplate

STATE_TO_KIND = {
    ReservationState.REQUESTED: TransitionKind.REQUESTED,
    ReservationState.CONFIRMED: TransitionKind.CONFIRMED,
    ReservationState.IN_TRANSIT: TransitionKind.IN_TRANSIT,
    ReservationState.DELIVERED: TransitionKind.DELIVERED,
    ReservationState.REJECTED: TransitionKind.REJECTED,
    ReservationState.CANCELLED: TransitionKind.CANCELLED,
    ReservationState.DELETED: TransitionKind.DELETED,
}

HIGH_PRIORITY_EVENTS = {TransitionKind.REJECTED, TransitionKind.CANCELLED, TransitionKind.DELETED}


def _format_quantity(lot: Lot) -> str | None:
    if not lot.quantity:
        return None
    quantity = f"{lot.quantity:g}"
    return f"{quantity} {lot.unit}".strip()


def build_detail_block(
    reservation: Reservation,
    lot: Lot | None,
    note: str | None,
    note_label: str = "Note",
) -> str:
    """Canonical detail lines; blank fields are omitted."""
    labels = MessageTemplates.DETAIL_LABELS
    fields = [
        (labels["lot"], lot.name if lot else None),
        (labels["quantity"], _format_quantity(lot) if lot else None),
        (labels["expiry"], lot.expiry_date.isoformat() if lot and lot.expiry_date else None),
        (
            labels["origin"],
            reservation.origin_center_name or (lot.origin_center_name if lot else None),
        ),
        (labels["receiving"], reservation.receiving_center_name),
        (note_label, note),
    ]
    return "\n".join(
        f"{label}: {value.strip()}"
        for label, value in fields
        if isinstance(value, str) and value.strip()
    )


class NotificationFanout:
    """
    Composes per-audience messages and delivers each one independently.

    Audiences:
    - origin center administrators and operators
    - receiving center administrators
    - every member of the receiving center when it is a social center
    """

    def __init__(
        self,
        gateway: NotificationGateway,
        lots: LotRepository,
        centers: CenterRepository,
    ):
        self.gateway = gateway
        self.lots = lots
        self.centers = centers
        self.logger = LifecycleLogger("notification_fanout")

    async def dispatch(
        self,
        reservation: Reservation,
        kind: TransitionKind,
        lot: Lot | None = None,
        note: str | None = None,
    ) -> DispatchReport:
        """
        Send the event to every audience. Never raises.

        Args:
            reservation: Reservation the event refers to
            kind: Event that happened
            lot: Lot data, when the caller already has it
            note: Free text (note, reason) appended to the details

        Returns:
            DispatchReport with one delivery per audience
        """
        report = DispatchReport(event=kind)
        try:
            messages = await self.compose(reservation, kind, lot, note)
        except Exception as e:
            self.logger.log_error(
                error=str(e),
                operation="compose_notifications",
                reservation_id=reservation.id,
                event_kind=kind.value,
            )
            return report

        deliveries = await asyncio.gather(*(self._deliver(m) for m in messages))
        report.deliveries.extend(deliveries)
        return report

    async def compose(
        self,
        reservation: Reservation,
        kind: TransitionKind,
        lot: Lot | None = None,
        note: str | None = None,
    ) -> list[NotificationMessage]:
        """Build the messages for every audience of an event."""
        template = MessageTemplates.for_event(kind)
        lot = lot or reservation.lot or await self._load_lot(reservation)
        details = build_detail_block(reservation, lot, note, template.note_label)
        lot_name = lot.name if lot else f"#{reservation.lot_id}"

        messages: list[NotificationMessage] = []
        origin_center_id = reservation.origin_center_id or (
            lot.origin_center_id if lot else None
        )

        if template.origin and origin_center_id:
            roles = [AudienceRole.ADMINISTRATORS]
            if kind != TransitionKind.FALLBACK_AUDIT:
                roles.append(AudienceRole.OPERATORS)
            messages.extend(
                self._side_messages(
                    template, template.origin, origin_center_id, roles,
                    reservation, kind, lot_name, details,
                )
            )

        if template.receiving and reservation.receiving_center_id:
            roles = [AudienceRole.ADMINISTRATORS]
            if await self._receiving_is_social(reservation):
                roles.append(AudienceRole.ALL_MEMBERS)
            messages.extend(
                self._side_messages(
                    template, template.receiving, reservation.receiving_center_id, roles,
                    reservation, kind, lot_name, details,
                )
            )

        return messages

    def _side_messages(
        self,
        template: EventTemplate,
        side: SideTemplate,
        center_id: int,
        roles: list[AudienceRole],
        reservation: Reservation,
        kind: TransitionKind,
        lot_name: str,
        details: str,
    ) -> list[NotificationMessage]:
        intro = side.intro.format(lot=lot_name, state=reservation.state.value)
        body = f"{intro}\n\n{details}" if details else intro
        priority = "Alta" if kind in HIGH_PRIORITY_EVENTS else "Media"
        return [
            NotificationMessage(
                title=side.title,
                body=body,
                audience=Audience(center_id=center_id, role=role),
                event=kind,
                reservation_id=reservation.id,
                priority=priority,
            )
            for role in roles
        ]

    async def _deliver(self, message: NotificationMessage) -> AudienceDelivery:
        try:
            await self.gateway.send(message)
        except Exception as e:
            self.logger.log_delivery(
                audience=message.audience.role.value,
                center_id=message.audience.center_id,
                event_kind=message.event.value,
                success=False,
                error=str(e),
            )
            return AudienceDelivery(
                audience=message.audience,
                title=message.title,
                success=False,
                error=str(e),
            )

        self.logger.log_delivery(
            audience=message.audience.role.value,
            center_id=message.audience.center_id,
            event_kind=message.event.value,
            success=True,
        )
        return AudienceDelivery(audience=message.audience, title=message.title, success=True)

    async def _load_lot(self, reservation: Reservation) -> Lot | None:
        try:
            return await self.lots.get(reservation.lot_id)
        except ReservationError as e:
            self.logger.logger.warning(
                "notification_lot_enrichment_skipped",
                reservation_id=reservation.id,
                lot_id=reservation.lot_id,
                error=e.message,
            )
            return None

    async def _receiving_is_social(self, reservation: Reservation) -> bool:
        if reservation.receiving_center_kind is not None:
            return reservation.receiving_center_kind == CenterKind.SOCIAL
        try:
            center = await self.centers.get(reservation.receiving_center_id)
        except ReservationError as e:
            self.logger.logger.warning(
                "notification_center_enrichment_skipped",
                reservation_id=reservation.id,
                center_id=reservation.receiving_center_id,
                error=e.message,
            )
            return False
        return center.is_social
