"""Notification models."""

from enum import Enum

from pydantic import BaseModel, Field


class TransitionKind(str, Enum):
    """Event that produced a notification."""

    REQUESTED = "requested"
    CONFIRMED = "confirmed"
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    DELETED = "deleted"
    FALLBACK_AUDIT = "fallback_audit"
    STATUS_NOTICE = "status_notice"


class AudienceRole(str, Enum):
    """Which members of a center receive a message."""

    ADMINISTRATORS = "administrators"
    OPERATORS = "operators"
    ALL_MEMBERS = "all_members"


class Audience(BaseModel):
    """Target of a notification: a center plus a role filter."""

    center_id: int
    role: AudienceRole

    def label(self) -> str:
        return f"{self.role.value}:{self.center_id}"


class NotificationMessage(BaseModel):
    """A composed message for one audience. Not persisted."""

    title: str
    body: str
    audience: Audience
    event: TransitionKind
    reservation_id: int | None = None
    priority: str = "Media"


class AudienceDelivery(BaseModel):
    """Outcome of sending to one audience."""

    audience: Audience
    title: str
    success: bool
    error: str | None = None


class DispatchReport(BaseModel):
    """Outcome of a fan-out."""

    event: TransitionKind
    deliveries: list[AudienceDelivery] = Field(default_factory=list)

    @property
    def delivered(self) -> list[AudienceDelivery]:
        return [d for d in self.deliveries if d.success]

    @property
    def failed(self) -> list[AudienceDelivery]:
        return [d for d in self.deliveries if not d.success]
