"""Lot models."""

from datetime import date, timedelta
from enum import Enum

from pydantic import BaseModel


class LotStatus(str, Enum):
    """Freshness of a lot, derived from its expiry date."""

    FRESH = "Verde"
    NEAR_EXPIRY = "Arancione"
    EXPIRED = "Rosso"


_LOT_STATUS_ALIASES = {
    "verde": LotStatus.FRESH,
    "fresh": LotStatus.FRESH,
    "disponibile": LotStatus.FRESH,
    "arancione": LotStatus.NEAR_EXPIRY,
    "nearexpiry": LotStatus.NEAR_EXPIRY,
    "inscadenza": LotStatus.NEAR_EXPIRY,
    "rosso": LotStatus.EXPIRED,
    "expired": LotStatus.EXPIRED,
    "scaduto": LotStatus.EXPIRED,
}


def parse_lot_status(value: str | None) -> LotStatus | None:
    """Map a remote status spelling to a LotStatus."""
    if not value:
        return None
    key = "".join(ch for ch in value.strip().lower() if ch not in " _-")
    return _LOT_STATUS_ALIASES.get(key)


def derive_lot_status(
    expiry_date: date | None,
    near_expiry_days: int,
    today: date | None = None,
) -> LotStatus:
    """Derive freshness from the expiry date."""
    if expiry_date is None:
        return LotStatus.FRESH
    today = today or date.today()
    if expiry_date < today:
        return LotStatus.EXPIRED
    if expiry_date <= today + timedelta(days=near_expiry_days):
        return LotStatus.NEAR_EXPIRY
    return LotStatus.FRESH


class Lot(BaseModel):
    """Surplus food batch offered by an origin center."""

    id: int
    name: str = "Senza nome"
    quantity: float = 0.0
    unit: str = "pz"
    expiry_date: date | None = None
    origin_center_id: int | None = None
    origin_center_name: str | None = None
    status: LotStatus = LotStatus.FRESH
    available: bool = True

    @property
    def is_open_for_reservation(self) -> bool:
        """Check if a new reservation may be placed on this lot."""
        return self.available and self.status != LotStatus.EXPIRED
