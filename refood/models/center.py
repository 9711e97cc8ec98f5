"""Center models."""

from enum import Enum

from pydantic import BaseModel


class CenterKind(str, Enum):
    """Role classification of a center."""

    ORIGIN = "origin"
    SOCIAL = "social"
    RECYCLING = "recycling"
    UNKNOWN = "unknown"


def parse_center_kind(value: str | None) -> CenterKind:
    """Classify a center from its remote type description."""
    if not value:
        return CenterKind.UNKNOWN
    lowered = value.lower()
    if "social" in lowered:
        return CenterKind.SOCIAL
    if "ricicl" in lowered or "recycl" in lowered:
        return CenterKind.RECYCLING
    if "distribu" in lowered or "origin" in lowered or "supermercat" in lowered:
        return CenterKind.ORIGIN
    return CenterKind.UNKNOWN


class Center(BaseModel):
    """A center taking part in redistribution."""

    id: int
    name: str = ""
    address: str | None = None
    kind: CenterKind = CenterKind.UNKNOWN

    @property
    def is_social(self) -> bool:
        """Check if all members receive reservation notices."""
        return self.kind == CenterKind.SOCIAL

    @property
    def is_receiving_capable(self) -> bool:
        """Check if the center may reserve lots."""
        return self.kind in (CenterKind.SOCIAL, CenterKind.RECYCLING)
