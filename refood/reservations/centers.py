"""Resolution of the receiving center acting on behalf of the user."""

from typing import Any

from refood.errors import (
    CenterRequiredError,
    NotFoundError,
    UnauthorizedError,
)
from refood.reservations.repository import CenterRepository
from refood.state.session import SessionProvider
from refood.utils.logging import get_logger

logger = get_logger(__name__)

RECEIVING_ROLES = {
    "CentroSociale",
    "CENTRO_SOCIALE",
    "CentroRiciclaggio",
    "CENTRO_RICICLAGGIO",
}


def _center_id(value: Any) -> int | None:
    try:
        return int(value) if value not in (None, "") else None
    except (TypeError, ValueError):
        return None


class CenterResolver:
    """Finds the acting center from override, session, local cache or remote."""

    def __init__(self, session: SessionProvider, centers: CenterRepository):
        self.session = session
        self.centers = centers

    async def peek(self, override_center_id: int | None = None) -> int | None:
        """Best local guess, without network calls or side effects."""
        if override_center_id:
            return override_center_id
        user = await self.session.get_user() or {}
        return _center_id(user.get("centro_id")) or await self.session.get_cached_center_id()

    async def resolve(self, override_center_id: int | None = None) -> int:
        """Resolve the acting center or raise.

        Raises:
            UnauthorizedError: no user data, or a role that may not reserve
            CenterRequiredError: nothing found; the caller must pass an override
        """
        user = await self.session.get_user()
        if not user:
            raise UnauthorizedError("Dati utente non trovati. Effettua nuovamente il login.")

        role = user.get("ruolo")
        if role not in RECEIVING_ROLES:
            raise UnauthorizedError(
                "Non hai i permessi per prenotare questo lotto. "
                "Solo i centri sociali o di riciclaggio possono prenotare.",
                role=role,
            )

        if override_center_id:
            await self.session.save_center_id(override_center_id)
            logger.info("acting_center_resolved", center_id=override_center_id, source="override")
            return override_center_id

        center_id = _center_id(user.get("centro_id"))
        if center_id:
            logger.debug("acting_center_resolved", center_id=center_id, source="session")
            return center_id

        center_id = await self.session.get_cached_center_id()
        if center_id:
            logger.info("acting_center_resolved", center_id=center_id, source="local_cache")
            return center_id

        try:
            centers = await self.centers.list_user_centers()
        except (UnauthorizedError, NotFoundError) as e:
            logger.warning("user_centers_unavailable", error=e.message)
            raise CenterRequiredError(
                "È necessario specificare manualmente il centro per la prenotazione",
                missing_center=True,
            ) from e

        if not centers:
            raise CenterRequiredError(
                "Non sei associato a nessun centro. Impossibile effettuare la prenotazione.",
                missing_center=True,
            )

        center_id = centers[0].id
        await self.session.save_center_id(center_id)
        logger.info("acting_center_resolved", center_id=center_id, source="user_centers")
        return center_id
