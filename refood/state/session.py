"""Session collaborators: bearer token, user data and cached center id."""

import hashlib
from typing import Any, Protocol

from refood.config import get_settings
from refood.state.manager import StateManager
from refood.utils.logging import get_logger

logger = get_logger(__name__)

USER_TOKEN_KEY = "user_token"
USER_DATA_KEY = "user_data"


class SessionProvider(Protocol):
    """What the reservation core needs from the session layer."""

    async def get_token(self) -> str | None: ...

    async def get_user(self) -> dict[str, Any] | None: ...

    async def get_cached_center_id(self) -> int | None: ...

    async def save_center_id(self, center_id: int) -> None: ...


def _as_center_id(value: Any) -> int | None:
    try:
        return int(value) if value not in (None, "") else None
    except (TypeError, ValueError):
        return None


def token_digest(token: str | None) -> str:
    """Short stable digest used to key per-token data without storing the token."""
    return hashlib.sha256((token or "").encode()).hexdigest()[:16]


class StoredSession:
    """Session data persisted in the local key-value store."""

    def __init__(self, state_manager: StateManager):
        self.state = state_manager
        self.settings = get_settings()

    async def get_token(self) -> str | None:
        token = await self.state.get(USER_TOKEN_KEY)
        return str(token) if token else None

    async def get_user(self) -> dict[str, Any] | None:
        user = await self.state.get(USER_DATA_KEY)
        return user if isinstance(user, dict) else None

    async def get_cached_center_id(self) -> int | None:
        center_id = _as_center_id(await self.state.get(self.settings.center_id_cache_key))
        if center_id is not None:
            logger.debug("center_id_from_cache", center_id=center_id)
        return center_id

    async def save_center_id(self, center_id: int) -> None:
        await self.state.set(self.settings.center_id_cache_key, str(center_id))
        logger.info("center_id_saved", center_id=center_id)


class StaticSession:
    """Session held in memory, e.g. built from request headers."""

    def __init__(
        self,
        token: str | None,
        user: dict[str, Any] | None = None,
        center_id: int | None = None,
    ):
        self.token = token
        self.user = user
        self.center_id = center_id

    async def get_token(self) -> str | None:
        return self.token

    async def get_user(self) -> dict[str, Any] | None:
        return self.user

    async def get_cached_center_id(self) -> int | None:
        return self.center_id

    async def save_center_id(self, center_id: int) -> None:
        self.center_id = center_id


class RequestSession(StaticSession):
    """Request-scoped credentials; the chosen center persists per token."""

    def __init__(
        self,
        token: str | None,
        user: dict[str, Any] | None,
        state_manager: StateManager,
    ):
        super().__init__(token, user=user)
        self.state = state_manager
        self.settings = get_settings()

    def _center_key(self) -> str:
        return f"{self.settings.center_id_cache_key}:{token_digest(self.token)}"

    async def get_cached_center_id(self) -> int | None:
        return _as_center_id(await self.state.get(self._center_key()))

    async def save_center_id(self, center_id: int) -> None:
        await self.state.set(self._center_key(), str(center_id))
        logger.info("center_id_saved", center_id=center_id, scope="token")
