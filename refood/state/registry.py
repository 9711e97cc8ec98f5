"""In-process per-token state shared by the requests of one session."""

from collections import OrderedDict
from dataclasses import dataclass, field

from refood.config import Settings, get_settings
from refood.notifications.polling import PollState
from refood.state.cache import CacheLayer
from refood.state.session import token_digest
from refood.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class SessionState:
    """Read cache and polling state of one bearer token."""

    cache: CacheLayer
    poll: PollState = field(default_factory=PollState)


class SessionRegistry:
    """
    Keeps a ``SessionState`` per token across HTTP requests.

    Request-scoped services are rebuilt on every call; handing them the
    same cache and polling state keeps the collection cache warm and lets
    the unread-count poller reach degraded mode. The least recently used
    session is dropped once the registry is full.
    """

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()
        self._sessions: OrderedDict[str, SessionState] = OrderedDict()

    def __len__(self) -> int:
        return len(self._sessions)

    def for_token(self, token: str | None) -> SessionState:
        key = token_digest(token)
        state = self._sessions.get(key)
        if state is not None:
            self._sessions.move_to_end(key)
            return state

        state = SessionState(cache=CacheLayer(self.settings.cache_freshness_seconds))
        self._sessions[key] = state
        while len(self._sessions) > self.settings.session_registry_size:
            evicted, _ = self._sessions.popitem(last=False)
            logger.debug("session_state_evicted", session=evicted)
        return state
