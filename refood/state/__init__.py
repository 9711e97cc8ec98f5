"""State management modules."""

from refood.state.cache import CacheEntry, CacheLayer
from refood.state.manager import StateManager
from refood.state.session import (
    RequestSession,
    SessionProvider,
    StaticSession,
    StoredSession,
)

__all__ = [
    "CacheEntry",
    "CacheLayer",
    "RequestSession",
    "SessionProvider",
    "StateManager",
    "StaticSession",
    "StoredSession",
]
