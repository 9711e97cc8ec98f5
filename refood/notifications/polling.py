"""Unread-notification polling with degraded mode after repeated failures."""

import asyncio
import time
from dataclasses import dataclass
from typing import Awaitable, Callable

from refood.config import Settings, get_settings
from refood.errors import ReservationError
from refood.notifications.gateway import NotificationGateway
from refood.utils.logging import get_logger

logger = get_logger(__name__)

# Malformed bodies surface as lookup or conversion errors.
POLL_ERRORS = (ReservationError, KeyError, TypeError, ValueError)


@dataclass
class PollState:
    """Failure streak and last known count of one session's polling."""

    last_count: int = 0
    last_fetch: float | None = None
    failures: int = 0
    degraded: bool = False


class UnreadCountPoller:
    """
    Periodically asks for the unread count, backing off after failures.

    Pass the same ``PollState`` to pollers built for successive requests of
    one session so the failure streak and the count cache carry over.
    """

    def __init__(
        self,
        gateway: NotificationGateway,
        settings: Settings | None = None,
        clock: Callable[[], float] = time.monotonic,
        state: PollState | None = None,
    ):
        self.gateway = gateway
        self.settings = settings or get_settings()
        self._clock = clock
        self.state = state if state is not None else PollState()
        self._stopped = asyncio.Event()

    @property
    def last_count(self) -> int:
        return self.state.last_count

    @property
    def failures(self) -> int:
        return self.state.failures

    @property
    def degraded(self) -> bool:
        return self.state.degraded

    async def poll_once(self) -> int:
        """Return the unread count, from cache, network, or the last known value."""
        state = self.state
        now = self._clock()
        if (
            state.last_fetch is not None
            and now - state.last_fetch < self.settings.unread_count_cache_seconds
        ):
            return state.last_count

        if state.degraded:
            logger.debug("unread_count_degraded", count=state.last_count)
            return state.last_count

        try:
            count = await self._fetch()
        except POLL_ERRORS as e:
            state.failures += 1
            logger.warning(
                "unread_count_failed",
                failures=state.failures,
                max_retries=self.settings.poll_max_retries,
                error=str(e),
            )
            if state.failures > self.settings.poll_max_retries:
                state.degraded = True
                logger.error("unread_count_polling_degraded", failures=state.failures)
            return state.last_count

        state.failures = 0
        state.last_count = count
        state.last_fetch = now
        return count

    async def _fetch(self) -> int:
        try:
            return await self.gateway.unread_count()
        except POLL_ERRORS as e:
            logger.warning("unread_count_endpoint_unavailable", error=str(e))
            return await self.gateway.unread_count_from_list()

    def reset(self) -> None:
        """Leave degraded mode and forget the failure streak."""
        self.state.failures = 0
        self.state.degraded = False
        self.state.last_fetch = None

    def stop(self) -> None:
        self._stopped.set()

    async def run(self, on_count: Callable[[int], Awaitable[None]]) -> None:
        """Poll until ``stop`` is called."""
        self._stopped.clear()
        while not self._stopped.is_set():
            await on_count(await self.poll_once())
            try:
                await asyncio.wait_for(
                    self._stopped.wait(), timeout=self.settings.poll_interval_seconds
                )
            except asyncio.TimeoutError:
                continue
