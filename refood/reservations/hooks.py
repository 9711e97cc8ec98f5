"""Post-commit hooks run after an authoritative reservation mutation."""

import asyncio
from typing import Awaitable, Callable

from refood.models.lot import Lot
from refood.models.notification import TransitionKind
from refood.models.reservation import Reservation
from refood.utils.logging import get_logger

logger = get_logger(__name__)

PostCommitHook = Callable[[Reservation, TransitionKind, Lot | None, str | None], Awaitable[object]]


class PostCommitHooks:
    """Fault-isolated side effects of a committed mutation.

    A failing hook is logged and never reaches the caller; the mutation it
    follows is already authoritative.
    """

    def __init__(self, background: bool = False):
        self.background = background
        self._hooks: list[tuple[str, PostCommitHook]] = []
        self._pending: set[asyncio.Task] = set()

    def register(self, name: str, hook: PostCommitHook) -> None:
        self._hooks.append((name, hook))

    async def run(
        self,
        reservation: Reservation,
        kind: TransitionKind,
        lot: Lot | None = None,
        note: str | None = None,
    ) -> None:
        """Run every hook, awaiting them or scheduling them as tasks."""
        for name, hook in self._hooks:
            call = self._isolated(name, hook, reservation, kind, lot, note)
            if self.background:
                task = asyncio.create_task(call)
                self._pending.add(task)
                task.add_done_callback(self._pending.discard)
            else:
                await call

    async def drain(self) -> None:
        """Wait for hooks scheduled in the background."""
        if self._pending:
            await asyncio.gather(*list(self._pending))

    async def _isolated(
        self,
        name: str,
        hook: PostCommitHook,
        reservation: Reservation,
        kind: TransitionKind,
        lot: Lot | None,
        note: str | None,
    ) -> None:
        try:
            await hook(reservation, kind, lot, note)
        except Exception as e:
            logger.error(
                "post_commit_hook_failed",
                hook=name,
                reservation_id=reservation.id,
                event_kind=kind.value,
                error=str(e),
            )
