"""Tests for post-commit hooks."""

import asyncio

import pytest

from refood.models.lot import Lot
from refood.models.notification import TransitionKind
from refood.models.reservation import Reservation, ReservationState
from refood.reservations.hooks import PostCommitHooks


@pytest.fixture
def reservation() -> Reservation:
    return Reservation(id=1, lot_id=10, state=ReservationState.CONFIRMED)


@pytest.mark.asyncio
async def test_hooks_run_in_order(reservation: Reservation) -> None:
    hooks = PostCommitHooks()
    seen: list[tuple[str, TransitionKind, str | None]] = []

    async def first(r: Reservation, kind: TransitionKind, lot: Lot | None, note: str | None):
        seen.append(("first", kind, note))

    async def second(r: Reservation, kind: TransitionKind, lot: Lot | None, note: str | None):
        seen.append(("second", kind, note))

    hooks.register("first", first)
    hooks.register("second", second)

    await hooks.run(reservation, TransitionKind.CONFIRMED, note="ok")

    assert seen == [
        ("first", TransitionKind.CONFIRMED, "ok"),
        ("second", TransitionKind.CONFIRMED, "ok"),
    ]


@pytest.mark.asyncio
async def test_failing_hook_is_isolated(reservation: Reservation) -> None:
    hooks = PostCommitHooks()
    seen: list[str] = []

    async def broken(*args: object) -> None:
        raise RuntimeError("gateway down")

    async def healthy(*args: object) -> None:
        seen.append("healthy")

    hooks.register("broken", broken)
    hooks.register("healthy", healthy)

    await hooks.run(reservation, TransitionKind.DELIVERED)

    assert seen == ["healthy"]


@pytest.mark.asyncio
async def test_background_hooks_are_drained(reservation: Reservation) -> None:
    hooks = PostCommitHooks(background=True)
    release = asyncio.Event()
    seen: list[int] = []

    async def slow(r: Reservation, *args: object) -> None:
        await release.wait()
        seen.append(r.id)

    hooks.register("slow", slow)

    await hooks.run(reservation, TransitionKind.CONFIRMED)
    assert seen == []

    release.set()
    await hooks.drain()
    assert seen == [1]
