"""Tests for unread notification polling."""

import pytest

from refood.config import Settings
from refood.notifications.polling import PollState, UnreadCountPoller
from refood.reservations.service import ReservationService
from tests.fakes import FakeRefoodApi


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def poller(
    service: ReservationService, settings: Settings, clock: FakeClock
) -> UnreadCountPoller:
    tuned = settings.model_copy(
        update={"poll_max_retries": 1, "unread_count_cache_seconds": 10.0}
    )
    return UnreadCountPoller(service.gateway, tuned, clock=clock)


def _count_calls(fake_api: FakeRefoodApi) -> int:
    return len(fake_api.calls_to("GET", r"/notifiche(/conteggio)?"))


@pytest.mark.asyncio
async def test_dedicated_endpoint(poller: UnreadCountPoller, fake_api: FakeRefoodApi) -> None:
    fake_api.unread = 4

    assert await poller.poll_once() == 4
    assert fake_api.calls_to("GET", r"/notifiche") == []


@pytest.mark.asyncio
async def test_count_reused_within_window(
    poller: UnreadCountPoller, fake_api: FakeRefoodApi, clock: FakeClock
) -> None:
    fake_api.unread = 4
    await poller.poll_once()
    fake_api.unread = 6

    clock.now += 5
    assert await poller.poll_once() == 4

    clock.now += 10
    assert await poller.poll_once() == 6
    assert _count_calls(fake_api) == 2


@pytest.mark.asyncio
async def test_list_fallback_when_count_endpoint_missing(
    poller: UnreadCountPoller, fake_api: FakeRefoodApi
) -> None:
    fake_api.unread = 7
    fake_api.count_endpoint_status = 404

    assert await poller.poll_once() == 7
    assert fake_api.calls_to("GET", r"/notifiche")[0].params == {"letta": "false", "limit": "1"}


@pytest.mark.asyncio
async def test_malformed_count_body_uses_list(
    poller: UnreadCountPoller, fake_api: FakeRefoodApi
) -> None:
    fake_api.unread = 2
    fake_api.respond_with("GET", r"/notifiche/conteggio", 200, {"totale": 2})

    assert await poller.poll_once() == 2


@pytest.mark.asyncio
async def test_failure_returns_last_known_count(
    poller: UnreadCountPoller, fake_api: FakeRefoodApi, clock: FakeClock
) -> None:
    fake_api.unread = 3
    await poller.poll_once()

    clock.now += 60
    fake_api.fail("GET", r"/notifiche(/conteggio)?", 500)

    assert await poller.poll_once() == 3
    assert poller.failures == 1
    assert poller.degraded is False


@pytest.mark.asyncio
async def test_degraded_mode_stops_network_calls(
    poller: UnreadCountPoller, fake_api: FakeRefoodApi
) -> None:
    fake_api.fail("GET", r"/notifiche(/conteggio)?", 500)

    assert await poller.poll_once() == 0
    assert await poller.poll_once() == 0
    assert poller.degraded is True

    calls = _count_calls(fake_api)
    assert await poller.poll_once() == 0
    assert _count_calls(fake_api) == calls


@pytest.mark.asyncio
async def test_shared_state_carries_the_failure_streak(
    service: ReservationService, settings: Settings, clock: FakeClock, fake_api: FakeRefoodApi
) -> None:
    """Test that pollers built per request continue the same streak."""
    tuned = settings.model_copy(update={"poll_max_retries": 1})
    state = PollState()
    fake_api.fail("GET", r"/notifiche(/conteggio)?", 500)

    await UnreadCountPoller(service.gateway, tuned, clock=clock, state=state).poll_once()
    await UnreadCountPoller(service.gateway, tuned, clock=clock, state=state).poll_once()

    assert state.failures == 2
    assert state.degraded is True

    calls = _count_calls(fake_api)
    later = UnreadCountPoller(service.gateway, tuned, clock=clock, state=state)
    assert await later.poll_once() == 0
    assert _count_calls(fake_api) == calls


@pytest.mark.asyncio
async def test_reset_leaves_degraded_mode(
    poller: UnreadCountPoller, fake_api: FakeRefoodApi
) -> None:
    fake_api.count_endpoint_status = 503
    fake_api.fail("GET", r"/notifiche", 500)
    await poller.poll_once()
    await poller.poll_once()
    assert poller.degraded is True

    fake_api.failures.clear()
    fake_api.count_endpoint_status = 200
    fake_api.unread = 5
    poller.reset()

    assert await poller.poll_once() == 5
    assert poller.failures == 0


@pytest.mark.asyncio
async def test_run_until_stopped(poller: UnreadCountPoller, fake_api: FakeRefoodApi) -> None:
    fake_api.unread = 1
    seen: list[int] = []

    async def on_count(count: int) -> None:
        seen.append(count)
        poller.stop()

    await poller.run(on_count)

    assert seen == [1]


@pytest.mark.asyncio
async def test_service_unread_count(service: ReservationService, fake_api: FakeRefoodApi) -> None:
    fake_api.unread = 9

    assert await service.unread_count() == 9
