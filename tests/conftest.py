"""Pytest configuration and fixtures."""

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import AsyncClient

from refood.client.http import RefoodClient
from refood.config import Settings
from refood.models.reservation import Reservation
from refood.reservations.normalize import normalize_reservation
from refood.reservations.service import ReservationService
from refood.state.cache import CacheLayer
from refood.state.manager import StateManager
from refood.state.session import StaticSession
from tests.fakes import (
    API_URL,
    ORIGIN_CENTER_ID,
    RECYCLING_CENTER_ID,
    SOCIAL_CENTER_ID,
    FakeRedis,
    FakeRefoodApi,
)


@pytest.fixture
def settings() -> Settings:
    """Settings tuned for fast tests."""
    return Settings(
        api_url=API_URL,
        max_retries=2,
        retry_delay=0.0,
        log_level="DEBUG",
        log_format="text",
    )


@pytest.fixture
def fake_api() -> FakeRefoodApi:
    """Remote backend with one origin, one social and one recycling center."""
    api = FakeRefoodApi()
    api.add_center(ORIGIN_CENTER_ID, "Supermercato Centrale", "Distribuzione")
    api.add_center(SOCIAL_CENTER_ID, "Centro Sociale Aurora", "Centro Sociale")
    api.add_center(RECYCLING_CENTER_ID, "Ricicla Tutto", "Centro Riciclaggio")
    api.add_lot(10)
    return api


@pytest.fixture
def session() -> StaticSession:
    """Logged-in social center user."""
    return StaticSession(
        "test-token",
        user={"id": 7, "ruolo": "CentroSociale", "centro_id": SOCIAL_CENTER_ID},
    )


@pytest_asyncio.fixture
async def http_client(fake_api: FakeRefoodApi) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client wired to the fake backend."""
    async with fake_api.client(API_URL) as client:
        yield client


@pytest_asyncio.fixture
async def refood_client(
    session: StaticSession,
    http_client: AsyncClient,
    settings: Settings,
) -> RefoodClient:
    """Authenticated client over the fake backend."""
    return RefoodClient(session, http_client=http_client, settings=settings)


@pytest_asyncio.fixture
async def service(
    session: StaticSession,
    http_client: AsyncClient,
    settings: Settings,
) -> AsyncGenerator[ReservationService, None]:
    """Reservation service over the fake backend."""
    service = ReservationService(
        session,
        settings=settings,
        http_client=http_client,
        cache=CacheLayer(settings.cache_freshness_seconds),
    )
    yield service
    await service.aclose()


@pytest_asyncio.fixture
async def state_manager() -> AsyncGenerator[StateManager, None]:
    """State manager backed by an in-memory redis stand-in."""
    manager = StateManager(redis_url="redis://fake")
    manager.redis_client = FakeRedis()
    yield manager
    await manager.disconnect()


# Sample data fixtures


@pytest.fixture
def requested_reservation(fake_api: FakeRefoodApi) -> Reservation:
    """A reservation in state Requested on lot 10."""
    raw = fake_api.add_reservation(1, 10, "Prenotato")
    return normalize_reservation(raw)


@pytest.fixture
def confirmed_reservation(fake_api: FakeRefoodApi) -> Reservation:
    """A reservation in state Confirmed on lot 10."""
    raw = fake_api.add_reservation(1, 10, "Confermato")
    return normalize_reservation(raw)
