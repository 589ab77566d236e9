"""Shared pytest fixtures for PlaceSense tests."""

from __future__ import annotations

from collections.abc import AsyncGenerator, Awaitable, Callable
from typing import TYPE_CHECKING, Any

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from place_sense.models import AwardRestaurant, Base, Location
from place_sense.resolution.identity_key import Coordinates
from place_sense.resolution.records import SearchCandidate

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine


# In-memory SQLite; one shared connection so every session sees the same tables
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
async def test_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create a test database engine with all tables created."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """A fresh session per test. Tables are dropped with the engine."""
    async with session_factory() as session:
        yield session


# Type aliases for factory fixtures
MakeLocation = Callable[..., Awaitable[Location]]
MakeAward = Callable[..., Awaitable[AwardRestaurant]]
MakeCandidate = Callable[..., SearchCandidate]


@pytest.fixture
def make_location(db_session: AsyncSession) -> MakeLocation:
    """Factory fixture for persisted curated Location rows."""

    async def _make(
        location_id: str,
        *,
        name: str = "Test Location",
        lat: float | None = 40.0,
        lng: float | None = -73.0,
        google_place_id: str | None = None,
        lv_editor_score: float | None = None,
        lv_avg_user_score: float | None = None,
        **extra: Any,
    ) -> Location:
        row = Location(
            id=location_id,
            name=name,
            lat=lat,
            lng=lng,
            google_place_id=google_place_id,
            lv_editor_score=lv_editor_score,
            lv_avg_user_score=lv_avg_user_score,
            **extra,
        )
        db_session.add(row)
        await db_session.flush()
        return row

    return _make


@pytest.fixture
def make_award(db_session: AsyncSession) -> MakeAward:
    """Factory fixture for persisted AwardRestaurant rows."""

    async def _make(
        award_id: int,
        *,
        name: str = "Le Bernardin",
        address: str | None = "155 W 51st St, New York",
        lat: float | None = 40.7615,
        lng: float | None = -73.9818,
        award: str = "3 Stars",
        google_place_id: str | None = None,
        **extra: Any,
    ) -> AwardRestaurant:
        row = AwardRestaurant(
            id=award_id,
            name=name,
            address=address,
            lat=lat,
            lng=lng,
            award=award,
            google_place_id=google_place_id,
            **extra,
        )
        db_session.add(row)
        await db_session.flush()
        return row

    return _make


@pytest.fixture
def make_candidate() -> MakeCandidate:
    """Factory fixture for SearchCandidate instances."""

    def _make(
        place_id: str = "ChIJ-bernardin",
        *,
        name: str = "Le Bernardin",
        lat: float | None = 40.7615,
        lng: float | None = -73.9818,
        types: tuple[str, ...] = ("restaurant", "food"),
        formatted_address: str | None = "155 W 51st St, New York, NY 10019, USA",
        distance_meters: float | None = None,
    ) -> SearchCandidate:
        coords = Coordinates(lat, lng) if lat is not None and lng is not None else None
        return SearchCandidate(
            id=place_id,
            display_name=name,
            formatted_address=formatted_address,
            coordinates=coords,
            types=types,
            distance_meters=distance_meters,
        )

    return _make
