"""
Shared fixtures: a throwaway SQLite database per test, a private fan-out
bus, the seeded houses and events, and an HTTP client bound to the app.
"""
from types import SimpleNamespace

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select

from festboard.database import build_engine, build_session_factory, create_schema, get_db
from festboard.main import app
from festboard.orm.institution import Institution
from festboard.realtime.fanout_bus import FanoutBus, get_fanout_bus
from festboard.schemas.results import ResultSubmission
from festboard.seed.seed_festival import seed_events, seed_houses


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'festboard-test.db'}", echo=False)
    await create_schema(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def bus():
    bus = FanoutBus(max_queue_size=50)
    yield bus
    bus.close()


@pytest_asyncio.fixture
async def festival(session_factory):
    """Seed Red/Blue/Green and the example events; expose their ids."""
    async with session_factory() as session:
        await seed_houses(session)
        events = await seed_events(session)
        houses = (await session.execute(select(Institution))).scalars().all()

    by_code = {house.code: house.id for house in houses}
    by_name = {event.name: event.id for event in events}
    return SimpleNamespace(
        red=by_code["RED"],
        blue=by_code["BLUE"],
        green=by_code["GREEN"],
        solo_dance=by_name["Solo Dance"],
        group_dance=by_name["Group Dance"],
        live_art=by_name["Live Art"],
    )


@pytest.fixture
def make_submission():
    """Build a valid three-place submission, overriding any field."""
    def _make(event_id, first, second, third, points=(10, 7, 5), names=("Alice", "Bob", "Cara")):
        return ResultSubmission.model_validate({
            "eventId": event_id,
            "submittedBy": "stage-desk",
            "placements": [
                {"rank": 1, "studentName": names[0], "institutionId": first, "points": points[0]},
                {"rank": 2, "studentName": names[1], "institutionId": second, "points": points[1]},
                {"rank": 3, "studentName": names[2], "institutionId": third, "points": points[2]},
            ],
        })
    return _make


@pytest_asyncio.fixture
async def client(session_factory, bus):
    """HTTP client wired to the test database and bus."""
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_fanout_bus] = lambda: bus
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
