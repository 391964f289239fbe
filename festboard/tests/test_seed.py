"""
Seeding and demo data tests.
"""
import random

import pytest
from sqlalchemy import func, select

from festboard.orm.event import Event
from festboard.orm.institution import Institution
from festboard.orm.institution_total import InstitutionTotal
from festboard.orm.result import Result
from festboard.seed.seed_festival import (
    DEMO_EVENTS, DEMO_SUBMITTER, cleanup_demo_data, seed_demo_results, seed_events, seed_houses,
)
from festboard.services import result_service
from festboard.services.leaderboard_service import compute_leaderboard


async def count(db, model):
    return (await db.execute(select(func.count()).select_from(model))).scalar_one()


@pytest.mark.asyncio
async def test_seeding_is_idempotent(db):
    assert await seed_houses(db) == 3
    first = await seed_events(db)

    assert await seed_houses(db) == 0
    second = await seed_events(db)

    assert await count(db, Institution) == 3
    assert [event.id for event in first] == [event.id for event in second]


@pytest.mark.asyncio
async def test_demo_results_need_houses(db, bus):
    with pytest.raises(RuntimeError):
        await seed_demo_results(db, bus)


@pytest.mark.asyncio
async def test_demo_results_go_through_commit_path(db, bus, festival):
    display = bus.register()
    display.drain()

    created = await seed_demo_results(db, bus, rng=random.Random(7))

    assert created == len(DEMO_EVENTS)
    assert display.pending == len(DEMO_EVENTS)
    submitters = (await db.execute(select(Result.submitted_by))).scalars().all()
    assert set(submitters) == {DEMO_SUBMITTER}

    # Running again skips events that already have a result
    assert await seed_demo_results(db, bus, rng=random.Random(7)) == 0


@pytest.mark.asyncio
async def test_cleanup_removes_demo_data_and_points(db, bus, festival, make_submission):
    await result_service.submit_result(
        db, bus, make_submission(festival.solo_dance, festival.red, festival.blue, festival.green)
    )
    await seed_demo_results(db, bus, rng=random.Random(3))

    counts = await cleanup_demo_data(db, bus)

    assert counts == {"results": len(DEMO_EVENTS), "events": len(DEMO_EVENTS)}
    assert await count(db, Result) == 1
    names = (await db.execute(select(Event.name))).scalars().all()
    assert not set(names) & {data["name"] for data in DEMO_EVENTS}

    board = await compute_leaderboard(db)
    assert {e.code: e.total_points for e in board} == {"RED": 10.0, "BLUE": 7.0, "GREEN": 5.0}
    totals = (await db.execute(select(InstitutionTotal))).scalars().all()
    by_house = {row.institution_id: row.total_points for row in totals}
    assert by_house == {festival.red: 10.0, festival.blue: 7.0, festival.green: 5.0}
