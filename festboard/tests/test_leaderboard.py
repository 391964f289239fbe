"""
Leaderboard tests: standings are recomputed from stored placements on
every read.
"""
import pytest
from sqlalchemy import update

from festboard.orm.event import Event, EventLevel
from festboard.orm.institution_total import InstitutionTotal
from festboard.services import result_service
from festboard.services.leaderboard_service import compute_leaderboard


@pytest.mark.asyncio
async def test_empty_festival_has_empty_board(db, festival):
    assert await compute_leaderboard(db) == []


@pytest.mark.asyncio
async def test_board_carries_house_metadata(db, bus, festival, make_submission):
    await result_service.submit_result(
        db, bus, make_submission(festival.solo_dance, festival.red, festival.blue, festival.green)
    )

    board = [entry.to_payload() for entry in await compute_leaderboard(db)]

    assert board[0] == {
        "institutionId": festival.red,
        "totalPoints": 10.0,
        "displayName": "Red",
        "code": "RED",
        "logoUrl": None,
    }
    assert [row["code"] for row in board] == ["RED", "BLUE", "GREEN"]


@pytest.mark.asyncio
async def test_houses_without_points_are_omitted(db, bus, festival, make_submission):
    await result_service.submit_result(
        db, bus, make_submission(festival.solo_dance, festival.red, festival.red, festival.blue)
    )

    board = await compute_leaderboard(db)

    assert [(entry.code, entry.total_points) for entry in board] == [("RED", 17.0), ("BLUE", 5.0)]


@pytest.mark.asyncio
async def test_ties_break_on_code_then_id(db, bus, festival, make_submission):
    await result_service.submit_result(
        db, bus, make_submission(festival.solo_dance, festival.red, festival.green, festival.blue, points=(5, 5, 5))
    )

    board = await compute_leaderboard(db)

    assert [entry.code for entry in board] == ["BLUE", "GREEN", "RED"]


@pytest.mark.asyncio
async def test_reads_are_repeatable(db, bus, festival, make_submission):
    await result_service.submit_result(
        db, bus, make_submission(festival.solo_dance, festival.red, festival.blue, festival.green)
    )
    await result_service.submit_result(
        db, bus, make_submission(festival.live_art, festival.green, festival.blue, festival.red)
    )

    first = await compute_leaderboard(db)
    second = await compute_leaderboard(db)

    assert first == second


@pytest.mark.asyncio
async def test_board_ignores_running_totals_table(db, bus, festival, make_submission):
    """A drifted counter row never leaks into the standings."""
    await result_service.submit_result(
        db, bus, make_submission(festival.solo_dance, festival.red, festival.blue, festival.green)
    )
    await db.execute(update(InstitutionTotal).values(total_points=999))
    await db.commit()

    board = await compute_leaderboard(db)

    assert {entry.code: entry.total_points for entry in board} == {"RED": 10.0, "BLUE": 7.0, "GREEN": 5.0}


@pytest.mark.asyncio
async def test_limit_truncates(db, bus, festival, make_submission):
    await result_service.submit_result(
        db, bus, make_submission(festival.solo_dance, festival.red, festival.blue, festival.green)
    )

    assert [entry.code for entry in await compute_leaderboard(db, limit=2)] == ["RED", "BLUE"]
    assert await compute_leaderboard(db, limit=0) == []


@pytest.mark.asyncio
async def test_level_filter_counts_active_events_only(db, bus, festival, make_submission):
    await result_service.submit_result(
        db, bus, make_submission(festival.solo_dance, festival.red, festival.blue, festival.green)
    )
    await result_service.submit_result(
        db, bus, make_submission(festival.group_dance, festival.blue, festival.red, festival.green)
    )
    await result_service.submit_result(
        db, bus, make_submission(festival.live_art, festival.green, festival.blue, festival.red, points=(12, 6, 3))
    )

    high_school = await compute_leaderboard(db, level=EventLevel.HIGH_SCHOOL)
    higher_secondary = await compute_leaderboard(db, level=EventLevel.HIGHER_SECONDARY)

    assert {e.code: e.total_points for e in high_school} == {"RED": 17.0, "BLUE": 17.0, "GREEN": 10.0}
    assert [e.code for e in high_school] == ["BLUE", "RED", "GREEN"]
    assert {e.code: e.total_points for e in higher_secondary} == {"GREEN": 12.0, "BLUE": 6.0, "RED": 3.0}

    await db.execute(update(Event).where(Event.id == festival.group_dance).values(is_active=False))
    await db.commit()

    high_school = await compute_leaderboard(db, level=EventLevel.HIGH_SCHOOL)
    assert {e.code: e.total_points for e in high_school} == {"RED": 10.0, "BLUE": 7.0, "GREEN": 5.0}

    # The overall board still counts every stored result
    overall = await compute_leaderboard(db)
    assert {e.code: e.total_points for e in overall} == {"RED": 20.0, "BLUE": 23.0, "GREEN": 22.0}


@pytest.mark.asyncio
async def test_board_drops_deleted_result_immediately(db, bus, festival, make_submission):
    await result_service.submit_result(
        db, bus, make_submission(festival.solo_dance, festival.red, festival.blue, festival.green)
    )
    doomed = await result_service.submit_result(
        db, bus, make_submission(festival.live_art, festival.red, festival.blue, festival.green)
    )

    await result_service.delete_result(db, bus, doomed.id)
    board = await compute_leaderboard(db)

    assert {e.code: e.total_points for e in board} == {"RED": 10.0, "BLUE": 7.0, "GREEN": 5.0}
