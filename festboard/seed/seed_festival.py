"""
festboard/seed/seed_festival.py
Seed the fixed houses and example events (idempotent), plus optional demo
results for rehearsals and their cleanup.
"""
import asyncio
import logging
import random
from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from festboard.database import AsyncSessionLocal, init_db
from festboard.orm.event import Event, EventLevel
from festboard.orm.institution import Institution
from festboard.orm.result import Result
from festboard.realtime.fanout_bus import FanoutBus, get_fanout_bus
from festboard.schemas.results import ResultSubmission
from festboard.services import result_service

logger = logging.getLogger(__name__)

# The three houses are fixed for the festival
HOUSES = [
    {"name": "Red House", "display_name": "Red", "code": "RED"},
    {"name": "Blue House", "display_name": "Blue", "code": "BLUE"},
    {"name": "Green House", "display_name": "Green", "code": "GREEN"},
]

EXAMPLE_EVENTS = [
    {"name": "Solo Dance", "category": "Dance", "level": EventLevel.HIGH_SCHOOL},
    {"name": "Group Dance", "category": "Dance", "level": EventLevel.HIGH_SCHOOL},
    {"name": "Live Art", "category": "Art", "level": EventLevel.HIGHER_SECONDARY},
]

DEMO_SUBMITTER = "test-seed"

DEMO_EVENTS = [
    {"name": "Debate Competition", "category": "Academic", "level": EventLevel.HIGH_SCHOOL},
    {"name": "Quiz Bowl", "category": "Academic", "level": EventLevel.HIGHER_SECONDARY},
    {"name": "Singing Competition", "category": "Music", "level": EventLevel.HIGH_SCHOOL},
    {"name": "Drama Performance", "category": "Arts", "level": EventLevel.HIGHER_SECONDARY},
    {"name": "Poetry Recitation", "category": "Arts", "level": EventLevel.HIGH_SCHOOL},
    {"name": "Essay Writing", "category": "Academic", "level": EventLevel.HIGHER_SECONDARY},
    {"name": "Photography Contest", "category": "Arts", "level": EventLevel.HIGHER_SECONDARY},
]

DEMO_STUDENTS = [
    "Alex Johnson", "Sarah Williams", "Michael Brown", "Emily Davis", "James Wilson",
    "Olivia Martinez", "Daniel Anderson", "Sophia Taylor", "Matthew Thomas", "Isabella Jackson",
    "David White", "Emma Harris", "Christopher Martin", "Ava Thompson", "Andrew Garcia",
]


async def seed_houses(db: AsyncSession) -> int:
    """Insert or refresh the fixed houses. Returns the number inserted."""
    inserted = 0
    for house in HOUSES:
        result = await db.execute(select(Institution).where(Institution.code == house["code"]))
        existing = result.scalar_one_or_none()
        if existing is None:
            db.add(Institution(is_active=True, **house))
            inserted += 1
            logger.info(f"  ✓ Added house {house['display_name']} ({house['code']})")
        else:
            existing.name = house["name"]
            existing.display_name = house["display_name"]
            existing.is_active = True
    await db.commit()
    return inserted


async def _upsert_events(db: AsyncSession, events: List[Dict]) -> List[Event]:
    rows = []
    for data in events:
        result = await db.execute(select(Event).where(Event.name == data["name"]))
        event = result.scalars().first()
        if event is None:
            event = Event(is_active=True, **data)
            db.add(event)
            logger.info(f"  ✓ Added event {data['name']} ({data['level'].value})")
        else:
            event.category = data["category"]
            event.level = data["level"]
            event.is_active = True
        rows.append(event)
    await db.commit()
    return rows


async def seed_events(db: AsyncSession) -> List[Event]:
    """Insert or refresh the example events."""
    return await _upsert_events(db, EXAMPLE_EVENTS)


async def seed_demo_results(
    db: AsyncSession,
    bus: FanoutBus,
    rng: Optional[random.Random] = None
) -> int:
    """
    Create demo events with random podiums for a rehearsal.

    Results go through the normal commit path, so totals and connected
    displays see them exactly like staff submissions. Events that already
    have a result are skipped. Returns the number of results created.
    """
    rng = rng or random.Random()
    houses = (await db.execute(select(Institution).where(Institution.is_active.is_(True)))).scalars().all()
    if not houses:
        raise RuntimeError("Seed the houses before creating demo results")

    events = await _upsert_events(db, DEMO_EVENTS)
    created = 0
    for event in events:
        existing = await db.execute(select(Result.id).where(Result.event_id == event.id))
        if existing.scalar_one_or_none() is not None:
            logger.info(f"  ⏭️  Skipping {event.name} (already has results)")
            continue

        students = rng.sample(DEMO_STUDENTS, 3)
        points = [rng.randint(8, 12), rng.randint(5, 8), rng.randint(3, 6)]
        submission = ResultSubmission(
            event_id=event.id,
            submitted_by=DEMO_SUBMITTER,
            placements=[
                {
                    "rank": rank,
                    "studentName": students[rank - 1],
                    "institutionId": rng.choice(houses).id,
                    "points": points[rank - 1],
                }
                for rank in (1, 2, 3)
            ],
        )
        await result_service.submit_result(db, bus, submission)
        created += 1
        logger.info(f"  ✓ Created demo result for {event.name}")

    return created


async def cleanup_demo_data(db: AsyncSession, bus: FanoutBus) -> Dict[str, int]:
    """
    Remove demo results (taking their points back out of the totals) and
    the demo events that no longer have a result.
    """
    names = [data["name"] for data in DEMO_EVENTS]
    events = (await db.execute(select(Event).where(Event.name.in_(names)))).scalars().all()
    event_ids = [event.id for event in events]

    deleted_results = 0
    if event_ids:
        stmt = select(Result.id).where(
            Result.event_id.in_(event_ids),
            Result.submitted_by == DEMO_SUBMITTER,
        )
        for result_id in (await db.execute(stmt)).scalars().all():
            await result_service.delete_result(db, bus, result_id)
            deleted_results += 1

    deleted_events = 0
    for event in events:
        remaining = await db.execute(select(Result.id).where(Result.event_id == event.id))
        if remaining.scalar_one_or_none() is not None:
            logger.warning(f"  ⚠️  Kept event {event.name} - has a non-demo result")
            continue
        await db.delete(event)
        deleted_events += 1
    await db.commit()

    logger.info(f"Deleted {deleted_results} demo results and {deleted_events} demo events")
    return {"results": deleted_results, "events": deleted_events}


async def seed_festival(demo: bool = False) -> None:
    """Create tables, then seed houses, example events and optionally demo results."""
    await init_db()
    async with AsyncSessionLocal() as db:
        inserted = await seed_houses(db)
        logger.info(f"✓ Houses seeded ({inserted} new)")
        events = await seed_events(db)
        logger.info(f"✓ {len(events)} example events ready")
        if demo:
            created = await seed_demo_results(db, get_fanout_bus())
            logger.info(f"✓ {created} demo results created")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")
    asyncio.run(seed_festival())
