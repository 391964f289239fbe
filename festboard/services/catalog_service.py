"""
Catalogue Service

Events and houses that results refer to. Houses are fixed (seeded);
events can be added by staff before or during the festival.
"""
import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from festboard.errors import BadRequestError, log_store_failure
from festboard.orm.event import Event, EventLevel
from festboard.orm.institution import Institution
from festboard.schemas.festival import EventCreate

logger = logging.getLogger(__name__)


def resolve_level_filter(level: Optional[str]) -> Optional[EventLevel]:
    """
    Turn a `level` query parameter into an EventLevel.

    Raises:
        BadRequestError: the value names no known level
    """
    if level is None or not level.strip():
        return None
    try:
        return EventLevel(level.strip())
    except ValueError:
        allowed = ", ".join(lvl.value for lvl in EventLevel)
        raise BadRequestError(f"Unknown level '{level}' (expected one of: {allowed})")


async def list_events(db: AsyncSession, level: Optional[EventLevel] = None) -> List[Event]:
    stmt = select(Event).where(Event.is_active.is_(True))
    if level is not None:
        stmt = stmt.where(Event.level == level)
    stmt = stmt.order_by(Event.name, Event.id)
    return list((await db.execute(stmt)).scalars().all())


async def create_event(db: AsyncSession, data: EventCreate) -> Event:
    """
    Create an active event.

    A missing name is rejected; an unrecognised level falls back to high school.
    """
    if not data.name:
        raise BadRequestError("name is required")

    try:
        level = EventLevel(data.level)
    except ValueError:
        level = EventLevel.HIGH_SCHOOL

    event = Event(
        name=data.name,
        description=data.description,
        category=data.category,
        room_code=data.room_code,
        schedule_start=data.schedule.start if data.schedule else None,
        schedule_end=data.schedule.end if data.schedule else None,
        level=level,
        is_active=True,
    )

    try:
        db.add(event)
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        raise log_store_failure(e, "create_event")

    logger.info(f"Event {event.id} created: {event.name} ({level.value})")
    return event


async def list_institutions(db: AsyncSession) -> List[Institution]:
    stmt = (
        select(Institution)
        .where(Institution.is_active.is_(True))
        .order_by(Institution.display_name, Institution.id)
    )
    return list((await db.execute(stmt)).scalars().all())
