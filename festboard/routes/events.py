"""
Events Router

Festival event catalogue.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from festboard.database import get_db
from festboard.schemas.festival import EventCreate
from festboard.services import catalog_service
from festboard.services.catalog_service import resolve_level_filter

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/events", tags=["events"])


@router.get("")
async def list_events(
    level: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db)
):
    events = await catalog_service.list_events(db, level=resolve_level_filter(level))
    return [event.to_dict() for event in events]


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_event(
    data: EventCreate,
    db: AsyncSession = Depends(get_db)
):
    event = await catalog_service.create_event(db, data)
    return {"ok": True, "id": event.id}
