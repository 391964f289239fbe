"""
Leaderboard Router

Standings are recomputed from stored results on every request.
"""
import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from festboard.config.settings import settings
from festboard.database import get_db
from festboard.services import leaderboard_service as lb_svc
from festboard.services.catalog_service import resolve_level_filter

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/leaderboard", tags=["leaderboard"])


@router.get("")
async def get_leaderboard(
    level: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db)
):
    entries = await lb_svc.compute_leaderboard(
        db,
        limit=settings.LEADERBOARD_LIMIT,
        level=resolve_level_filter(level),
    )
    return {
        "data": [entry.to_payload() for entry in entries],
        "updatedAt": datetime.utcnow().isoformat() + "Z",
    }
