"""
Results Router

Submission, deletion and listing of event results.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from festboard.config.settings import settings
from festboard.database import get_db
from festboard.realtime.fanout_bus import FanoutBus, get_fanout_bus
from festboard.schemas.results import (
    DeleteResultResponse, ResultListResponse, ResultSubmission, SubmitResultResponse,
)
from festboard.services import result_service
from festboard.services.catalog_service import resolve_level_filter

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/results", tags=["results"])


@router.post("", status_code=status.HTTP_201_CREATED, response_model=SubmitResultResponse)
async def submit_result(
    submission: ResultSubmission,
    db: AsyncSession = Depends(get_db),
    bus: FanoutBus = Depends(get_fanout_bus)
):
    """
    Submit the podium (ranks 1, 2 and 3) of one event.

    Every connected display receives the enriched result once the
    transaction commits.
    """
    enriched = await result_service.submit_result(db, bus, submission)
    return SubmitResultResponse(id=enriched.id)


@router.delete("", response_model=DeleteResultResponse)
async def delete_result(
    result_id: int = Query(..., alias="id"),
    db: AsyncSession = Depends(get_db),
    bus: FanoutBus = Depends(get_fanout_bus)
):
    deleted = await result_service.delete_result(db, bus, result_id)
    return DeleteResultResponse(deleted=deleted["id"])


@router.get("")
async def list_results(
    level: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db)
):
    """Most recent results, newest first."""
    results = await result_service.list_results(
        db,
        level=resolve_level_filter(level),
        limit=settings.RESULTS_LIMIT,
    )
    return ResultListResponse(data=results).model_dump(by_alias=True, mode="json")
