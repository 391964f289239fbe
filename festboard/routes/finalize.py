"""
Finalize Router

Read and toggle the festival-wide finalized flag.
"""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from festboard.database import get_db
from festboard.realtime.fanout_bus import FanoutBus, get_fanout_bus
from festboard.schemas.festival import FinalizeRequest, FinalizeResponse
from festboard.services.finalize_service import FinalizeState

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/finalize", tags=["finalize"])


def get_finalize_state(bus: FanoutBus = Depends(get_fanout_bus)) -> FinalizeState:
    return FinalizeState(bus)


@router.get("")
async def get_finalized(
    db: AsyncSession = Depends(get_db),
    state: FinalizeState = Depends(get_finalize_state)
):
    return {"finalized": await state.is_finalized(db)}


@router.post("", response_model=FinalizeResponse)
async def set_finalized(
    request: FinalizeRequest,
    db: AsyncSession = Depends(get_db),
    state: FinalizeState = Depends(get_finalize_state)
):
    """Body: {"action": "finalize"} or {"action": "undo"}."""
    finalized = await state.apply(db, request.action)
    return FinalizeResponse(finalized=finalized)
