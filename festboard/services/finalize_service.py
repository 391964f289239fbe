"""
Finalize State

Festival-wide switch that ends live reveals and tells every display to
start the closing scroll and winner announcement. Persisted in the
festival_state table so a restart keeps the festival finalized.
"""
import logging
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from festboard.errors import BadRequestError, ErrorCode, log_store_failure
from festboard.orm.festival_state import FestivalState, FINALIZED_KEY
from festboard.realtime.fanout_bus import FanoutBus

logger = logging.getLogger(__name__)

ACTION_FINALIZE = "finalize"
ACTION_UNDO = "undo"

VALID_ACTIONS = {
    ACTION_FINALIZE: True,
    ACTION_UNDO: False,
}


class FinalizeState:
    """
    Reads and toggles the finalized flag.

    Every successful toggle is broadcast as a `finalize` event, including
    a repeat of the current value.
    """

    def __init__(self, bus: FanoutBus):
        self.bus = bus

    async def is_finalized(self, db: AsyncSession) -> bool:
        row = await db.get(FestivalState, FINALIZED_KEY)
        return row is not None and row.value == "true"

    async def apply(self, db: AsyncSession, action: str) -> bool:
        """
        Apply "finalize" or "undo".

        Returns:
            The new value of the flag

        Raises:
            BadRequestError: unknown action
            StoreError: the flag could not be persisted
        """
        if action not in VALID_ACTIONS:
            raise BadRequestError("Invalid action", code=ErrorCode.INVALID_ACTION)

        finalized = VALID_ACTIONS[action]
        value = "true" if finalized else "false"

        try:
            row = await db.get(FestivalState, FINALIZED_KEY)
            if row is None:
                db.add(FestivalState(key=FINALIZED_KEY, value=value))
            else:
                row.value = value
                row.updated_at = datetime.utcnow()
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            raise log_store_failure(e, "finalize")

        logger.info(f"Festival {'finalized' if finalized else 'reopened'}")
        self.bus.broadcast("finalize", {"finalized": finalized})
        return finalized
