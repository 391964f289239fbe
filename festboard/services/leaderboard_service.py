"""
Leaderboard Service

Standings are derived data: every read recomputes them from the stored
result placements.

Guarantees:
- Never reads the incrementally maintained institution_totals table
- Read-only and repeatable (two reads with no commit in between are equal)
- Deterministic tie-breaking: total desc, institution code asc, institution id asc
"""
import logging
from typing import List, Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from festboard.orm.event import Event, EventLevel
from festboard.orm.institution import Institution
from festboard.orm.result import Result, ResultPlacement
from festboard.schemas.leaderboard import StandingsEntry

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 10

UNKNOWN_INSTITUTION_NAME = "Unknown"


def _sort_key(entry: StandingsEntry):
    return (-entry.total_points, entry.code, entry.institution_id)


async def compute_leaderboard(
    db: AsyncSession,
    limit: int = DEFAULT_LIMIT,
    level: Optional[EventLevel] = None,
) -> List[StandingsEntry]:
    """
    Compute standings by summing placement points per institution.

    Args:
        db: Database session
        limit: Maximum number of entries returned
        level: Only count results of active events at this level

    Returns:
        Sorted StandingsEntry list; institutions with no placements are omitted
    """
    total_points = func.sum(ResultPlacement.points).label("total_points")

    stmt = (
        select(
            ResultPlacement.institution_id,
            total_points,
            Institution.display_name,
            Institution.code,
            Institution.logo_url,
        )
        .select_from(ResultPlacement)
        .outerjoin(Institution, Institution.id == ResultPlacement.institution_id)
    )

    if level is not None:
        stmt = (
            stmt.join(Result, Result.id == ResultPlacement.result_id)
            .join(Event, Event.id == Result.event_id)
            .where(Event.level == level, Event.is_active.is_(True))
        )

    stmt = stmt.group_by(
        ResultPlacement.institution_id,
        Institution.display_name,
        Institution.code,
        Institution.logo_url,
    )

    rows = (await db.execute(stmt)).all()

    entries = [
        StandingsEntry(
            institution_id=row.institution_id,
            total_points=float(row.total_points or 0),
            display_name=row.display_name or UNKNOWN_INSTITUTION_NAME,
            code=row.code or "",
            logo_url=row.logo_url,
        )
        for row in rows
    ]
    entries.sort(key=_sort_key)

    return entries[:max(limit, 0)]

