"""
Result Commit Service

Accepts the podium of one event, records it and updates the aggregated
points, then announces it to every connected display.

Guarantees:
- At most one result per event (duplicate check under the write lock, plus
  a unique index on results.event_id as the final guard)
- Result, placements and institution totals are written in one transaction
- Exactly one `result` broadcast per successful commit, none on any failure
- All validation problems of a submission are reported together
"""
import logging
import math
from collections import defaultdict
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from festboard.errors import (
    APIError, ErrorCode, NotFoundError, ResultConflictError, SubmissionValidationError,
    log_store_failure,
)
from festboard.orm.event import Event, EventLevel
from festboard.orm.institution import Institution
from festboard.orm.institution_total import InstitutionTotal
from festboard.orm.result import Result, ResultPlacement
from festboard.realtime.fanout_bus import FanoutBus
from festboard.schemas.results import EnrichedPlacement, EnrichedResult, ResultSubmission

logger = logging.getLogger(__name__)

REQUIRED_RANKS = (1, 2, 3)
DEFAULT_LIST_LIMIT = 15

UNKNOWN_NAME = "Unknown"


# =============================================================================
# Validation
# =============================================================================

def _coerce_id(value: Any) -> Optional[int]:
    """Accept an integer id or its decimal string form."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _valid_points(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value) and value > 0


def _violation(field: str, message: str) -> Dict[str, str]:
    return {"field": field, "message": message}


def validate_submission(submission: ResultSubmission) -> List[Dict[str, str]]:
    """
    Check the shape of a submission without touching the store.

    Returns:
        List of {"field", "message"} violations, empty when the shape is valid
    """
    violations = []

    if _is_blank(submission.event_id):
        violations.append(_violation("eventId", "eventId is required"))
    elif _coerce_id(submission.event_id) is None:
        violations.append(_violation("eventId", "eventId must be an integer id"))

    seen_ranks = set()
    for index, placement in enumerate(submission.placements):
        prefix = f"placements[{index}]"

        rank = placement.rank
        if isinstance(rank, bool) or not isinstance(rank, int) or rank not in REQUIRED_RANKS:
            violations.append(_violation(f"{prefix}.rank", "rank must be 1, 2 or 3"))
        elif rank in seen_ranks:
            violations.append(_violation(f"{prefix}.rank", f"rank {rank} appears more than once"))
        else:
            seen_ranks.add(rank)

        if not isinstance(placement.student_name, str) or not placement.student_name.strip():
            violations.append(_violation(f"{prefix}.studentName", "studentName is required"))

        if _is_blank(placement.institution_id):
            violations.append(_violation(f"{prefix}.institutionId", "institutionId is required"))
        elif _coerce_id(placement.institution_id) is None:
            violations.append(_violation(f"{prefix}.institutionId", "institutionId must be an integer id"))

        if not _valid_points(placement.points):
            violations.append(_violation(f"{prefix}.points", "points must be a number greater than 0"))

    for rank in REQUIRED_RANKS:
        if rank not in seen_ranks:
            violations.append(_violation("placements", f"Missing placement for rank {rank}"))

    return violations


async def _check_references(db: AsyncSession, submission: ResultSubmission):
    """
    Report references to events and institutions that do not exist.

    Returns:
        (violations, event, houses) where houses maps id to Institution for
        every referenced house that was found
    """
    violations = []
    event = None
    houses: Dict[int, Institution] = {}

    event_id = _coerce_id(submission.event_id)
    if event_id is not None:
        event = await db.get(Event, event_id)
    if event_id is not None and event is None:
        violations.append(_violation("eventId", f"Event {event_id} does not exist"))

    wanted = {}
    for index, placement in enumerate(submission.placements):
        institution_id = _coerce_id(placement.institution_id)
        if institution_id is not None:
            wanted.setdefault(institution_id, []).append(index)

    if wanted:
        stmt = select(Institution).where(Institution.id.in_(list(wanted)))
        houses = {house.id: house for house in (await db.execute(stmt)).scalars().all()}
        for institution_id, indexes in wanted.items():
            if institution_id in houses:
                continue
            for index in indexes:
                violations.append(_violation(
                    f"placements[{index}].institutionId",
                    f"Institution {institution_id} does not exist"
                ))

    return violations, event, houses


# =============================================================================
# Aggregated totals
# =============================================================================

def _point_deltas(placements) -> Dict[int, float]:
    deltas = defaultdict(float)
    for placement in placements:
        deltas[placement.institution_id] += float(placement.points)
    return deltas


def _upsert_statement(dialect_name: str):
    if dialect_name == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    else:
        from sqlalchemy.dialects.sqlite import insert
    return insert


async def _increment_totals(db: AsyncSession, deltas: Dict[int, float], now: datetime) -> None:
    """
    Add points to the running totals in one statement per institution.

    The increment happens inside the database (`total + excluded.total`), so
    concurrent commits never lose an update.
    """
    insert = _upsert_statement(db.get_bind().dialect.name)
    for institution_id, delta in sorted(deltas.items()):
        stmt = insert(InstitutionTotal).values(
            institution_id=institution_id,
            total_points=delta,
            last_update=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[InstitutionTotal.institution_id],
            set_={
                "total_points": InstitutionTotal.total_points + stmt.excluded.total_points,
                "last_update": stmt.excluded.last_update,
            },
        )
        await db.execute(stmt)


async def _decrement_totals(db: AsyncSession, deltas: Dict[int, float], now: datetime) -> None:
    for institution_id, delta in sorted(deltas.items()):
        await db.execute(
            update(InstitutionTotal)
            .where(InstitutionTotal.institution_id == institution_id)
            .values(
                total_points=InstitutionTotal.total_points - delta,
                last_update=now,
            )
        )


# =============================================================================
# Enrichment
# =============================================================================

def enrich_result(result: Result) -> EnrichedResult:
    """Resolve event and house names for a result loaded with its relations."""
    event = result.event
    placements = []
    for placement in result.placements:
        institution = placement.institution
        placements.append(EnrichedPlacement(
            rank=placement.rank,
            student_name=placement.student_name,
            institution_id=placement.institution_id,
            institution_name=institution.display_name if institution else UNKNOWN_NAME,
            institution_code=institution.code if institution else "",
            points=placement.points,
        ))

    return EnrichedResult(
        id=result.id,
        event_id=result.event_id,
        event_name=event.name if event else UNKNOWN_NAME,
        event_level=event.level.value if event and event.level else None,
        placements=placements,
        submitted_at=result.submitted_at,
    )


def _enrich_submitted(result: Result, event: Event, placements, houses: Dict[int, Institution]) -> EnrichedResult:
    """Build the enriched result from the rows of a submission still in memory."""
    enriched = []
    for placement in placements:
        house = houses.get(placement.institution_id)
        enriched.append(EnrichedPlacement(
            rank=placement.rank,
            student_name=placement.student_name,
            institution_id=placement.institution_id,
            institution_name=house.display_name if house else UNKNOWN_NAME,
            institution_code=house.code if house else "",
            points=placement.points,
        ))

    return EnrichedResult(
        id=result.id,
        event_id=result.event_id,
        event_name=event.name,
        event_level=event.level.value if event.level else None,
        placements=enriched,
        submitted_at=result.submitted_at,
    )


def _with_relations(stmt):
    return stmt.options(
        selectinload(Result.event),
        selectinload(Result.placements).selectinload(ResultPlacement.institution),
    )


async def get_result(db: AsyncSession, result_id: int) -> Optional[EnrichedResult]:
    stmt = _with_relations(select(Result).where(Result.id == result_id))
    stmt = stmt.execution_options(populate_existing=True)
    result = (await db.execute(stmt)).scalar_one_or_none()
    return enrich_result(result) if result else None


# =============================================================================
# Core Service Functions
# =============================================================================

async def submit_result(
    db: AsyncSession,
    bus: FanoutBus,
    submission: ResultSubmission
) -> EnrichedResult:
    """
    Validate, commit and broadcast the result of one event.

    Args:
        db: Database session
        bus: Fan-out bus that receives the `result` event
        submission: Podium as submitted by staff

    Returns:
        The committed result, enriched with event and house names

    Raises:
        SubmissionValidationError: one or more fields are invalid
        NotFoundError: the event does not exist (and nothing else is wrong)
        ResultConflictError: the event already has a result
        StoreError: the transaction failed
    """
    violations = validate_submission(submission)
    event_id = _coerce_id(submission.event_id)

    try:
        reference_violations, event, houses = await _check_references(db, submission)
        if not violations and [v["field"] for v in reference_violations] == ["eventId"]:
            raise NotFoundError("Event", event_id, code=ErrorCode.EVENT_NOT_FOUND)
        violations.extend(reference_violations)
        if violations:
            raise SubmissionValidationError(violations)

        existing = await db.execute(select(Result.id).where(Result.event_id == event_id))
        if existing.scalar_one_or_none() is not None:
            raise ResultConflictError(event_id)

        now = datetime.utcnow()
        submitted_by = submission.submitted_by.strip() if submission.submitted_by else None
        result = Result(event_id=event_id, submitted_by=submitted_by or None, submitted_at=now)
        db.add(result)
        await db.flush()

        placements = [
            ResultPlacement(
                result_id=result.id,
                rank=p.rank,
                student_name=p.student_name.strip(),
                institution_id=_coerce_id(p.institution_id),
                points=float(p.points),
            )
            for p in sorted(submission.placements, key=lambda p: p.rank)
        ]
        db.add_all(placements)
        await db.flush()

        await _increment_totals(db, _point_deltas(placements), now)
        committed = _enrich_submitted(result, event, placements, houses)
        await db.commit()

    except APIError:
        await db.rollback()
        raise
    except IntegrityError:
        # Lost a race with a concurrent submission for the same event
        await db.rollback()
        raise ResultConflictError(event_id)
    except SQLAlchemyError as e:
        await db.rollback()
        raise log_store_failure(e, "submit_result")

    logger.info(f"Result {result.id} committed for event {event_id}")

    try:
        enriched = await get_result(db, result.id) or committed
    except SQLAlchemyError as e:
        # The commit stands; announce what was written
        logger.error(f"Re-reading result {result.id} failed, broadcasting submitted data: {e}")
        enriched = committed

    bus.broadcast("result", enriched.to_payload())
    return enriched


async def delete_result(db: AsyncSession, bus: FanoutBus, result_id: int) -> Dict[str, int]:
    """
    Remove a result and take its points back out of the running totals.

    Returns:
        {"id": result_id, "eventId": event_id} (also the broadcast payload)

    Raises:
        NotFoundError: no result with this id
        StoreError: the transaction failed
    """
    try:
        stmt = select(Result).options(selectinload(Result.placements)).where(Result.id == result_id)
        result = (await db.execute(stmt)).scalar_one_or_none()
        if result is None:
            raise NotFoundError("Result", result_id, code=ErrorCode.RESULT_NOT_FOUND)

        event_id = result.event_id
        deltas = _point_deltas(result.placements)

        await db.delete(result)
        await db.flush()
        await _decrement_totals(db, deltas, datetime.utcnow())
        await db.commit()

    except APIError:
        await db.rollback()
        raise
    except SQLAlchemyError as e:
        await db.rollback()
        raise log_store_failure(e, "delete_result")

    logger.info(f"Result {result_id} deleted (event {event_id})")

    payload = {"id": result_id, "eventId": event_id}
    bus.broadcast("result_deleted", payload)
    return payload


async def list_results(
    db: AsyncSession,
    level: Optional[EventLevel] = None,
    limit: int = DEFAULT_LIST_LIMIT,
) -> List[EnrichedResult]:
    """Most recent results first, optionally restricted to active events of one level."""
    stmt = _with_relations(select(Result))

    if level is not None:
        stmt = stmt.join(Event, Event.id == Result.event_id).where(
            Event.level == level, Event.is_active.is_(True)
        )

    stmt = stmt.order_by(Result.submitted_at.desc(), Result.id.desc()).limit(limit)
    results = (await db.execute(stmt)).scalars().all()

    return [enrich_result(result) for result in results]
