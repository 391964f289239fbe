"""
Result submission and enriched result schemas (Pydantic)

Submission fields are accepted loosely typed on purpose: the commit service
validates them itself so that every problem is reported in one response.
"""
from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, Field


class PlacementIn(BaseModel):
    """One podium entry as typed in by staff."""
    rank: Optional[Any] = None
    student_name: Optional[Any] = Field(default=None, alias="studentName")
    institution_id: Optional[Any] = Field(default=None, alias="institutionId")
    points: Optional[Any] = None

    class Config:
        populate_by_name = True


class ResultSubmission(BaseModel):
    """Request schema for submitting the podium of one event."""
    event_id: Optional[Any] = Field(default=None, alias="eventId")
    placements: List[PlacementIn] = Field(default_factory=list)
    submitted_by: Optional[str] = Field(default=None, alias="submittedBy", max_length=120)

    class Config:
        populate_by_name = True


class SubmitResultResponse(BaseModel):
    ok: bool = True
    id: int


class DeleteResultResponse(BaseModel):
    ok: bool = True
    deleted: int


class EnrichedPlacement(BaseModel):
    rank: int
    student_name: str = Field(alias="studentName")
    institution_id: int = Field(alias="institutionId")
    institution_name: str = Field(alias="institutionName")
    institution_code: str = Field(alias="institutionCode")
    points: float

    class Config:
        populate_by_name = True


class EnrichedResult(BaseModel):
    """A stored result with event and house names resolved for display."""
    id: int
    event_id: int = Field(alias="eventId")
    event_name: str = Field(alias="eventName")
    event_level: Optional[str] = Field(default=None, alias="eventLevel")
    placements: List[EnrichedPlacement]
    submitted_at: datetime = Field(alias="submittedAt")

    class Config:
        populate_by_name = True

    def to_payload(self) -> dict:
        """Wire representation used by the API and the live stream."""
        return self.model_dump(by_alias=True, mode="json")


class ResultListResponse(BaseModel):
    data: List[EnrichedResult]
