"""
Festival catalogue and finalize schemas (Pydantic)
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class ScheduleIn(BaseModel):
    start: Optional[datetime] = None
    end: Optional[datetime] = None


class EventCreate(BaseModel):
    """Request schema for creating an event."""
    name: Optional[str] = Field(default=None, max_length=200)
    description: Optional[str] = None
    category: Optional[str] = Field(default=None, max_length=100)
    room_code: Optional[str] = Field(default=None, alias="roomCode", max_length=50)
    schedule: Optional[ScheduleIn] = None
    level: Optional[str] = None

    class Config:
        populate_by_name = True

    @field_validator("name", "description", "category", "room_code")
    @classmethod
    def blank_to_none(cls, v):
        if v is None:
            return None
        v = v.strip()
        return v or None


class FinalizeRequest(BaseModel):
    action: Optional[str] = None


class FinalizeResponse(BaseModel):
    ok: bool = True
    finalized: bool
