"""
Leaderboard schemas (Pydantic)
"""
from typing import Optional

from pydantic import BaseModel, Field


class StandingsEntry(BaseModel):
    """Derived standing of one house; recomputed on every read."""
    institution_id: int = Field(alias="institutionId")
    total_points: float = Field(alias="totalPoints")
    display_name: str = Field(alias="displayName")
    code: str
    logo_url: Optional[str] = Field(default=None, alias="logoUrl")

    class Config:
        populate_by_name = True

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")
