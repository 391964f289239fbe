"""
festboard/orm/result.py
Result and placement models.

A Result is the single finalized outcome of one Event. It owns exactly three
placements (ranks 1..3); placements have no identity outside their result.
"""
from datetime import datetime

from sqlalchemy import (
    Column, Integer, String, Float, DateTime, ForeignKey, CheckConstraint, Index
)
from sqlalchemy.orm import relationship

from festboard.orm.base import Base, BaseModel


class Result(BaseModel):
    __tablename__ = "results"
    
    event_id = Column(
        Integer,
        ForeignKey("events.id", ondelete="RESTRICT"),
        nullable=False,
        unique=True,
        index=True,
        comment="At most one result per event"
    )
    submitted_by = Column(String(120), nullable=True)
    submitted_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    
    event = relationship("Event", lazy="raise")
    placements = relationship(
        "ResultPlacement",
        back_populates="result",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="ResultPlacement.rank",
        lazy="raise",
    )
    
    # Result ids are never reused, so displays can tell a resubmission apart
    __table_args__ = (
        Index("idx_results_submitted_at", "submitted_at"),
        {"sqlite_autoincrement": True},
    )


class ResultPlacement(Base):
    __tablename__ = "result_placements"
    
    result_id = Column(
        Integer,
        ForeignKey("results.id", ondelete="CASCADE"),
        primary_key=True,
    )
    rank = Column(Integer, primary_key=True)
    student_name = Column(String(200), nullable=False)
    institution_id = Column(
        Integer,
        ForeignKey("institutions.id", ondelete="RESTRICT"),
        nullable=False,
    )
    points = Column(Float, nullable=False)
    
    result = relationship("Result", back_populates="placements")
    institution = relationship("Institution", lazy="raise")
    
    __table_args__ = (
        CheckConstraint("rank IN (1, 2, 3)", name="rank_podium"),
        CheckConstraint("points > 0", name="points_positive"),
        Index("idx_result_placements_institution", "institution_id"),
    )
