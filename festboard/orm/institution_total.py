"""
festboard/orm/institution_total.py
Incrementally maintained running total per institution.

This is a write-side fast path only. Standings are always recomputed from
result placements; nothing reads this table to build the leaderboard.
"""
from datetime import datetime

from sqlalchemy import Column, Integer, Float, DateTime, ForeignKey

from festboard.orm.base import Base


class InstitutionTotal(Base):
    __tablename__ = "institution_totals"
    
    institution_id = Column(
        Integer,
        ForeignKey("institutions.id", ondelete="CASCADE"),
        primary_key=True,
    )
    total_points = Column(Float, nullable=False, default=0)
    last_update = Column(DateTime, nullable=False, default=datetime.utcnow)
