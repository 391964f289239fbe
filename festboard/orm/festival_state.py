"""
festboard/orm/festival_state.py
Key/value rows for festival-wide switches (currently only `finalized`).
"""
from datetime import datetime

from sqlalchemy import Column, String, DateTime

from festboard.orm.base import Base


FINALIZED_KEY = "finalized"


class FestivalState(Base):
    __tablename__ = "festival_state"
    
    key = Column(String(50), primary_key=True)
    value = Column(String(200), nullable=False)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
