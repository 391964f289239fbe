"""
festboard/orm/event.py
Festival event model. Each event receives at most one result.
"""
import enum

from sqlalchemy import Column, String, Boolean, DateTime, Text, Enum as SQLEnum, Index

from festboard.orm.base import BaseModel


class EventLevel(str, enum.Enum):
    HIGH_SCHOOL = "high_school"
    HIGHER_SECONDARY = "higher_secondary"


class Event(BaseModel):
    __tablename__ = "events"
    
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(100), nullable=True)
    room_code = Column(String(50), nullable=True)
    schedule_start = Column(DateTime, nullable=True)
    schedule_end = Column(DateTime, nullable=True)
    level = Column(
        SQLEnum(EventLevel, values_callable=lambda levels: [lvl.value for lvl in levels]),
        nullable=False,
        default=EventLevel.HIGH_SCHOOL,
    )
    is_active = Column(Boolean, default=True, nullable=False)
    
    __table_args__ = (
        Index("idx_events_level_active", "level", "is_active"),
    )
    
    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "roomCode": self.room_code,
            "level": self.level.value if self.level else None,
        }
