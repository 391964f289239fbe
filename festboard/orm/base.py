"""
festboard/orm/base.py
Declarative base shared by every table of the results board.
"""
from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, MetaData
from sqlalchemy.orm import declarative_base

# Stable constraint names on both SQLite and PostgreSQL
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

Base = declarative_base(metadata=MetaData(naming_convention=NAMING_CONVENTION))


class BaseModel(Base):
    """
    Abstract parent of the catalogue and result tables: integer id plus
    creation/update timestamps. Placements, running totals and festival
    switches have natural keys and derive from Base directly.
    """
    __abstract__ = True

    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} id={self.id}>"
