"""
festboard/orm/institution.py
Institution (house) model. Houses are seeded once and referenced by results.
"""
from sqlalchemy import Column, String, Boolean, Index

from festboard.orm.base import BaseModel


class Institution(BaseModel):
    """
    A competing house. Canonical `name` and `code` are unique; the display
    screens show `display_name`.
    """
    __tablename__ = "institutions"
    
    name = Column(String(120), nullable=False, unique=True)
    display_name = Column(String(120), nullable=False)
    code = Column(String(20), nullable=False, unique=True, index=True)
    is_active = Column(Boolean, default=True, nullable=False)
    logo_url = Column(String(500), nullable=True)
    
    __table_args__ = (
        Index("idx_institutions_active", "is_active"),
    )
    
    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "displayName": self.display_name,
            "code": self.code,
            "isActive": self.is_active,
            "logoUrl": self.logo_url,
        }
