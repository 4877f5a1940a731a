"""
Child model.

Children belong to exactly one family and have no user account. They can be
event participants and are referenced by their GUID (chd_xxx).
"""

from datetime import datetime

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from backend.src.models import Base
from backend.src.models.mixins import GuidMixin


class Child(Base, GuidMixin):
    """Child of a family."""

    __tablename__ = "children"

    GUID_PREFIX = "chd"

    id = Column(Integer, primary_key=True, autoincrement=True)
    family_id = Column(
        Integer,
        ForeignKey("families.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    name = Column(String(255), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    family = relationship("Family", back_populates="children")

    def __repr__(self) -> str:
        return f"<Child(id={self.id}, name='{self.name}')>"
