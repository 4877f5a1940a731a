"""
User model for people who sign in to the family calendar.

A user may belong to several families through FamilyMember rows. Event
participants of type 'user' reference the user's GUID, and the member's
display name and avatar are taken from here.
"""

from datetime import datetime

from sqlalchemy import Column, Integer, String, DateTime, Text
from sqlalchemy.orm import relationship

from backend.src.models import Base
from backend.src.models.mixins import GuidMixin


class User(Base, GuidMixin):
    """
    User account.

    Attributes:
        id: Primary key (internal, never exposed)
        uuid: UUIDv7 for external identification (inherited from GuidMixin)
        guid: GUID string property (usr_xxx, inherited from GuidMixin)
        email: Login email (unique)
        full_name: Display name
        avatar_url: Profile picture URL
        created_at: Creation timestamp

    Relationships:
        memberships: FamilyMember rows (one-to-many, CASCADE on delete)
    """

    __tablename__ = "users"

    GUID_PREFIX = "usr"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    full_name = Column(String(255), nullable=False)
    avatar_url = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    memberships = relationship(
        "FamilyMember",
        back_populates="user",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}')>"
