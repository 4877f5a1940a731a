"""
Family and FamilyMember models.

A family is the tenant boundary of the calendar: every event belongs to one
family, and only members of that family may read or change its events.

Design Rationale:
- FamilyMember is the user-family junction carrying the member's role
- A user joins a family at most once (unique user/family pair)
- Children have no account and hang directly off the family (see child.py)
"""

import enum
from datetime import datetime

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from backend.src.models import Base
from backend.src.models.mixins import GuidMixin


class FamilyRole(enum.Enum):
    """Role of an adult member within a family."""
    ADMIN = "admin"
    MEMBER = "member"


class Family(Base, GuidMixin):
    """
    Family unit.

    Attributes:
        id: Primary key (internal, never exposed)
        guid: GUID string property (fam_xxx, inherited from GuidMixin)
        name: Family display name
        created_at: Creation timestamp

    Relationships:
        members: Adult members (one-to-many, CASCADE on delete)
        children: Children (one-to-many, CASCADE on delete)
        events: Calendar events (one-to-many, CASCADE on delete)
    """

    __tablename__ = "families"

    GUID_PREFIX = "fam"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    members = relationship(
        "FamilyMember",
        back_populates="family",
        cascade="all, delete-orphan",
        order_by="FamilyMember.id",
    )
    children = relationship(
        "Child",
        back_populates="family",
        cascade="all, delete-orphan",
        order_by="Child.name",
    )
    events = relationship(
        "Event",
        back_populates="family",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Family(id={self.id}, name='{self.name}')>"


class FamilyMember(Base, GuidMixin):
    """
    Membership of a user in a family.

    Attributes:
        guid: GUID string property (mem_xxx)
        family_id: FK to families
        user_id: FK to users
        role: admin or member
        joined_at: When the user joined
    """

    __tablename__ = "family_members"

    GUID_PREFIX = "mem"

    id = Column(Integer, primary_key=True, autoincrement=True)
    family_id = Column(
        Integer,
        ForeignKey("families.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    role = Column(String(20), default=FamilyRole.MEMBER.value, nullable=False)
    joined_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    family = relationship("Family", back_populates="members")
    user = relationship("User", back_populates="memberships")

    __table_args__ = (
        UniqueConstraint("family_id", "user_id", name="uq_family_members_family_user"),
    )

    def __repr__(self) -> str:
        return (
            f"<FamilyMember("
            f"id={self.id}, "
            f"family_id={self.family_id}, "
            f"user_id={self.user_id}, "
            f"role={self.role}"
            f")>"
        )
