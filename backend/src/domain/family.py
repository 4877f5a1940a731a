"""
Family aggregate (read-only from the event core's perspective).

A Family groups adult members (linked to user accounts) and children. The
event core only queries it: membership checks for authorization and member or
child lookups to resolve event participants.
"""

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Tuple


class FamilyRole(str, enum.Enum):
    """Role of an adult member within a family."""
    ADMIN = "admin"
    MEMBER = "member"


@dataclass(frozen=True)
class FamilyMember:
    """
    Adult member of a family.

    Attributes:
        id: Membership GUID (mem_xxx)
        name: Display name of the linked user
        role: admin or member
        user_id: Linked user GUID (usr_xxx); participants reference this id
        joined_at: When the user joined the family
        avatar_url: Avatar of the linked user
    """

    id: str
    name: str
    role: FamilyRole
    user_id: str
    joined_at: Optional[datetime] = None
    avatar_url: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "role", FamilyRole(self.role))


@dataclass(frozen=True)
class Child:
    """Child belonging to a family (no user account)."""

    id: str
    name: str
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class Family:
    """Family unit with its members and children."""

    id: str
    name: str
    created_at: Optional[datetime] = None
    members: Tuple[FamilyMember, ...] = field(default_factory=tuple)
    children: Tuple[Child, ...] = field(default_factory=tuple)

    def __post_init__(self):
        object.__setattr__(self, "members", tuple(self.members))
        object.__setattr__(self, "children", tuple(self.children))

    def is_member(self, user_id: str) -> bool:
        return any(member.user_id == user_id for member in self.members)

    def get_member(self, user_id: str) -> Optional[FamilyMember]:
        for member in self.members:
            if member.user_id == user_id:
                return member
        return None

    def is_admin(self, user_id: str) -> bool:
        member = self.get_member(user_id)
        return member is not None and member.role is FamilyRole.ADMIN

    def is_child(self, child_id: str) -> bool:
        return self.get_child(child_id) is not None

    def get_child(self, child_id: str) -> Optional[Child]:
        for child in self.children:
            if child.id == child_id:
                return child
        return None
