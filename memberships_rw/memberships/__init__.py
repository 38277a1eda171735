"""Membership records and their graph repository."""

from memberships_rw.memberships.model import (
    AlternativeIdentifiers,
    IdentifierKind,
    Membership,
    NodeKind,
    RelKind,
    Role,
)
from memberships_rw.memberships.repository import MembershipRepository

__all__ = [
    "AlternativeIdentifiers",
    "IdentifierKind",
    "Membership",
    "MembershipRepository",
    "NodeKind",
    "RelKind",
    "Role",
]
