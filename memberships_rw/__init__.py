"""memberships-rw - read/write service for Membership concepts in a graph database.

A Membership links a person to an organisation through zero or more roles,
with optional validity dates and alternative identifiers. It is stored as:
- Thing/Concept/Membership nodes with HAS_MEMBER, HAS_ORGANISATION and
  HAS_ROLE edges
- Identifier satellite nodes linked by IDENTIFIES edges
"""

__version__ = "0.1.0"

from memberships_rw.memberships import Membership, MembershipRepository, Role

__all__ = [
    "Membership",
    "MembershipRepository",
    "Role",
]
