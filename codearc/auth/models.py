"""Database models for users.

Cassandra table definitions for:
- Users: main user table keyed by id
- UsersByEmail: uniqueness of email (claimed with IF NOT EXISTS) and login lookup
- UsersByRole: role membership, read at call time for fanout and chat contacts

Note: Uses cassandra-driver directly (not ORM).
"""

from datetime import UTC, datetime
from typing import Any
from uuid import UUID, uuid4

from codearc.auth.permissions import UserRole, requires_approval


USER_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.users (
    id UUID PRIMARY KEY,
    email TEXT,
    name TEXT,
    password_hash TEXT,
    role TEXT,
    is_approved BOOLEAN,
    created_at TIMESTAMP
)
"""

USERS_BY_EMAIL_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.users_by_email (
    email TEXT PRIMARY KEY,
    user_id UUID
)
"""

USERS_BY_ROLE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.users_by_role (
    role TEXT,
    user_id UUID,
    name TEXT,
    email TEXT,
    PRIMARY KEY ((role), user_id)
)
"""

AUTH_TABLES_CQL = [
    USER_TABLE_CQL,
    USERS_BY_EMAIL_TABLE_CQL,
    USERS_BY_ROLE_TABLE_CQL,
]


def ensure_utc_aware(dt: datetime | None) -> datetime | None:
    """Ensure datetime is UTC-aware (Cassandra returns naive datetimes)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


class User:
    """User entity.

    Attributes:
        id: Unique identifier
        email: Unique, lower-cased email address
        name: Display name
        password_hash: Argon2id hash
        role: student, mentor or admin
        is_approved: Mentors start unapproved until an admin approves them
        created_at: Registration timestamp
    """

    def __init__(
        self,
        id: UUID | None = None,
        email: str = "",
        name: str = "",
        password_hash: str = "",
        role: str = UserRole.STUDENT.value,
        is_approved: bool | None = None,
        created_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.email = email.lower().strip()
        self.name = name
        self.password_hash = password_hash
        self.role = role
        self.is_approved = (
            not requires_approval(role) if is_approved is None else is_approved
        )
        self.created_at = ensure_utc_aware(created_at) or datetime.now(UTC)

    @classmethod
    def from_row(cls, row: Any) -> "User":
        """Create User instance from Cassandra row."""
        return cls(
            id=row.id,
            email=row.email,
            name=row.name,
            password_hash=row.password_hash,
            role=row.role,
            is_approved=bool(row.is_approved),
            created_at=row.created_at,
        )

    @property
    def user_role(self) -> UserRole:
        return UserRole(self.role)

    def to_dict(self, include_password: bool = False) -> dict[str, Any]:
        """Convert to dictionary (excludes password_hash by default)."""
        data = {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "role": self.role,
            "is_approved": self.is_approved,
            "created_at": self.created_at,
        }
        if include_password:
            data["password_hash"] = self.password_hash
        return data

    def __repr__(self) -> str:
        return f"<User {self.email} ({self.role})>"


class RoleMember:
    """Row of the users_by_role lookup table."""

    def __init__(self, role: str, user_id: UUID, name: str, email: str):
        self.role = role
        self.user_id = user_id
        self.name = name
        self.email = email

    @classmethod
    def from_row(cls, row: Any) -> "RoleMember":
        return cls(role=row.role, user_id=row.user_id, name=row.name, email=row.email)
