"""Database models for notifications.

Cassandra table definitions for:
- Notifications: per-user inbox, newest first
- NotificationsById: lookup scoped to the owning user, so mark-read can only
  ever touch the caller's own notifications
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from codearc.auth.models import ensure_utc_aware


class NotificationType(str, Enum):
    """Visual severity of a notification."""

    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

NOTIFICATION_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.notifications (
    user_id UUID,
    created_at TIMESTAMP,
    notification_id UUID,
    type TEXT,
    title TEXT,
    message TEXT,
    is_read BOOLEAN,
    PRIMARY KEY ((user_id), created_at, notification_id)
) WITH CLUSTERING ORDER BY (created_at DESC, notification_id ASC)
"""

NOTIFICATION_BY_ID_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.notifications_by_id (
    user_id UUID,
    notification_id UUID,
    created_at TIMESTAMP,
    PRIMARY KEY ((user_id), notification_id)
)
"""

NOTIFICATIONS_TABLES_CQL = [
    NOTIFICATION_TABLE_CQL,
    NOTIFICATION_BY_ID_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


@dataclass
class Notification:
    """A notification addressed to one user."""

    user_id: UUID
    title: str
    message: str
    type: NotificationType = NotificationType.INFO
    is_read: bool = False
    notification_id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def from_row(cls, row: Any) -> "Notification":
        """Create Notification from Cassandra row."""
        return cls(
            notification_id=row.notification_id,
            user_id=row.user_id,
            type=NotificationType(row.type),
            title=row.title,
            message=row.message,
            is_read=bool(row.is_read),
            created_at=ensure_utc_aware(row.created_at),
        )
