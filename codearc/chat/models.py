"""Database models for chat.

Cassandra table definitions for:
- ChatMessages: one partition per conversation (the ordered pair of user
  ids), newest first, so a windowed history is a single range read
- ChatUnread: unread markers per receiver and sender. Unread counts are a
  COUNT(*) over one (receiver, sender) slice.

Messages are never deleted; history is filtered to a time window on read.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any
from uuid import UUID, uuid4

from codearc.auth.models import ensure_utc_aware


CHAT_MESSAGES_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.chat_messages (
    conversation_id TEXT,
    created_at TIMESTAMP,
    message_id UUID,
    sender_id UUID,
    receiver_id UUID,
    content TEXT,
    is_read BOOLEAN,
    PRIMARY KEY ((conversation_id), created_at, message_id)
) WITH CLUSTERING ORDER BY (created_at DESC, message_id ASC)
"""

CHAT_UNREAD_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.chat_unread (
    receiver_id UUID,
    sender_id UUID,
    message_id UUID,
    created_at TIMESTAMP,
    conversation_id TEXT,
    PRIMARY KEY ((receiver_id), sender_id, message_id)
)
"""

CHAT_TABLES_CQL = [
    CHAT_MESSAGES_TABLE_CQL,
    CHAT_UNREAD_TABLE_CQL,
]


def conversation_id(user_a: UUID, user_b: UUID) -> str:
    """Partition key shared by both directions of a conversation."""
    first, second = sorted((str(user_a), str(user_b)))
    return f"{first}:{second}"


@dataclass
class ChatMessage:
    sender_id: UUID
    receiver_id: UUID
    content: str
    is_read: bool = False
    message_id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def conversation_id(self) -> str:
        return conversation_id(self.sender_id, self.receiver_id)

    @classmethod
    def from_row(cls, row: Any) -> "ChatMessage":
        """Create ChatMessage from Cassandra row."""
        return cls(
            message_id=row.message_id,
            sender_id=row.sender_id,
            receiver_id=row.receiver_id,
            content=row.content,
            is_read=bool(row.is_read),
            created_at=ensure_utc_aware(row.created_at),
        )
