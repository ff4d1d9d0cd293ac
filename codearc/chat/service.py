# ruff: noqa: S608 - All CQL queries use keyspace from config, not user input
"""Chat service layer.

Business logic for:
- Sending a direct message (the receiver is notified)
- Conversation history inside the visibility window
- Contacts by role, each with an unread count
"""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from codearc.auth.permissions import CHAT_AUDIENCE, UserRole
from codearc.auth.schemas import Principal
from codearc.chat.events import MessageSent
from codearc.chat.models import ChatMessage, conversation_id
from codearc.core.database import statements
from codearc.core.exceptions import ValidationError


if TYPE_CHECKING:
    from cassandra.cluster import Session

    from codearc.auth.service import AuthService
    from codearc.core.events import EventBus

logger = structlog.get_logger(__name__)


class CannotMessageSelfError(ValidationError):
    default_message = "You cannot send a message to yourself"
    default_code = "cannot_message_self"


class EmptyMessageError(ValidationError):
    default_message = "Message content cannot be empty"
    default_code = "empty_message"


@dataclass
class Contact:
    user_id: UUID
    name: str
    role: UserRole
    unread_count: int


class ChatService:
    """Service for direct messages."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        directory: "AuthService",
        events: "EventBus",
        history_window_hours: int = 48,
    ):
        """Initialize with Cassandra session, user directory and event bus."""
        self.session = session
        self.keyspace = keyspace
        self.directory = directory
        self.events = events
        self.history_window = timedelta(hours=history_window_hours)
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient execution."""
        self._insert_message = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.chat_messages
            (conversation_id, created_at, message_id, sender_id, receiver_id,
             content, is_read)
            VALUES (?, ?, ?, ?, ?, ?, ?)
        """)
        self._list_messages_since = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.chat_messages
            WHERE conversation_id = ? AND created_at > ?
        """)
        self._mark_message_read = self.session.prepare(f"""
            UPDATE {self.keyspace}.chat_messages
            SET is_read = true
            WHERE conversation_id = ? AND created_at = ? AND message_id = ?
        """)

        self._insert_unread = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.chat_unread
            (receiver_id, sender_id, message_id, created_at, conversation_id)
            VALUES (?, ?, ?, ?, ?)
        """)
        self._list_unread_from = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.chat_unread
            WHERE receiver_id = ? AND sender_id = ?
        """)
        self._count_unread_from = self.session.prepare(f"""
            SELECT COUNT(*) FROM {self.keyspace}.chat_unread
            WHERE receiver_id = ? AND sender_id = ?
        """)
        self._clear_unread_from = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.chat_unread
            WHERE receiver_id = ? AND sender_id = ?
        """)

    # ==========================================================================
    # Messages
    # ==========================================================================

    async def send_message(
        self, sender: Principal, receiver_id: UUID, content: str
    ) -> ChatMessage:
        """Send a direct message.

        Raises:
            CannotMessageSelfError: If sender and receiver are the same user
            EmptyMessageError: If the content is blank
            UserNotFoundError: If the receiver does not exist
        """
        if sender.id == receiver_id:
            raise CannotMessageSelfError
        content = content.strip()
        if not content:
            raise EmptyMessageError

        await self.directory.require_user(receiver_id)

        message = ChatMessage(sender_id=sender.id, receiver_id=receiver_id, content=content)
        batch = statements.logged_batch()
        batch.add(
            self._insert_message,
            [
                message.conversation_id,
                message.created_at,
                message.message_id,
                message.sender_id,
                message.receiver_id,
                message.content,
                message.is_read,
            ],
        )
        batch.add(
            self._insert_unread,
            [
                message.receiver_id,
                message.sender_id,
                message.message_id,
                message.created_at,
                message.conversation_id,
            ],
        )
        await self.session.aexecute(batch)

        logger.info(
            "chat_message_sent",
            message_id=str(message.message_id),
            receiver_id=str(receiver_id),
        )

        sender_user = await self.directory.get_user(sender.id)
        await self.events.publish(
            MessageSent(
                message_id=message.message_id,
                sender_id=sender.id,
                sender_name=sender_user.name if sender_user else "someone",
                receiver_id=receiver_id,
            )
        )
        return message

    async def history(self, user_id: UUID, other_id: UUID) -> list[ChatMessage]:
        """Conversation with another user inside the window, newest first.

        Messages the other user sent to ``user_id`` are marked read first.
        """
        await self._mark_read_from(user_id, other_id)

        cutoff = datetime.now(UTC) - self.history_window
        rows = await self.session.aexecute(
            self._list_messages_since, [conversation_id(user_id, other_id), cutoff]
        )
        messages = [ChatMessage.from_row(row) for row in rows]
        return sorted(
            messages, key=lambda m: (m.created_at, str(m.message_id)), reverse=True
        )

    async def _mark_read_from(self, receiver_id: UUID, sender_id: UUID) -> int:
        unread = list(
            await self.session.aexecute(self._list_unread_from, [receiver_id, sender_id])
        )
        if not unread:
            return 0

        batch = statements.logged_batch()
        for row in unread:
            batch.add(
                self._mark_message_read,
                [row.conversation_id, row.created_at, row.message_id],
            )
        batch.add(self._clear_unread_from, [receiver_id, sender_id])
        await self.session.aexecute(batch)

        logger.debug(
            "chat_messages_read", sender_id=str(sender_id), count=len(unread)
        )
        return len(unread)

    # ==========================================================================
    # Contacts
    # ==========================================================================

    async def unread_from(self, receiver_id: UUID, sender_id: UUID) -> int:
        result = await self.session.aexecute(
            self._count_unread_from, [receiver_id, sender_id]
        )
        row = result.one()
        return row.count if row else 0

    async def contacts(self, principal: Principal) -> list[Contact]:
        """Users the principal may chat with, with unread counts.

        Students see mentors and admins, mentors see students and admins,
        admins see everyone except themselves.
        """
        contacts = []
        for role in CHAT_AUDIENCE[principal.role]:
            for member in await self.directory.list_role_members(role):
                if member.user_id == principal.id:
                    continue
                contacts.append(
                    Contact(
                        user_id=member.user_id,
                        name=member.name,
                        role=role,
                        unread_count=await self.unread_from(principal.id, member.user_id),
                    )
                )
        return contacts
