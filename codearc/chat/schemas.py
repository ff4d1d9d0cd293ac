"""Pydantic schemas for chat."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from codearc.auth.permissions import UserRole
from codearc.chat.models import ChatMessage


class SendMessageRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    receiver_id: UUID
    content: str = Field(..., min_length=1, max_length=2000)


class ChatMessageResponse(BaseModel):
    id: UUID
    sender_id: UUID
    receiver_id: UUID
    content: str
    is_read: bool
    created_at: datetime

    @classmethod
    def from_message(cls, message: ChatMessage) -> "ChatMessageResponse":
        return cls(
            id=message.message_id,
            sender_id=message.sender_id,
            receiver_id=message.receiver_id,
            content=message.content,
            is_read=message.is_read,
            created_at=message.created_at,
        )


class ContactResponse(BaseModel):
    """Someone the caller may chat with."""

    id: UUID
    name: str
    role: UserRole
    unread_count: int
