"""Events published by chat."""

from dataclasses import dataclass
from uuid import UUID

from codearc.core.events import DomainEvent


@dataclass(frozen=True, kw_only=True)
class MessageSent(DomainEvent):
    message_id: UUID
    sender_id: UUID
    sender_name: str
    receiver_id: UUID
