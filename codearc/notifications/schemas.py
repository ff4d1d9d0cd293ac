"""Pydantic schemas for notifications."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from codearc.auth.permissions import UserRole
from codearc.notifications.models import Notification, NotificationType


class NotificationResponse(BaseModel):
    """Single notification."""

    id: UUID
    title: str
    message: str
    type: NotificationType
    is_read: bool
    created_at: datetime

    @classmethod
    def from_notification(cls, notification: Notification) -> "NotificationResponse":
        return cls(
            id=notification.notification_id,
            title=notification.title,
            message=notification.message,
            type=notification.type,
            is_read=notification.is_read,
            created_at=notification.created_at,
        )


class NotificationListResponse(BaseModel):
    items: list[NotificationResponse]
    unread_count: int


class UnreadCountResponse(BaseModel):
    count: int


class MarkReadRequest(BaseModel):
    """Ids to mark as read. Ids of other users' notifications are ignored."""

    notification_ids: list[UUID] = Field(..., min_length=1, max_length=100)


class MarkReadResponse(BaseModel):
    marked: int


class BroadcastRequest(BaseModel):
    """Send a notification to every current member of a role."""

    role: UserRole
    title: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1, max_length=2000)
    type: NotificationType = NotificationType.INFO


class BroadcastResponse(BaseModel):
    delivered: int
