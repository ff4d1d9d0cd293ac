"""Notification API routes.

Endpoints for:
- GET /v1/notifications - List my notifications
- GET /v1/notifications/unread-count - Get unread count
- POST /v1/notifications/mark-read - Mark specific notifications as read
- POST /v1/notifications/mark-all-read - Mark all as read
"""

from fastapi import APIRouter, Query

from codearc.auth.dependencies import CurrentUser
from codearc.config.settings import get_settings
from codearc.notifications.dependencies import NotificationServiceDep
from codearc.notifications.schemas import (
    MarkReadRequest,
    MarkReadResponse,
    NotificationListResponse,
    NotificationResponse,
    UnreadCountResponse,
)


router = APIRouter(prefix="/v1/notifications", tags=["notifications"])


@router.get("", response_model=NotificationListResponse, summary="List notifications")
async def list_notifications(
    principal: CurrentUser,
    service: NotificationServiceDep,
    limit: int | None = Query(default=None, ge=1, le=200, description="Max items"),
    unread_only: bool = Query(default=False, description="Only show unread"),
) -> NotificationListResponse:
    items = await service.list_notifications(
        principal.id,
        limit=limit or get_settings().notification_list_limit,
        unread_only=unread_only,
    )
    return NotificationListResponse(
        items=[NotificationResponse.from_notification(n) for n in items],
        unread_count=await service.get_unread_count(principal.id),
    )


@router.get("/unread-count", response_model=UnreadCountResponse)
async def get_unread_count(
    principal: CurrentUser, service: NotificationServiceDep
) -> UnreadCountResponse:
    return UnreadCountResponse(count=await service.get_unread_count(principal.id))


@router.post("/mark-read", response_model=MarkReadResponse)
async def mark_read(
    body: MarkReadRequest, principal: CurrentUser, service: NotificationServiceDep
) -> MarkReadResponse:
    """Mark my notifications as read. Unknown or foreign ids are ignored."""
    marked = await service.mark_as_read(principal.id, body.notification_ids)
    return MarkReadResponse(marked=marked)


@router.post("/mark-all-read", response_model=MarkReadResponse)
async def mark_all_read(
    principal: CurrentUser, service: NotificationServiceDep
) -> MarkReadResponse:
    marked = await service.mark_all_as_read(principal.id)
    return MarkReadResponse(marked=marked)
