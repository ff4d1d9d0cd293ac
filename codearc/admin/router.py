"""Admin API endpoints.

Provides routes for:
- GET /v1/admin/stats - Platform statistics
- GET /v1/admin/users - List users (optional role filter)
- PATCH /v1/admin/users/{user_id}/approval - Approve or revoke a user
- DELETE /v1/admin/users/{user_id} - Delete a user
- POST /v1/admin/notifications/broadcast - Notify every user of a role
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from codearc.auth.dependencies import AdminUser, AuthServiceDep, require_capability
from codearc.auth.permissions import Capability, UserRole
from codearc.auth.schemas import Principal, UserResponse
from codearc.courses.dependencies import CourseServiceDep
from codearc.enrollments.dependencies import EnrollmentServiceDep
from codearc.notifications.dependencies import NotificationServiceDep
from codearc.notifications.schemas import BroadcastRequest, BroadcastResponse
from codearc.progress.dependencies import ProgressServiceDep

from .schemas import ApprovalRequest, PlatformStatsResponse, UserCountsResponse


router = APIRouter(prefix="/v1/admin", tags=["admin"])


@router.get("/stats", response_model=PlatformStatsResponse, summary="Platform statistics")
async def platform_stats(
    _: Annotated[
        Principal, Depends(require_capability(Capability.VIEW_PLATFORM_STATS))
    ],
    auth_service: AuthServiceDep,
    course_service: CourseServiceDep,
    enrollment_service: EnrollmentServiceDep,
    progress_service: ProgressServiceDep,
) -> PlatformStatsResponse:
    return PlatformStatsResponse(
        users=UserCountsResponse(
            students=await auth_service.count_role_members(UserRole.STUDENT),
            mentors=await auth_service.count_role_members(UserRole.MENTOR),
            admins=await auth_service.count_role_members(UserRole.ADMIN),
        ),
        courses=await course_service.count_courses(),
        enrollments=await enrollment_service.count_enrollments(),
        completions=await progress_service.aggregator.count_course_completions(),
    )


@router.get("/users", response_model=list[UserResponse], summary="List users")
async def list_users(
    _admin: AdminUser,
    service: AuthServiceDep,
    role: UserRole | None = Query(default=None, description="Filter by role"),
) -> list[UserResponse]:
    users = await service.list_users(role)
    return [UserResponse.from_user(u) for u in users]


@router.patch(
    "/users/{user_id}/approval",
    response_model=UserResponse,
    summary="Approve or revoke a user",
)
async def set_approval(
    user_id: UUID, body: ApprovalRequest, _admin: AdminUser, service: AuthServiceDep
) -> UserResponse:
    user = await service.set_approval(user_id, body.is_approved)
    return UserResponse.from_user(user)


@router.delete(
    "/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete user"
)
async def delete_user(
    user_id: UUID, admin: AdminUser, service: AuthServiceDep
) -> None:
    await service.delete_user(admin.id, user_id)


@router.post(
    "/notifications/broadcast",
    response_model=BroadcastResponse,
    summary="Notify every user of a role",
)
async def broadcast(
    body: BroadcastRequest,
    _: Annotated[
        Principal, Depends(require_capability(Capability.BROADCAST_NOTIFICATIONS))
    ],
    service: NotificationServiceDep,
) -> BroadcastResponse:
    delivered = await service.notify_role(body.role, body.title, body.message, body.type)
    return BroadcastResponse(delivered=delivered)
