"""Authentication API routes.

Endpoints for:
- POST /v1/auth/register - Register a student or mentor
- POST /v1/auth/login - Exchange credentials for an access token
- GET /v1/auth/me - Current user profile
- POST /v1/auth/change-password - Change the current user's password
- GET /v1/users/students - Student directory (mentors and admins)
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from codearc.auth.dependencies import AuthServiceDep, CurrentUser, require_capability
from codearc.auth.permissions import Capability, UserRole
from codearc.auth.schemas import (
    ChangePasswordRequest,
    LoginRequest,
    MessageResponse,
    Principal,
    RegisterRequest,
    StudentResponse,
    TokenResponse,
    UserResponse,
)
from codearc.enrollments.dependencies import EnrollmentServiceDep


router = APIRouter(prefix="/v1/auth", tags=["auth"])
users_router = APIRouter(prefix="/v1/users", tags=["users"])


@router.post(
    "/register",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new account",
    description="Students are active immediately; mentors wait for admin approval.",
)
async def register(body: RegisterRequest, service: AuthServiceDep) -> UserResponse:
    user = await service.register(body)
    return UserResponse.from_user(user)


@router.post("/login", response_model=TokenResponse, summary="Log in")
async def login(body: LoginRequest, service: AuthServiceDep) -> TokenResponse:
    return await service.login(body)


@router.get("/me", response_model=UserResponse, summary="Current user")
async def me(principal: CurrentUser, service: AuthServiceDep) -> UserResponse:
    user = await service.require_user(principal.id)
    return UserResponse.from_user(user)


@router.post(
    "/change-password",
    response_model=MessageResponse,
    summary="Change password",
)
async def change_password(
    body: ChangePasswordRequest, principal: CurrentUser, service: AuthServiceDep
) -> MessageResponse:
    """Change the current user's password. The old password must match."""
    await service.change_password(principal.id, body.old_password, body.new_password)
    return MessageResponse(message="Password updated successfully")


@users_router.get(
    "/students",
    response_model=list[StudentResponse],
    summary="List students",
    description="With course_id, each student is marked with is_enrolled.",
)
async def list_students(
    _: Annotated[Principal, Depends(require_capability(Capability.LIST_STUDENTS))],
    service: AuthServiceDep,
    enrollment_service: EnrollmentServiceDep,
    course_id: UUID | None = Query(default=None, description="Mark enrollment"),
) -> list[StudentResponse]:
    users = await service.list_users(UserRole.STUDENT)
    if course_id is None:
        return [StudentResponse.from_user(u) for u in users]

    await enrollment_service.courses.require_course(course_id)
    enrolled = {
        a.student_id
        for a in await enrollment_service.list_course_assignments(course_id)
    }
    return [
        StudentResponse(
            **UserResponse.from_user(u).model_dump(), is_enrolled=u.id in enrolled
        )
        for u in users
    ]
