"""Pydantic schemas for authentication.

Request and response models for:
- User registration and login
- Token responses
- The authenticated principal carried by access tokens
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from codearc.auth.models import User
from codearc.auth.permissions import UserRole


# ==============================================================================
# Request Schemas
# ==============================================================================


class RegisterRequest(BaseModel):
    """User registration request. Admins cannot self-register."""

    name: str = Field(..., min_length=2, max_length=100, description="Full name")
    email: EmailStr = Field(..., description="Email address")
    password: str = Field(..., min_length=6, max_length=128, description="Password")
    role: UserRole = Field(default=UserRole.STUDENT, description="student or mentor")

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return v.strip()


class LoginRequest(BaseModel):
    """User login request."""

    email: EmailStr = Field(..., description="Email address")
    password: str = Field(..., description="Password")


class ChangePasswordRequest(BaseModel):
    """Password change for the current user."""

    old_password: str = Field(..., description="Current password")
    new_password: str = Field(
        ..., min_length=6, max_length=128, description="New password"
    )


# ==============================================================================
# Response Schemas
# ==============================================================================


class UserResponse(BaseModel):
    """Public user data."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    email: str
    role: UserRole
    is_approved: bool
    created_at: datetime

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            role=UserRole(user.role),
            is_approved=user.is_approved,
            created_at=user.created_at,
        )


class StudentResponse(UserResponse):
    """Student directory entry; is_enrolled is set when a course is given."""

    is_enrolled: bool | None = None


class MessageResponse(BaseModel):
    message: str


class TokenResponse(BaseModel):
    """Login response with the access token."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int = Field(description="Token lifetime in seconds")
    user: UserResponse


class Principal(BaseModel):
    """The acting user, as asserted by a verified access token."""

    id: UUID
    role: UserRole
    email: str = ""
    name: str = ""
