"""Pydantic schemas for platform administration."""

from pydantic import BaseModel


class UserCountsResponse(BaseModel):
    students: int
    mentors: int
    admins: int


class PlatformStatsResponse(BaseModel):
    users: UserCountsResponse
    courses: int
    enrollments: int
    completions: int


class ApprovalRequest(BaseModel):
    is_approved: bool
