"""Enrollment API endpoints.

Provides routes for:
- GET /v1/enrollments - My courses with progress
- POST /v1/enrollments/{course_id} - Enroll in a course
- DELETE /v1/enrollments/{course_id} - Unenroll (progress in the course is lost)
"""

from uuid import UUID

from fastapi import APIRouter, status

from codearc.auth.dependencies import StudentUser
from codearc.progress.dependencies import ProgressServiceDep
from codearc.progress.schemas import CourseProgressResponse

from .dependencies import EnrollmentServiceDep
from .schemas import EnrollmentResponse


router = APIRouter(prefix="/v1/enrollments", tags=["enrollments"])


@router.get(
    "", response_model=list[CourseProgressResponse], summary="My enrolled courses"
)
async def my_courses(
    principal: StudentUser, progress: ProgressServiceDep
) -> list[CourseProgressResponse]:
    items = await progress.my_courses(principal.id)
    mentors = await progress.directory.get_users(
        list({p.course.mentor_id for p in items})
    )
    names = {user_id: user.name for user_id, user in mentors.items()}
    return [
        CourseProgressResponse.from_progress(p, names.get(p.course.mentor_id))
        for p in items
    ]


@router.post(
    "/{course_id}",
    response_model=EnrollmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Enroll in a course",
)
async def enroll(
    course_id: UUID, principal: StudentUser, service: EnrollmentServiceDep
) -> EnrollmentResponse:
    assignment = await service.enroll(principal, course_id)
    return EnrollmentResponse.from_assignment(assignment)


@router.delete(
    "/{course_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Unenroll from a course",
    description="Removes the enrollment and all progress in that course.",
)
async def unenroll(
    course_id: UUID, principal: StudentUser, service: EnrollmentServiceDep
) -> None:
    await service.unenroll(principal.id, course_id)
