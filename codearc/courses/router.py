"""Course and chapter API endpoints.

Provides routes for:
- Course CRUD (create/delete by the owning mentor or an admin)
- Catalog listing with per-student status
- Chapter authoring
- Sequenced course content
- Mentor statistics and student assignment
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, status

from codearc.auth.dependencies import CourseManager, CurrentUser, require_capability
from codearc.auth.permissions import Capability
from codearc.auth.schemas import Principal
from codearc.enrollments.dependencies import EnrollmentServiceDep
from codearc.enrollments.schemas import EnrollmentResponse
from codearc.progress.dependencies import ProgressServiceDep
from codearc.progress.schemas import CourseContentResponse

from .dependencies import CourseServiceDep
from .schemas import (
    AssignStudentRequest,
    CatalogCourseResponse,
    ChapterResponse,
    CourseResponse,
    CreateChapterRequest,
    CreateCourseRequest,
    MentorCourseStatsResponse,
    StudentProgressResponse,
    UpdateChapterRequest,
)


router = APIRouter(prefix="/v1/courses", tags=["courses"])

Browser = Annotated[Principal, Depends(require_capability(Capability.BROWSE_COURSES))]


def _student_responses(students) -> list[StudentProgressResponse]:
    return [
        StudentProgressResponse(
            id=s.student_id,
            name=s.name,
            email=s.email,
            assigned_at=s.assigned_at,
            progress=s.percent,
        )
        for s in students
    ]


# ==============================================================================
# Courses
# ==============================================================================


@router.post(
    "",
    response_model=CourseResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create course",
)
async def create_course(
    body: CreateCourseRequest, principal: CourseManager, service: CourseServiceDep
) -> CourseResponse:
    course = await service.create_course(principal, body)
    return CourseResponse.from_course(course, principal.name or None)


@router.get(
    "",
    response_model=list[CatalogCourseResponse],
    summary="List courses",
    description=(
        "Students see every course with their enrollment status and progress; "
        "mentors see their own courses; admins see all courses."
    ),
)
async def list_courses(
    principal: Browser, progress: ProgressServiceDep
) -> list[CatalogCourseResponse]:
    entries = await progress.catalog(principal)
    return [
        CatalogCourseResponse(
            **CourseResponse.from_course(e.course, e.mentor_name).model_dump(),
            is_enrolled=e.is_enrolled,
            is_completed=e.is_completed,
            progress=e.progress,
        )
        for e in entries
    ]


@router.get(
    "/mentor/stats",
    response_model=list[MentorCourseStatsResponse],
    summary="Student progress per course",
)
async def mentor_stats(
    principal: Annotated[
        Principal, Depends(require_capability(Capability.VIEW_MENTOR_STATS))
    ],
    progress: ProgressServiceDep,
) -> list[MentorCourseStatsResponse]:
    stats = await progress.mentor_stats(principal)
    return [
        MentorCourseStatsResponse(
            course_id=item.course.id,
            title=item.course.title,
            total_chapters=item.total_chapters,
            students=_student_responses(item.students),
        )
        for item in stats
    ]


@router.get("/{course_id}", response_model=CourseResponse, summary="Get course")
async def get_course(
    course_id: UUID, _: CurrentUser, service: CourseServiceDep
) -> CourseResponse:
    course = await service.require_course(course_id)
    mentor = await service.directory.get_user(course.mentor_id)
    return CourseResponse.from_course(course, mentor.name if mentor else None)


@router.delete(
    "/{course_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete course",
    description="Also removes chapters, enrollments and student progress.",
)
async def delete_course(
    course_id: UUID, principal: CourseManager, service: CourseServiceDep
) -> None:
    await service.delete_course(principal, course_id)


@router.get(
    "/{course_id}/content",
    response_model=CourseContentResponse,
    summary="Course content",
    description="Chapters in order. For students, locked chapters hide their video.",
)
async def get_course_content(
    course_id: UUID,
    principal: Annotated[
        Principal, Depends(require_capability(Capability.VIEW_COURSE_CONTENT))
    ],
    progress: ProgressServiceDep,
) -> CourseContentResponse:
    content = await progress.get_course_content(principal, course_id)
    return CourseContentResponse.from_content(content)


# ==============================================================================
# Chapters
# ==============================================================================


@router.get(
    "/{course_id}/chapters",
    response_model=list[ChapterResponse],
    summary="List chapters (authoring)",
)
async def list_chapters(
    course_id: UUID, principal: CourseManager, service: CourseServiceDep
) -> list[ChapterResponse]:
    await service.require_manageable_course(principal, course_id)
    chapters = await service.list_chapters(course_id)
    return [ChapterResponse.from_chapter(c) for c in chapters]


@router.post(
    "/{course_id}/chapters",
    response_model=ChapterResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add chapter",
)
async def add_chapter(
    course_id: UUID,
    body: CreateChapterRequest,
    principal: CourseManager,
    service: CourseServiceDep,
) -> ChapterResponse:
    chapter = await service.add_chapter(principal, course_id, body)
    return ChapterResponse.from_chapter(chapter)


@router.patch(
    "/chapters/{chapter_id}", response_model=ChapterResponse, summary="Update chapter"
)
async def update_chapter(
    chapter_id: UUID,
    body: UpdateChapterRequest,
    principal: CourseManager,
    service: CourseServiceDep,
) -> ChapterResponse:
    chapter = await service.update_chapter(principal, chapter_id, body)
    return ChapterResponse.from_chapter(chapter)


@router.delete(
    "/chapters/{chapter_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete chapter",
)
async def delete_chapter(
    chapter_id: UUID, principal: CourseManager, service: CourseServiceDep
) -> None:
    await service.delete_chapter(principal, chapter_id)


# ==============================================================================
# Students
# ==============================================================================


@router.get(
    "/{course_id}/students",
    response_model=list[StudentProgressResponse],
    summary="Enrolled students",
)
async def list_course_students(
    course_id: UUID,
    principal: Annotated[
        Principal, Depends(require_capability(Capability.ASSIGN_STUDENTS))
    ],
    progress: ProgressServiceDep,
) -> list[StudentProgressResponse]:
    students = await progress.course_students(principal, course_id)
    return _student_responses(students)


@router.post(
    "/{course_id}/students",
    response_model=EnrollmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Assign a student to the course",
)
async def assign_student(
    course_id: UUID,
    body: AssignStudentRequest,
    principal: CourseManager,
    service: EnrollmentServiceDep,
) -> EnrollmentResponse:
    assignment = await service.assign_student(principal, course_id, body.student_id)
    return EnrollmentResponse.from_assignment(assignment)
