"""Pydantic schemas for courses and chapters.

Request and response models for:
- Course creation and catalog listing
- Chapter authoring
- Mentor statistics
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from codearc.courses.models import Chapter, Course


# ==============================================================================
# Course Schemas
# ==============================================================================


class CreateCourseRequest(BaseModel):
    """Request to create a course."""

    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(None, max_length=5000)
    thumbnail: str | None = Field(None, max_length=500, description="Image URL")


class CourseResponse(BaseModel):
    """Course summary."""

    id: UUID
    title: str
    description: str | None = None
    thumbnail: str | None = None
    mentor_id: UUID
    mentor_name: str | None = None
    created_at: datetime

    @classmethod
    def from_course(
        cls, course: Course, mentor_name: str | None = None
    ) -> "CourseResponse":
        return cls(
            id=course.id,
            title=course.title,
            description=course.description,
            thumbnail=course.thumbnail,
            mentor_id=course.mentor_id,
            mentor_name=mentor_name,
            created_at=course.created_at,
        )


class CatalogCourseResponse(CourseResponse):
    """Course as listed for a student, with their status."""

    is_enrolled: bool = False
    is_completed: bool = False
    progress: int = Field(default=0, ge=0, le=100)


# ==============================================================================
# Chapter Schemas
# ==============================================================================


class CreateChapterRequest(BaseModel):
    """Request to add a chapter to a course."""

    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(None, max_length=10000)
    sequence: int = Field(..., ge=1, description="Position in the course, from 1")
    video_url: str | None = Field(None, max_length=1000)
    image_url: str | None = Field(None, max_length=1000)


class UpdateChapterRequest(BaseModel):
    """Partial chapter update. Omitted fields are left unchanged."""

    model_config = ConfigDict(str_strip_whitespace=True)

    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = Field(None, max_length=10000)
    sequence: int | None = Field(None, ge=1)
    video_url: str | None = Field(None, max_length=1000)
    image_url: str | None = Field(None, max_length=1000)


class ChapterResponse(BaseModel):
    """Chapter as stored (authoring view)."""

    id: UUID
    course_id: UUID
    title: str
    description: str | None = None
    sequence: int
    video_url: str | None = None
    image_url: str | None = None
    created_at: datetime

    @classmethod
    def from_chapter(cls, chapter: Chapter) -> "ChapterResponse":
        return cls(
            id=chapter.id,
            course_id=chapter.course_id,
            title=chapter.title,
            description=chapter.description,
            sequence=chapter.sequence,
            video_url=chapter.video_url,
            image_url=chapter.image_url,
            created_at=chapter.created_at,
        )


# ==============================================================================
# Assignment and Stats Schemas
# ==============================================================================


class AssignStudentRequest(BaseModel):
    student_id: UUID


class StudentProgressResponse(BaseModel):
    """An enrolled student and their progress in one course."""

    id: UUID
    name: str
    email: str
    assigned_at: datetime
    progress: int = Field(ge=0, le=100)


class MentorCourseStatsResponse(BaseModel):
    course_id: UUID
    title: str
    total_chapters: int
    students: list[StudentProgressResponse]
