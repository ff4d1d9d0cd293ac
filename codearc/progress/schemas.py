"""Pydantic schemas for progress, course content and the dashboard."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from codearc.courses.schemas import CourseResponse
from codearc.progress.aggregator import CourseProgress
from codearc.progress.models import CourseState
from codearc.progress.sequencer import SequencedChapter
from codearc.progress.service import CompletionResult, CourseContent, Dashboard


# ==============================================================================
# Completion
# ==============================================================================


class CompletionResponse(BaseModel):
    """Result of completing a chapter."""

    chapter_id: UUID
    course_id: UUID
    already_completed: bool = Field(description="The chapter was completed before")
    course_completed: bool = Field(description="This call completed the course")
    progress: int = Field(ge=0, le=100)
    state: CourseState

    @classmethod
    def from_result(cls, result: CompletionResult) -> "CompletionResponse":
        return cls(
            chapter_id=result.chapter_id,
            course_id=result.course_id,
            already_completed=result.already_completed,
            course_completed=result.course_completed,
            progress=result.percent,
            state=result.state,
        )


# ==============================================================================
# Course Content
# ==============================================================================


class SequencedChapterResponse(BaseModel):
    """Chapter as seen by the viewer. Locked chapters have no video."""

    id: UUID
    title: str
    description: str | None = None
    sequence: int
    position: int
    video_url: str | None = None
    image_url: str | None = None
    is_completed: bool
    is_locked: bool

    @classmethod
    def from_sequenced(cls, item: SequencedChapter) -> "SequencedChapterResponse":
        return cls(
            id=item.chapter.id,
            title=item.chapter.title,
            description=item.chapter.description,
            sequence=item.chapter.sequence,
            position=item.position,
            video_url=item.video_url,
            image_url=item.chapter.image_url,
            is_completed=item.is_completed,
            is_locked=item.is_locked,
        )


class CourseContentResponse(BaseModel):
    course: CourseResponse
    chapters: list[SequencedChapterResponse]
    progress: int | None = Field(default=None, description="Students only")

    @classmethod
    def from_content(cls, content: CourseContent) -> "CourseContentResponse":
        return cls(
            course=CourseResponse.from_course(content.course, content.mentor_name),
            chapters=[SequencedChapterResponse.from_sequenced(c) for c in content.chapters],
            progress=content.percent,
        )


# ==============================================================================
# Dashboard
# ==============================================================================


class CourseProgressResponse(BaseModel):
    """An enrolled course with the student's progress."""

    course: CourseResponse
    assigned_at: datetime
    completed_chapters: int
    total_chapters: int
    progress: int = Field(ge=0, le=100)
    state: CourseState

    @classmethod
    def from_progress(
        cls, item: CourseProgress, mentor_name: str | None = None
    ) -> "CourseProgressResponse":
        return cls(
            course=CourseResponse.from_course(item.course, mentor_name),
            assigned_at=item.assigned_at,
            completed_chapters=item.completed_chapters,
            total_chapters=item.total_chapters,
            progress=item.percent,
            state=item.state,
        )


class DashboardStatsResponse(BaseModel):
    enrolled: int
    completed: int
    in_progress: int
    certificates: int


class DashboardResponse(BaseModel):
    stats: DashboardStatsResponse
    recent_courses: list[CourseProgressResponse]
    recommended_courses: list[CourseResponse]

    @classmethod
    def from_dashboard(cls, dashboard: Dashboard) -> "DashboardResponse":
        names = dashboard.mentor_names
        return cls(
            stats=DashboardStatsResponse(
                enrolled=dashboard.stats.enrolled,
                completed=dashboard.stats.completed,
                in_progress=dashboard.stats.in_progress,
                certificates=dashboard.stats.certificates,
            ),
            recent_courses=[
                CourseProgressResponse.from_progress(p, names.get(p.course.mentor_id))
                for p in dashboard.recent
            ],
            recommended_courses=[
                CourseResponse.from_course(c, names.get(c.mentor_id))
                for c in dashboard.recommended
            ],
        )
