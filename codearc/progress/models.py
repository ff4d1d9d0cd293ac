"""Database models for student progress.

Cassandra table definitions for:
- ChapterProgress: one row per (student, chapter), partitioned by
  (student, course) so a course's progress can be counted and purged at once
- CourseCompletions: one row per completed (student, course), claimed with
  IF NOT EXISTS so the completion event fires once
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID

from codearc.auth.models import ensure_utc_aware


class CourseState(str, Enum):
    """Learning state of a (student, course) pair."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

CHAPTER_PROGRESS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.chapter_progress (
    student_id UUID,
    course_id UUID,
    chapter_id UUID,
    is_completed BOOLEAN,
    completed_at TIMESTAMP,
    PRIMARY KEY ((student_id, course_id), chapter_id)
)
"""

COURSE_COMPLETIONS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.course_completions (
    student_id UUID,
    course_id UUID,
    completed_at TIMESTAMP,
    PRIMARY KEY ((student_id), course_id)
)
"""

PROGRESS_TABLES_CQL = [
    CHAPTER_PROGRESS_TABLE_CQL,
    COURSE_COMPLETIONS_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


class ChapterProgress:
    """Completion record for one (student, chapter)."""

    def __init__(
        self,
        student_id: UUID,
        course_id: UUID,
        chapter_id: UUID,
        is_completed: bool = False,
        completed_at: datetime | None = None,
    ):
        self.student_id = student_id
        self.course_id = course_id
        self.chapter_id = chapter_id
        self.is_completed = is_completed
        self.completed_at = ensure_utc_aware(completed_at)

    @classmethod
    def completed_now(
        cls, student_id: UUID, course_id: UUID, chapter_id: UUID
    ) -> "ChapterProgress":
        return cls(
            student_id=student_id,
            course_id=course_id,
            chapter_id=chapter_id,
            is_completed=True,
            completed_at=datetime.now(UTC),
        )

    @classmethod
    def from_row(cls, row: Any) -> "ChapterProgress":
        """Create ChapterProgress from Cassandra row."""
        return cls(
            student_id=row.student_id,
            course_id=row.course_id,
            chapter_id=row.chapter_id,
            is_completed=bool(row.is_completed),
            completed_at=row.completed_at,
        )

    def __repr__(self) -> str:
        return (
            f"<ChapterProgress student={self.student_id} "
            f"chapter={self.chapter_id} completed={self.is_completed}>"
        )
