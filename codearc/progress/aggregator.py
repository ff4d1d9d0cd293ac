# ruff: noqa: S608 - All CQL queries use keyspace from config, not user input
"""Progress aggregation.

Percentages and dashboard rollups are computed from partition-scoped
``COUNT(*)`` queries rather than by loading every progress row.

Rounding follows "round half up": 1 of 8 chapters is 13%, 1 of 3 is 33%,
2 of 3 is 67%. A course with no chapters is always 0%.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from codearc.courses.models import Course
from codearc.progress.models import CourseState


if TYPE_CHECKING:
    from cassandra.cluster import Session


def percent_complete(completed: int, total: int) -> int:
    """Percentage of a course completed, rounded half up and capped at 100."""
    if total <= 0:
        return 0
    completed = max(0, min(completed, total))
    ratio = Decimal(100 * completed) / Decimal(total)
    return int(ratio.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def is_course_complete(completed: int, total: int) -> bool:
    """A course is complete only when it has chapters and all are done."""
    return total > 0 and completed == total


def course_state(completed: int, total: int) -> CourseState:
    if is_course_complete(completed, total):
        return CourseState.COMPLETED
    if completed > 0:
        return CourseState.IN_PROGRESS
    return CourseState.NOT_STARTED


@dataclass
class CourseProgress:
    """A student's progress in one enrolled course."""

    course: Course
    assigned_at: datetime
    completed_chapters: int
    total_chapters: int

    @property
    def percent(self) -> int:
        return percent_complete(self.completed_chapters, self.total_chapters)

    @property
    def is_completed(self) -> bool:
        return is_course_complete(self.completed_chapters, self.total_chapters)

    @property
    def state(self) -> CourseState:
        return course_state(self.completed_chapters, self.total_chapters)


@dataclass(frozen=True)
class DashboardStats:
    enrolled: int
    completed: int
    in_progress: int

    @property
    def certificates(self) -> int:
        """Every completed course earns a certificate."""
        return self.completed


def rollup(progress: Iterable[CourseProgress]) -> DashboardStats:
    """Count enrolled, completed and in-progress courses.

    Anything not completed, including unstarted courses, is in progress.
    """
    items = list(progress)
    completed = sum(1 for p in items if p.is_completed)
    return DashboardStats(
        enrolled=len(items),
        completed=completed,
        in_progress=len(items) - completed,
    )


def recent_courses(progress: Iterable[CourseProgress], limit: int) -> list[CourseProgress]:
    """Enrolled courses, most recently assigned first."""
    ordered = sorted(
        progress,
        key=lambda p: (p.assigned_at, str(p.course.id)),
        reverse=True,
    )
    return ordered[:limit]


def recommend_courses(
    courses: Iterable[Course], enrolled_ids: Iterable[UUID], limit: int
) -> list[Course]:
    """Courses the student is not enrolled in, in stable catalog order."""
    enrolled = set(enrolled_ids)
    candidates = [c for c in courses if c.id not in enrolled]
    return sorted(candidates, key=lambda c: c.catalog_key)[:limit]


class ProgressAggregator:
    """Aggregate queries over chapters and progress records."""

    def __init__(self, session: "Session", keyspace: str):
        """Initialize with Cassandra session."""
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient execution."""
        self._count_chapters = self.session.prepare(f"""
            SELECT COUNT(*) FROM {self.keyspace}.chapters WHERE course_id = ?
        """)
        self._count_completed = self.session.prepare(f"""
            SELECT COUNT(*) FROM {self.keyspace}.chapter_progress
            WHERE student_id = ? AND course_id = ? AND is_completed = true
            ALLOW FILTERING
        """)
        self._get_course_progress = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.chapter_progress
            WHERE student_id = ? AND course_id = ?
        """)
        self._count_completions = self.session.prepare(f"""
            SELECT COUNT(*) FROM {self.keyspace}.course_completions
        """)

    async def count_chapters(self, course_id: UUID) -> int:
        result = await self.session.aexecute(self._count_chapters, [course_id])
        row = result.one()
        return row.count if row else 0

    async def count_completed(self, student_id: UUID, course_id: UUID) -> int:
        result = await self.session.aexecute(
            self._count_completed, [student_id, course_id]
        )
        row = result.one()
        return row.count if row else 0

    async def completed_chapter_ids(self, student_id: UUID, course_id: UUID) -> set[UUID]:
        """Ids of the chapters a student has completed in a course."""
        rows = await self.session.aexecute(
            self._get_course_progress, [student_id, course_id]
        )
        return {row.chapter_id for row in rows if row.is_completed}

    async def course_percent(self, student_id: UUID, course_id: UUID) -> int:
        total = await self.count_chapters(course_id)
        if total == 0:
            return 0
        return percent_complete(await self.count_completed(student_id, course_id), total)

    async def course_progress(
        self, student_id: UUID, course: Course, assigned_at: datetime
    ) -> CourseProgress:
        return CourseProgress(
            course=course,
            assigned_at=assigned_at,
            completed_chapters=await self.count_completed(student_id, course.id),
            total_chapters=await self.count_chapters(course.id),
        )

    async def count_course_completions(self) -> int:
        """Total completed (student, course) pairs on the platform."""
        result = await self.session.aexecute(self._count_completions)
        row = result.one()
        return row.count if row else 0
