"""Database models for enrollments (course assignments).

Cassandra table definitions for:
- CourseAssignments: one row per (course, student); the row's existence is
  the enrollment. Created with IF NOT EXISTS so a pair is never duplicated.
- AssignmentsByStudent: dual-written lookup of a student's courses
"""

from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from codearc.auth.models import ensure_utc_aware


COURSE_ASSIGNMENTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.course_assignments (
    course_id UUID,
    student_id UUID,
    assigned_at TIMESTAMP,
    assigned_by UUID,
    PRIMARY KEY ((course_id), student_id)
)
"""

ASSIGNMENTS_BY_STUDENT_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.assignments_by_student (
    student_id UUID,
    course_id UUID,
    assigned_at TIMESTAMP,
    PRIMARY KEY ((student_id), course_id)
)
"""

ENROLLMENT_TABLES_CQL = [
    COURSE_ASSIGNMENTS_TABLE_CQL,
    ASSIGNMENTS_BY_STUDENT_TABLE_CQL,
]


class CourseAssignment:
    """Enrollment of a student in a course.

    Attributes:
        course_id: Course UUID
        student_id: Student UUID
        assigned_at: When the enrollment was created
        assigned_by: Mentor or admin who assigned the student, None if self-enrolled
    """

    def __init__(
        self,
        course_id: UUID,
        student_id: UUID,
        assigned_at: datetime | None = None,
        assigned_by: UUID | None = None,
    ):
        self.course_id = course_id
        self.student_id = student_id
        self.assigned_at = ensure_utc_aware(assigned_at) or datetime.now(UTC)
        self.assigned_by = assigned_by

    @classmethod
    def from_row(cls, row: Any) -> "CourseAssignment":
        """Create CourseAssignment from a row of either assignment table."""
        return cls(
            course_id=row.course_id,
            student_id=row.student_id,
            assigned_at=row.assigned_at,
            assigned_by=getattr(row, "assigned_by", None),
        )

    def __repr__(self) -> str:
        return f"<CourseAssignment course={self.course_id} student={self.student_id}>"
