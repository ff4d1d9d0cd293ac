"""Pydantic schemas for enrollments."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel

from codearc.enrollments.models import CourseAssignment


class EnrollmentResponse(BaseModel):
    """A course assignment."""

    course_id: UUID
    student_id: UUID
    assigned_at: datetime
    assigned_by: UUID | None = None

    @classmethod
    def from_assignment(cls, assignment: CourseAssignment) -> "EnrollmentResponse":
        return cls(
            course_id=assignment.course_id,
            student_id=assignment.student_id,
            assigned_at=assignment.assigned_at,
            assigned_by=assignment.assigned_by,
        )
