"""Events published by the completion flow."""

from dataclasses import dataclass
from uuid import UUID

from codearc.core.events import DomainEvent


@dataclass(frozen=True, kw_only=True)
class CourseCompleted(DomainEvent):
    """A student completed every chapter of a course for the first time."""

    student_id: UUID
    student_name: str
    course_id: UUID
    course_title: str
    mentor_id: UUID
