"""Events published by the enrollment lifecycle."""

from dataclasses import dataclass
from uuid import UUID

from codearc.core.events import DomainEvent


@dataclass(frozen=True, kw_only=True)
class StudentEnrolled(DomainEvent):
    student_id: UUID
    student_name: str
    course_id: UUID
    course_title: str
    mentor_id: UUID
    assigned_by: UUID | None = None
