"""Events published by course authoring."""

from dataclasses import dataclass
from uuid import UUID

from codearc.core.events import DomainEvent


@dataclass(frozen=True, kw_only=True)
class CourseCreated(DomainEvent):
    course_id: UUID
    course_title: str
    mentor_id: UUID
    mentor_name: str
