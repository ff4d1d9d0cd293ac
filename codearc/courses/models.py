"""Database models for course authoring.

Cassandra table definitions for:
- Courses: main course table
- CoursesByMentor: a mentor's own courses
- Chapters: partitioned by course, clustered by (sequence, chapter_id)
- ChaptersById: lookup from chapter id to its course and clustering key
"""

from datetime import UTC, datetime
from typing import Any
from uuid import UUID, uuid4

from codearc.auth.models import ensure_utc_aware


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

COURSE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.courses (
    id UUID PRIMARY KEY,
    title TEXT,
    description TEXT,
    thumbnail TEXT,
    mentor_id UUID,
    created_at TIMESTAMP
)
"""

COURSES_BY_MENTOR_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.courses_by_mentor (
    mentor_id UUID,
    course_id UUID,
    created_at TIMESTAMP,
    PRIMARY KEY ((mentor_id), course_id)
)
"""

CHAPTER_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.chapters (
    course_id UUID,
    sequence INT,
    chapter_id UUID,
    title TEXT,
    description TEXT,
    video_url TEXT,
    image_url TEXT,
    created_at TIMESTAMP,
    PRIMARY KEY ((course_id), sequence, chapter_id)
) WITH CLUSTERING ORDER BY (sequence ASC, chapter_id ASC)
"""

CHAPTERS_BY_ID_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.chapters_by_id (
    chapter_id UUID PRIMARY KEY,
    course_id UUID,
    sequence INT
)
"""

COURSES_TABLES_CQL = [
    COURSE_TABLE_CQL,
    COURSES_BY_MENTOR_TABLE_CQL,
    CHAPTER_TABLE_CQL,
    CHAPTERS_BY_ID_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


class Course:
    """Course owned by exactly one mentor."""

    def __init__(
        self,
        title: str,
        mentor_id: UUID,
        id: UUID | None = None,
        description: str | None = None,
        thumbnail: str | None = None,
        created_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.title = title
        self.description = description
        self.thumbnail = thumbnail
        self.mentor_id = mentor_id
        self.created_at = ensure_utc_aware(created_at) or datetime.now(UTC)

    @classmethod
    def from_row(cls, row: Any) -> "Course":
        """Create Course from Cassandra row."""
        return cls(
            id=row.id,
            title=row.title,
            description=row.description,
            thumbnail=row.thumbnail,
            mentor_id=row.mentor_id,
            created_at=row.created_at,
        )

    @property
    def catalog_key(self) -> tuple[datetime, str]:
        """Stable catalog ordering: creation time, then id."""
        return (self.created_at, str(self.id))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "thumbnail": self.thumbnail,
            "mentor_id": self.mentor_id,
            "created_at": self.created_at,
        }

    def __repr__(self) -> str:
        return f"<Course {self.title!r}>"


class Chapter:
    """Chapter of a course. ``sequence`` is the sort and lock key."""

    def __init__(
        self,
        course_id: UUID,
        title: str,
        sequence: int,
        id: UUID | None = None,
        description: str | None = None,
        video_url: str | None = None,
        image_url: str | None = None,
        created_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.course_id = course_id
        self.title = title
        self.sequence = sequence
        self.description = description
        self.video_url = video_url
        self.image_url = image_url
        self.created_at = ensure_utc_aware(created_at) or datetime.now(UTC)

    @classmethod
    def from_row(cls, row: Any) -> "Chapter":
        """Create Chapter from Cassandra row."""
        return cls(
            id=row.chapter_id,
            course_id=row.course_id,
            title=row.title,
            sequence=row.sequence,
            description=row.description,
            video_url=row.video_url,
            image_url=row.image_url,
            created_at=row.created_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "course_id": self.course_id,
            "title": self.title,
            "sequence": self.sequence,
            "description": self.description,
            "video_url": self.video_url,
            "image_url": self.image_url,
            "created_at": self.created_at,
        }

    def __repr__(self) -> str:
        return f"<Chapter {self.sequence}: {self.title!r}>"
