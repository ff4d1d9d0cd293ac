# ruff: noqa: S608 - All CQL queries use keyspace from config, not user input
"""Course authoring service layer.

Business logic for:
- Course creation (announced to students and admins) and catalog reads
- Chapter authoring with ownership checks
- Course deletion cascading to chapters, enrollments and progress

Only the course's mentor or an admin may modify a course. Ownership is
checked before anything is written.
"""

from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from codearc.auth.permissions import UserRole, can_manage_course
from codearc.auth.schemas import Principal
from codearc.core.database import statements
from codearc.core.exceptions import NotFoundError, PermissionDeniedError
from codearc.courses.events import CourseCreated
from codearc.courses.models import Chapter, Course
from codearc.courses.schemas import (
    CreateChapterRequest,
    CreateCourseRequest,
    UpdateChapterRequest,
)
from codearc.progress.sequencer import order_chapters


if TYPE_CHECKING:
    from cassandra.cluster import Session

    from codearc.auth.models import User
    from codearc.auth.service import AuthService
    from codearc.core.events import EventBus

logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class CourseNotFoundError(NotFoundError):
    default_message = "Course not found"
    default_code = "course_not_found"


class ChapterNotFoundError(NotFoundError):
    default_message = "Chapter not found"
    default_code = "chapter_not_found"


class NotCourseOwnerError(PermissionDeniedError):
    default_message = "You can only modify your own courses"
    default_code = "not_course_owner"


# ==============================================================================
# Course Service
# ==============================================================================


class CourseService:
    """Service for courses and their chapters."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        directory: "AuthService",
        events: "EventBus",
    ):
        """Initialize with Cassandra session, user directory and event bus."""
        self.session = session
        self.keyspace = keyspace
        self.directory = directory
        self.events = events
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient execution."""
        # Courses
        self._insert_course = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.courses
            (id, title, description, thumbnail, mentor_id, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
        """)
        self._get_course = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.courses WHERE id = ?
        """)
        self._list_courses = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.courses
        """)
        self._count_courses = self.session.prepare(f"""
            SELECT COUNT(*) FROM {self.keyspace}.courses
        """)
        self._delete_course = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.courses WHERE id = ?
        """)

        # Courses by mentor
        self._insert_course_by_mentor = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.courses_by_mentor
            (mentor_id, course_id, created_at)
            VALUES (?, ?, ?)
        """)
        self._list_mentor_courses = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.courses_by_mentor WHERE mentor_id = ?
        """)
        self._delete_course_by_mentor = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.courses_by_mentor
            WHERE mentor_id = ? AND course_id = ?
        """)

        # Chapters
        self._insert_chapter = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.chapters
            (course_id, sequence, chapter_id, title, description, video_url,
             image_url, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._get_chapter = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.chapters
            WHERE course_id = ? AND sequence = ? AND chapter_id = ?
        """)
        self._list_chapters = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.chapters WHERE course_id = ?
        """)
        self._delete_chapter = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.chapters
            WHERE course_id = ? AND sequence = ? AND chapter_id = ?
        """)
        self._delete_course_chapters = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.chapters WHERE course_id = ?
        """)
        self._insert_chapter_lookup = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.chapters_by_id (chapter_id, course_id, sequence)
            VALUES (?, ?, ?)
        """)
        self._get_chapter_lookup = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.chapters_by_id WHERE chapter_id = ?
        """)
        self._delete_chapter_lookup = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.chapters_by_id WHERE chapter_id = ?
        """)

        # Cascade targets
        self._list_assignments = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.course_assignments WHERE course_id = ?
        """)
        self._delete_assignments = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.course_assignments WHERE course_id = ?
        """)
        self._delete_assignment_by_student = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.assignments_by_student
            WHERE student_id = ? AND course_id = ?
        """)
        self._delete_course_progress = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.chapter_progress
            WHERE student_id = ? AND course_id = ?
        """)
        self._delete_chapter_progress = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.chapter_progress
            WHERE student_id = ? AND course_id = ? AND chapter_id = ?
        """)
        self._delete_completion = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.course_completions
            WHERE student_id = ? AND course_id = ?
        """)

    # ==========================================================================
    # Courses
    # ==========================================================================

    async def create_course(
        self, principal: Principal, data: CreateCourseRequest
    ) -> Course:
        """Create a course owned by the calling mentor (or admin)."""
        course = Course(
            title=data.title,
            description=data.description,
            thumbnail=data.thumbnail,
            mentor_id=principal.id,
        )

        await self.session.aexecute(
            self._insert_course,
            [
                course.id,
                course.title,
                course.description,
                course.thumbnail,
                course.mentor_id,
                course.created_at,
            ],
        )
        await self.session.aexecute(
            self._insert_course_by_mentor,
            [course.mentor_id, course.id, course.created_at],
        )

        logger.info(
            "course_created", course_id=str(course.id), mentor_id=str(principal.id)
        )

        mentor = await self.directory.get_user(principal.id)
        await self.events.publish(
            CourseCreated(
                course_id=course.id,
                course_title=course.title,
                mentor_id=course.mentor_id,
                mentor_name=mentor.name if mentor else principal.name,
            )
        )
        return course

    async def get_course(self, course_id: UUID) -> Course | None:
        """Get course by ID."""
        result = await self.session.aexecute(self._get_course, [course_id])
        row = result.one()
        return Course.from_row(row) if row else None

    async def require_course(self, course_id: UUID) -> Course:
        """Get course by ID or raise CourseNotFoundError."""
        course = await self.get_course(course_id)
        if course is None:
            raise CourseNotFoundError
        return course

    async def require_manageable_course(
        self, principal: Principal, course_id: UUID
    ) -> Course:
        """Get a course the principal may modify.

        Raises:
            CourseNotFoundError: If the course does not exist
            NotCourseOwnerError: If a mentor does not own it
        """
        course = await self.require_course(course_id)
        if not can_manage_course(principal.role, principal.id, course.mentor_id):
            logger.warning(
                "course_ownership_denied",
                course_id=str(course_id),
                owner_id=str(course.mentor_id),
            )
            raise NotCourseOwnerError
        return course

    async def list_courses(self) -> list[Course]:
        """All courses in stable catalog order (creation time, then id)."""
        rows = await self.session.aexecute(self._list_courses)
        return sorted((Course.from_row(row) for row in rows), key=lambda c: c.catalog_key)

    async def list_mentor_courses(self, mentor_id: UUID) -> list[Course]:
        """Courses owned by a mentor, in catalog order."""
        rows = await self.session.aexecute(self._list_mentor_courses, [mentor_id])
        courses = []
        for row in rows:
            course = await self.get_course(row.course_id)
            if course is not None:
                courses.append(course)
        return sorted(courses, key=lambda c: c.catalog_key)

    async def count_courses(self) -> int:
        result = await self.session.aexecute(self._count_courses)
        row = result.one()
        return row.count if row else 0

    async def delete_course(self, principal: Principal, course_id: UUID) -> None:
        """Delete a course and everything hanging off it.

        Chapters, enrollments, progress and completion records go in a single
        logged batch.
        """
        course = await self.require_manageable_course(principal, course_id)
        await self._delete_course_cascade(course)

    async def delete_mentor_courses(self, user: "User") -> None:
        """Delete every course a mentor owns (run when the mentor is deleted)."""
        if user.role != UserRole.MENTOR.value:
            return

        courses = await self.list_mentor_courses(user.id)
        for course in courses:
            await self._delete_course_cascade(course)

        if courses:
            logger.info(
                "mentor_courses_deleted", mentor_id=str(user.id), courses=len(courses)
            )

    async def _delete_course_cascade(self, course: Course) -> None:
        course_id = course.id
        chapters = await self.list_chapters(course_id)
        assignments = list(
            await self.session.aexecute(self._list_assignments, [course_id])
        )

        batch = statements.logged_batch()
        for row in assignments:
            batch.add(self._delete_assignment_by_student, [row.student_id, course_id])
            batch.add(self._delete_course_progress, [row.student_id, course_id])
            batch.add(self._delete_completion, [row.student_id, course_id])
        batch.add(self._delete_assignments, [course_id])
        for chapter in chapters:
            batch.add(self._delete_chapter_lookup, [chapter.id])
        batch.add(self._delete_course_chapters, [course_id])
        batch.add(self._delete_course_by_mentor, [course.mentor_id, course_id])
        batch.add(self._delete_course, [course_id])
        await self.session.aexecute(batch)

        logger.info(
            "course_deleted",
            course_id=str(course_id),
            chapters=len(chapters),
            enrollments=len(assignments),
        )

    # ==========================================================================
    # Chapters
    # ==========================================================================

    async def list_chapters(self, course_id: UUID) -> list[Chapter]:
        """Chapters of a course in learning order."""
        rows = await self.session.aexecute(self._list_chapters, [course_id])
        return order_chapters(Chapter.from_row(row) for row in rows)

    async def get_chapter(self, chapter_id: UUID) -> Chapter | None:
        """Get chapter by ID via the id lookup table."""
        lookup = (
            await self.session.aexecute(self._get_chapter_lookup, [chapter_id])
        ).one()
        if lookup is None:
            return None
        row = (
            await self.session.aexecute(
                self._get_chapter, [lookup.course_id, lookup.sequence, chapter_id]
            )
        ).one()
        return Chapter.from_row(row) if row else None

    async def require_chapter(self, chapter_id: UUID) -> Chapter:
        chapter = await self.get_chapter(chapter_id)
        if chapter is None:
            raise ChapterNotFoundError
        return chapter

    def _add_chapter_writes(self, batch, chapter: Chapter) -> None:
        batch.add(
            self._insert_chapter,
            [
                chapter.course_id,
                chapter.sequence,
                chapter.id,
                chapter.title,
                chapter.description,
                chapter.video_url,
                chapter.image_url,
                chapter.created_at,
            ],
        )
        batch.add(
            self._insert_chapter_lookup,
            [chapter.id, chapter.course_id, chapter.sequence],
        )

    async def add_chapter(
        self, principal: Principal, course_id: UUID, data: CreateChapterRequest
    ) -> Chapter:
        """Add a chapter to a course the principal manages."""
        await self.require_manageable_course(principal, course_id)

        chapter = Chapter(
            course_id=course_id,
            title=data.title,
            sequence=data.sequence,
            description=data.description,
            video_url=data.video_url,
            image_url=data.image_url,
        )
        batch = statements.logged_batch()
        self._add_chapter_writes(batch, chapter)
        await self.session.aexecute(batch)

        logger.info(
            "chapter_added",
            course_id=str(course_id),
            chapter_id=str(chapter.id),
            sequence=chapter.sequence,
        )
        return chapter

    async def update_chapter(
        self, principal: Principal, chapter_id: UUID, data: UpdateChapterRequest
    ) -> Chapter:
        """Apply a partial update to a chapter.

        Sequence is part of the clustering key, so the row is rewritten
        (delete then insert) in one batch.
        """
        chapter = await self.require_chapter(chapter_id)
        await self.require_manageable_course(principal, chapter.course_id)

        old_sequence = chapter.sequence
        for field_name, value in data.model_dump(exclude_unset=True).items():
            if field_name == "title" and value is None:
                continue
            if field_name == "sequence" and value is None:
                continue
            setattr(chapter, field_name, value)

        batch = statements.logged_batch()
        if chapter.sequence != old_sequence:
            batch.add(self._delete_chapter, [chapter.course_id, old_sequence, chapter.id])
        self._add_chapter_writes(batch, chapter)
        await self.session.aexecute(batch)

        logger.info(
            "chapter_updated",
            chapter_id=str(chapter_id),
            sequence_changed=chapter.sequence != old_sequence,
        )
        return chapter

    async def delete_chapter(self, principal: Principal, chapter_id: UUID) -> None:
        """Delete a chapter and every student's progress record for it."""
        chapter = await self.require_chapter(chapter_id)
        await self.require_manageable_course(principal, chapter.course_id)

        assignments = await self.session.aexecute(
            self._list_assignments, [chapter.course_id]
        )

        batch = statements.logged_batch()
        for row in assignments:
            batch.add(
                self._delete_chapter_progress,
                [row.student_id, chapter.course_id, chapter.id],
            )
        batch.add(self._delete_chapter, [chapter.course_id, chapter.sequence, chapter.id])
        batch.add(self._delete_chapter_lookup, [chapter.id])
        await self.session.aexecute(batch)

        logger.info(
            "chapter_deleted", chapter_id=str(chapter_id), course_id=str(chapter.course_id)
        )
