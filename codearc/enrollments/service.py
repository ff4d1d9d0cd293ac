# ruff: noqa: S608 - All CQL queries use keyspace from config, not user input
"""Enrollment lifecycle service layer.

Business logic for:
- Self-enrollment and assignment by a course's mentor (or an admin)
- Unenrollment, which also purges the student's progress in that course
- Enrollment lookups

At most one assignment exists per (course, student): the insert is a
lightweight transaction and a lost race surfaces as AlreadyEnrolledError.
"""

from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from codearc.auth.permissions import UserRole
from codearc.auth.schemas import Principal
from codearc.core.database import statements
from codearc.core.exceptions import ConflictError, NotFoundError, ValidationError
from codearc.courses.models import Course
from codearc.enrollments.events import StudentEnrolled
from codearc.enrollments.models import CourseAssignment


if TYPE_CHECKING:
    from cassandra.cluster import Session

    from codearc.auth.models import User
    from codearc.auth.service import AuthService
    from codearc.core.events import EventBus
    from codearc.courses.service import CourseService

logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class AlreadyEnrolledError(ConflictError):
    default_message = "Already enrolled"
    default_code = "already_enrolled"


class NotEnrolledError(NotFoundError):
    default_message = "You are not enrolled in this course"
    default_code = "not_enrolled"


class NotAStudentError(ValidationError):
    default_message = "Only students can be enrolled in courses"
    default_code = "not_a_student"


# ==============================================================================
# Enrollment Service
# ==============================================================================


class EnrollmentService:
    """Service for course assignments."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        courses: "CourseService",
        directory: "AuthService",
        events: "EventBus",
    ):
        """Initialize with Cassandra session and collaborating services."""
        self.session = session
        self.keyspace = keyspace
        self.courses = courses
        self.directory = directory
        self.events = events
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient execution."""
        self._insert_assignment = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.course_assignments
            (course_id, student_id, assigned_at, assigned_by)
            VALUES (?, ?, ?, ?)
            IF NOT EXISTS
        """)
        self._get_assignment = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.course_assignments
            WHERE course_id = ? AND student_id = ?
        """)
        self._list_course_assignments = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.course_assignments WHERE course_id = ?
        """)
        self._count_assignments = self.session.prepare(f"""
            SELECT COUNT(*) FROM {self.keyspace}.course_assignments
        """)
        self._delete_assignment = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.course_assignments
            WHERE course_id = ? AND student_id = ?
        """)

        self._insert_by_student = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.assignments_by_student
            (student_id, course_id, assigned_at)
            VALUES (?, ?, ?)
        """)
        self._list_by_student = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.assignments_by_student WHERE student_id = ?
        """)
        self._delete_by_student = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.assignments_by_student
            WHERE student_id = ? AND course_id = ?
        """)

        self._delete_progress = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.chapter_progress
            WHERE student_id = ? AND course_id = ?
        """)
        self._delete_completion = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.course_completions
            WHERE student_id = ? AND course_id = ?
        """)

    # ==========================================================================
    # Enroll / Assign
    # ==========================================================================

    async def enroll(self, principal: Principal, course_id: UUID) -> CourseAssignment:
        """Enroll the calling student in a course.

        Raises:
            CourseNotFoundError: If the course does not exist
            AlreadyEnrolledError: If the student is already enrolled
        """
        course = await self.courses.require_course(course_id)
        return await self._create_assignment(course, principal.id)

    async def assign_student(
        self, principal: Principal, course_id: UUID, student_id: UUID
    ) -> CourseAssignment:
        """Assign a student to a course on behalf of its mentor.

        Mentors may only assign to courses they own; admins to any course.

        Raises:
            CourseNotFoundError: If the course does not exist
            NotCourseOwnerError: If a mentor does not own the course
            UserNotFoundError: If the student does not exist
            NotAStudentError: If the user is not a student
            AlreadyEnrolledError: If the student is already enrolled
        """
        course = await self.courses.require_manageable_course(principal, course_id)
        student = await self.directory.require_user(student_id)
        if student.role != UserRole.STUDENT.value:
            raise NotAStudentError

        return await self._create_assignment(course, student.id, assigned_by=principal.id)

    async def _create_assignment(
        self, course: Course, student_id: UUID, assigned_by: UUID | None = None
    ) -> CourseAssignment:
        assignment = CourseAssignment(
            course_id=course.id, student_id=student_id, assigned_by=assigned_by
        )

        result = await self.session.aexecute(
            self._insert_assignment,
            [
                assignment.course_id,
                assignment.student_id,
                assignment.assigned_at,
                assignment.assigned_by,
            ],
        )
        if not result.was_applied:
            raise AlreadyEnrolledError

        await self.session.aexecute(
            self._insert_by_student,
            [assignment.student_id, assignment.course_id, assignment.assigned_at],
        )

        logger.info(
            "student_enrolled",
            student_id=str(student_id),
            course_id=str(course.id),
            assigned_by=str(assigned_by) if assigned_by else None,
        )

        student = await self.directory.get_user(student_id)
        await self.events.publish(
            StudentEnrolled(
                student_id=student_id,
                student_name=student.name if student else "A student",
                course_id=course.id,
                course_title=course.title,
                mentor_id=course.mentor_id,
                assigned_by=assigned_by,
            )
        )
        return assignment

    # ==========================================================================
    # Unenroll
    # ==========================================================================

    async def unenroll(self, student_id: UUID, course_id: UUID) -> None:
        """Remove an enrollment together with the student's progress in it.

        The assignment, its lookup row, the (student, course) progress
        partition and the completion record are deleted in one logged batch,
        so either all of them go or none do. Progress in other courses is
        untouched.

        Raises:
            NotEnrolledError: If the student is not enrolled
        """
        if await self.get_assignment(course_id, student_id) is None:
            raise NotEnrolledError

        batch = statements.logged_batch()
        batch.add(self._delete_assignment, [course_id, student_id])
        batch.add(self._delete_by_student, [student_id, course_id])
        batch.add(self._delete_progress, [student_id, course_id])
        batch.add(self._delete_completion, [student_id, course_id])
        await self.session.aexecute(batch)

        logger.info(
            "student_unenrolled", student_id=str(student_id), course_id=str(course_id)
        )

    async def withdraw_student(self, user: "User") -> None:
        """Unenroll a student from every course (run when the student is deleted)."""
        if user.role != UserRole.STUDENT.value:
            return

        for assignment in await self.list_student_assignments(user.id):
            await self.unenroll(user.id, assignment.course_id)

    # ==========================================================================
    # Queries
    # ==========================================================================

    async def get_assignment(
        self, course_id: UUID, student_id: UUID
    ) -> CourseAssignment | None:
        result = await self.session.aexecute(
            self._get_assignment, [course_id, student_id]
        )
        row = result.one()
        return CourseAssignment.from_row(row) if row else None

    async def is_enrolled(self, course_id: UUID, student_id: UUID) -> bool:
        return await self.get_assignment(course_id, student_id) is not None

    async def list_student_assignments(self, student_id: UUID) -> list[CourseAssignment]:
        """A student's enrollments (from the by-student lookup)."""
        rows = await self.session.aexecute(self._list_by_student, [student_id])
        return [CourseAssignment.from_row(row) for row in rows]

    async def list_course_assignments(self, course_id: UUID) -> list[CourseAssignment]:
        rows = await self.session.aexecute(self._list_course_assignments, [course_id])
        return [CourseAssignment.from_row(row) for row in rows]

    async def count_enrollments(self) -> int:
        """Total enrollments on the platform."""
        result = await self.session.aexecute(self._count_assignments)
        row = result.one()
        return row.count if row else 0
