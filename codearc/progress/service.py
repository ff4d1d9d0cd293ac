# ruff: noqa: S608 - All CQL queries use keyspace from config, not user input
"""Learning progress service layer.

Business logic for:
- Chapter completion with server-side sequence enforcement
- Course completion detection (fires CourseCompleted exactly once)
- Sequenced course content, catalog status and the student dashboard
- Mentor statistics
- Certificate eligibility and rendering

Completion is guarded by lightweight transactions: the progress row is
claimed with IF NOT EXISTS (or flipped with IF is_completed = false), and the
course completion row is claimed the same way. Only the request that wins
the completion claim publishes the event.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from codearc.auth.permissions import UserRole, can_manage_course, is_admin
from codearc.auth.schemas import Principal
from codearc.core.exceptions import (
    PermissionDeniedError,
    SequenceViolationError,
    ValidationError,
)
from codearc.courses.models import Course
from codearc.progress.aggregator import (
    CourseProgress,
    DashboardStats,
    course_state,
    is_course_complete,
    percent_complete,
    recent_courses,
    recommend_courses,
    rollup,
)
from codearc.progress.certificate import CertificatePayload, RenderedCertificate
from codearc.progress.events import CourseCompleted
from codearc.progress.models import ChapterProgress, CourseState
from codearc.progress.sequencer import SequencedChapter, predecessor_of, sequence_chapters


if TYPE_CHECKING:
    from cassandra.cluster import Session

    from codearc.auth.service import AuthService
    from codearc.core.events import EventBus
    from codearc.courses.service import CourseService
    from codearc.enrollments.service import EnrollmentService
    from codearc.progress.aggregator import ProgressAggregator
    from codearc.progress.certificate import HttpCertificateRenderer

logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class NotEnrolledInCourseError(PermissionDeniedError):
    default_message = "You are not enrolled in this course"
    default_code = "not_enrolled"


class CourseHasNoContentError(ValidationError):
    default_message = "Course has no content"
    default_code = "course_has_no_content"


class NotEligibleError(PermissionDeniedError):
    default_message = "Complete every chapter to earn the certificate"
    default_code = "not_eligible"


# ==============================================================================
# Results
# ==============================================================================


@dataclass(frozen=True)
class CompletionResult:
    """Outcome of a chapter completion request."""

    chapter_id: UUID
    course_id: UUID
    already_completed: bool
    course_completed: bool
    percent: int
    state: CourseState


@dataclass
class CourseContent:
    course: Course
    mentor_name: str | None
    chapters: list[SequencedChapter]
    percent: int | None = None


@dataclass
class CatalogEntry:
    course: Course
    mentor_name: str | None
    is_enrolled: bool = False
    is_completed: bool = False
    progress: int = 0


@dataclass
class Dashboard:
    stats: DashboardStats
    recent: list[CourseProgress]
    recommended: list[Course]
    mentor_names: dict[UUID, str]


@dataclass
class StudentProgress:
    student_id: UUID
    name: str
    email: str
    assigned_at: datetime
    percent: int


@dataclass
class MentorCourseStats:
    course: Course
    total_chapters: int
    students: list[StudentProgress]


# ==============================================================================
# Progress Service
# ==============================================================================


class ProgressService:
    """Service for chapter completion and progress views."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        courses: "CourseService",
        enrollments: "EnrollmentService",
        aggregator: "ProgressAggregator",
        directory: "AuthService",
        events: "EventBus",
        renderer: "HttpCertificateRenderer",
        recent_limit: int = 5,
        recommended_limit: int = 4,
    ):
        """Initialize with Cassandra session and collaborating services."""
        self.session = session
        self.keyspace = keyspace
        self.courses = courses
        self.enrollments = enrollments
        self.aggregator = aggregator
        self.directory = directory
        self.events = events
        self.renderer = renderer
        self.recent_limit = recent_limit
        self.recommended_limit = recommended_limit
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient execution."""
        self._claim_progress = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.chapter_progress
            (student_id, course_id, chapter_id, is_completed, completed_at)
            VALUES (?, ?, ?, ?, ?)
            IF NOT EXISTS
        """)
        self._mark_progress = self.session.prepare(f"""
            UPDATE {self.keyspace}.chapter_progress
            SET is_completed = true, completed_at = ?
            WHERE student_id = ? AND course_id = ? AND chapter_id = ?
            IF is_completed = false
        """)
        self._claim_completion = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.course_completions
            (student_id, course_id, completed_at)
            VALUES (?, ?, ?)
            IF NOT EXISTS
        """)
        self._get_completion = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.course_completions
            WHERE student_id = ? AND course_id = ?
        """)

    async def _require_enrolled(self, student_id: UUID, course_id: UUID) -> datetime:
        assignment = await self.enrollments.get_assignment(course_id, student_id)
        if assignment is None:
            raise NotEnrolledInCourseError
        return assignment.assigned_at

    async def _mentor_names(self, courses: list[Course]) -> dict[UUID, str]:
        users = await self.directory.get_users(list({c.mentor_id for c in courses}))
        return {user_id: user.name for user_id, user in users.items()}

    # ==========================================================================
    # Chapter Completion
    # ==========================================================================

    async def complete_chapter(
        self, principal: Principal, chapter_id: UUID
    ) -> CompletionResult:
        """Mark a chapter completed for the calling student.

        Completing an already completed chapter writes nothing. Whenever every
        chapter is completed and no completion record exists yet, one is
        claimed and CourseCompleted is published after the writes.

        Raises:
            ChapterNotFoundError: If the chapter does not exist
            NotEnrolledInCourseError: If the student is not enrolled
            SequenceViolationError: If the previous chapter is not completed
        """
        student_id = principal.id
        chapter = await self.courses.require_chapter(chapter_id)
        course_id = chapter.course_id
        await self._require_enrolled(student_id, course_id)

        chapters = await self.courses.list_chapters(course_id)
        completed_ids = await self.aggregator.completed_chapter_ids(student_id, course_id)
        previous = predecessor_of(chapters, chapter_id)
        if previous is not None and previous.id not in completed_ids:
            logger.info(
                "chapter_sequence_violation",
                chapter_id=str(chapter_id),
                missing_chapter_id=str(previous.id),
            )
            raise SequenceViolationError

        transitioned = await self._mark_completed(
            ChapterProgress.completed_now(student_id, course_id, chapter_id)
        )

        completed = await self.aggregator.count_completed(student_id, course_id)
        total = await self.aggregator.count_chapters(course_id)
        course_completed = False

        if transitioned:
            logger.info(
                "chapter_completed",
                chapter_id=str(chapter_id),
                course_id=str(course_id),
                completed=completed,
                total=total,
            )

        # Also on repeats; the guard row allows one CourseCompleted per course
        if is_course_complete(completed, total):
            course_completed = await self._complete_course(student_id, course_id)

        return CompletionResult(
            chapter_id=chapter_id,
            course_id=course_id,
            already_completed=not transitioned,
            course_completed=course_completed,
            percent=percent_complete(completed, total),
            state=course_state(completed, total),
        )

    async def _mark_completed(self, progress: ChapterProgress) -> bool:
        """Write the completion. Returns True only if this call made the change."""
        key = [progress.student_id, progress.course_id, progress.chapter_id]
        result = await self.session.aexecute(
            self._claim_progress, [*key, True, progress.completed_at]
        )
        if result.was_applied:
            return True

        existing = result.one()
        if existing is not None and existing.is_completed:
            return False

        result = await self.session.aexecute(
            self._mark_progress, [progress.completed_at, *key]
        )
        return bool(result.was_applied)

    async def _complete_course(self, student_id: UUID, course_id: UUID) -> bool:
        result = await self.session.aexecute(
            self._claim_completion, [student_id, course_id, datetime.now(UTC)]
        )
        if not result.was_applied:
            return False

        course = await self.courses.require_course(course_id)
        student = await self.directory.get_user(student_id)
        logger.info(
            "course_completed", student_id=str(student_id), course_id=str(course_id)
        )
        await self.events.publish(
            CourseCompleted(
                student_id=student_id,
                student_name=student.name if student else "A student",
                course_id=course_id,
                course_title=course.title,
                mentor_id=course.mentor_id,
            )
        )
        return True

    # ==========================================================================
    # Course Content
    # ==========================================================================

    async def get_course_content(
        self, principal: Principal, course_id: UUID
    ) -> CourseContent:
        """Course with its chapters as the principal may see them.

        Students must be enrolled and get lock flags; mentors must own the
        course; admins see everything unlocked.
        """
        course = await self.courses.require_course(course_id)
        chapters = await self.courses.list_chapters(course_id)
        completed_ids: set[UUID] = set()
        percent = None

        if principal.role == UserRole.STUDENT:
            await self._require_enrolled(principal.id, course_id)
            completed_ids = await self.aggregator.completed_chapter_ids(
                principal.id, course_id
            )
            percent = percent_complete(
                sum(1 for c in chapters if c.id in completed_ids), len(chapters)
            )
        elif not can_manage_course(principal.role, principal.id, course.mentor_id):
            raise PermissionDeniedError("You can only view your own courses")

        mentor = await self.directory.get_user(course.mentor_id)
        return CourseContent(
            course=course,
            mentor_name=mentor.name if mentor else None,
            chapters=sequence_chapters(chapters, completed_ids, principal.role),
            percent=percent,
        )

    # ==========================================================================
    # Catalog and Dashboard
    # ==========================================================================

    async def catalog(self, principal: Principal) -> list[CatalogEntry]:
        """Course listing for the principal's role.

        Students see every course with their own status, mentors their own
        courses, admins all courses.
        """
        if principal.role == UserRole.MENTOR:
            courses = await self.courses.list_mentor_courses(principal.id)
        else:
            courses = await self.courses.list_courses()
        names = await self._mentor_names(courses)

        if principal.role != UserRole.STUDENT:
            return [CatalogEntry(course=c, mentor_name=names.get(c.mentor_id)) for c in courses]

        enrolled = {
            a.course_id for a in await self.enrollments.list_student_assignments(principal.id)
        }
        entries = []
        for course in courses:
            entry = CatalogEntry(course=course, mentor_name=names.get(course.mentor_id))
            if course.id in enrolled:
                completed = await self.aggregator.count_completed(principal.id, course.id)
                total = await self.aggregator.count_chapters(course.id)
                entry.is_enrolled = True
                entry.is_completed = is_course_complete(completed, total)
                entry.progress = percent_complete(completed, total)
            entries.append(entry)
        return entries

    async def my_courses(self, student_id: UUID) -> list[CourseProgress]:
        """A student's enrolled courses with progress, most recent first."""
        progress = []
        for assignment in await self.enrollments.list_student_assignments(student_id):
            course = await self.courses.get_course(assignment.course_id)
            if course is None:
                continue
            progress.append(
                await self.aggregator.course_progress(
                    student_id, course, assignment.assigned_at
                )
            )
        return recent_courses(progress, len(progress))

    async def dashboard(self, student_id: UUID) -> Dashboard:
        """Stats, recent courses and recommendations for a student."""
        progress = await self.my_courses(student_id)
        catalog = await self.courses.list_courses()
        recommended = recommend_courses(
            catalog, (p.course.id for p in progress), self.recommended_limit
        )
        recent = recent_courses(progress, self.recent_limit)

        names = await self._mentor_names([p.course for p in recent] + recommended)
        return Dashboard(
            stats=rollup(progress),
            recent=recent,
            recommended=recommended,
            mentor_names=names,
        )

    # ==========================================================================
    # Mentor Views
    # ==========================================================================

    async def course_students(
        self, principal: Principal, course_id: UUID
    ) -> list[StudentProgress]:
        """Students enrolled in a course the principal manages."""
        course = await self.courses.require_manageable_course(principal, course_id)
        return await self._students_of(course)

    async def _students_of(self, course: Course) -> list[StudentProgress]:
        assignments = await self.enrollments.list_course_assignments(course.id)
        users = await self.directory.get_users([a.student_id for a in assignments])
        total = await self.aggregator.count_chapters(course.id)

        students = []
        for assignment in assignments:
            user = users.get(assignment.student_id)
            if user is None:
                continue
            completed = await self.aggregator.count_completed(user.id, course.id)
            students.append(
                StudentProgress(
                    student_id=user.id,
                    name=user.name,
                    email=user.email,
                    assigned_at=assignment.assigned_at,
                    percent=percent_complete(completed, total),
                )
            )
        return sorted(students, key=lambda s: (s.assigned_at, str(s.student_id)))

    async def mentor_stats(self, principal: Principal) -> list[MentorCourseStats]:
        """Per-course student progress for a mentor's courses (all, for admins)."""
        if is_admin(principal.role):
            courses = await self.courses.list_courses()
        else:
            courses = await self.courses.list_mentor_courses(principal.id)

        return [
            MentorCourseStats(
                course=course,
                total_chapters=await self.aggregator.count_chapters(course.id),
                students=await self._students_of(course),
            )
            for course in courses
        ]

    # ==========================================================================
    # Certificates
    # ==========================================================================

    async def certificate_payload(
        self, student_id: UUID, course_id: UUID
    ) -> CertificatePayload:
        """Certificate data for a student who has completed a course.

        Raises:
            CourseNotFoundError: If the course does not exist
            NotEnrolledInCourseError: If the student is not enrolled
            CourseHasNoContentError: If the course has no chapters
            NotEligibleError: If any chapter is still incomplete
        """
        course = await self.courses.require_course(course_id)
        await self._require_enrolled(student_id, course_id)

        total = await self.aggregator.count_chapters(course_id)
        if total == 0:
            raise CourseHasNoContentError
        completed = await self.aggregator.count_completed(student_id, course_id)
        if not is_course_complete(completed, total):
            raise NotEligibleError

        row = (
            await self.session.aexecute(self._get_completion, [student_id, course_id])
        ).one()
        completed_at = row.completed_at if row and row.completed_at else datetime.now(UTC)

        users = await self.directory.get_users([student_id, course.mentor_id])
        student = users.get(student_id)
        mentor = users.get(course.mentor_id)
        return CertificatePayload(
            student_name=student.name if student else "Student",
            course_title=course.title,
            mentor_name=mentor.name if mentor else "CodeArc",
            completion_date=completed_at.date(),
        )

    async def render_certificate(
        self, student_id: UUID, course_id: UUID
    ) -> tuple[CertificatePayload, RenderedCertificate]:
        payload = await self.certificate_payload(student_id, course_id)
        rendered = await self.renderer.render(payload)
        logger.info(
            "certificate_rendered", student_id=str(student_id), course_id=str(course_id)
        )
        return payload, rendered
