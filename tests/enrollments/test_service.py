"""Tests for the enrollment lifecycle."""

from uuid import uuid4

import pytest

from codearc.auth.permissions import UserRole
from codearc.auth.service import UserNotFoundError
from codearc.core.exceptions import ConflictError
from codearc.courses.service import CourseNotFoundError, NotCourseOwnerError
from codearc.enrollments.service import (
    AlreadyEnrolledError,
    NotAStudentError,
    NotEnrolledError,
)


class TestEnroll:
    """Tests for EnrollmentService.enroll."""

    @pytest.mark.asyncio
    async def test_enroll(self, services, session, make_user, make_course) -> None:
        mentor = await make_user(UserRole.MENTOR)
        student = await make_user(UserRole.STUDENT, "Sam Student")
        course, _ = await make_course(mentor)

        assignment = await services.enrollment_service.enroll(student, course.id)

        assert assignment.student_id == student.id
        assert assignment.assigned_by is None
        assert await services.enrollment_service.is_enrolled(course.id, student.id)
        assert session.count(
            "notifications", user_id=mentor.id, title="New Enrollment"
        ) == 1

    @pytest.mark.asyncio
    async def test_double_enroll_is_a_conflict(
        self, services, session, make_user, make_course
    ) -> None:
        mentor = await make_user(UserRole.MENTOR)
        student = await make_user(UserRole.STUDENT)
        course, _ = await make_course(mentor)
        await services.enrollment_service.enroll(student, course.id)

        with pytest.raises(AlreadyEnrolledError) as exc_info:
            await services.enrollment_service.enroll(student, course.id)

        assert isinstance(exc_info.value, ConflictError)
        assert exc_info.value.message == "Already enrolled"
        assert session.count("course_assignments", student_id=student.id) == 1
        assert session.count("assignments_by_student", student_id=student.id) == 1
        assert session.count(
            "notifications", user_id=mentor.id, title="New Enrollment"
        ) == 1

    @pytest.mark.asyncio
    async def test_unknown_course(self, services, make_user) -> None:
        student = await make_user(UserRole.STUDENT)
        with pytest.raises(CourseNotFoundError):
            await services.enrollment_service.enroll(student, uuid4())


class TestAssignStudent:
    """Tests for EnrollmentService.assign_student."""

    @pytest.mark.asyncio
    async def test_mentor_assigns_to_own_course(
        self, services, make_user, make_course
    ) -> None:
        mentor = await make_user(UserRole.MENTOR)
        student = await make_user(UserRole.STUDENT)
        course, _ = await make_course(mentor)

        assignment = await services.enrollment_service.assign_student(
            mentor, course.id, student.id
        )

        assert assignment.assigned_by == mentor.id
        assert await services.enrollment_service.is_enrolled(course.id, student.id)

    @pytest.mark.asyncio
    async def test_other_mentor_cannot_assign(
        self, services, session, make_user, make_course
    ) -> None:
        owner = await make_user(UserRole.MENTOR)
        other = await make_user(UserRole.MENTOR)
        student = await make_user(UserRole.STUDENT)
        course, _ = await make_course(owner)

        with pytest.raises(NotCourseOwnerError):
            await services.enrollment_service.assign_student(other, course.id, student.id)

        assert session.count("course_assignments", course_id=course.id) == 0

    @pytest.mark.asyncio
    async def test_only_students_can_be_assigned(
        self, services, make_user, make_course
    ) -> None:
        mentor = await make_user(UserRole.MENTOR)
        other_mentor = await make_user(UserRole.MENTOR)
        course, _ = await make_course(mentor)

        with pytest.raises(NotAStudentError):
            await services.enrollment_service.assign_student(
                mentor, course.id, other_mentor.id
            )

    @pytest.mark.asyncio
    async def test_unknown_student(self, services, make_user, make_course) -> None:
        mentor = await make_user(UserRole.MENTOR)
        course, _ = await make_course(mentor)

        with pytest.raises(UserNotFoundError):
            await services.enrollment_service.assign_student(mentor, course.id, uuid4())


class TestUnenroll:
    """Tests for EnrollmentService.unenroll."""

    @pytest.mark.asyncio
    async def test_removes_only_that_course(
        self, services, session, make_user, make_course
    ) -> None:
        mentor = await make_user(UserRole.MENTOR)
        student = await make_user(UserRole.STUDENT)
        dropped, dropped_chapters = await make_course(mentor, "Dropped", chapters=1)
        kept, kept_chapters = await make_course(mentor, "Kept", chapters=2)
        enrollments = services.enrollment_service
        await enrollments.enroll(student, dropped.id)
        await enrollments.enroll(student, kept.id)
        await services.progress_service.complete_chapter(student, dropped_chapters[0].id)
        await services.progress_service.complete_chapter(student, kept_chapters[0].id)

        await enrollments.unenroll(student.id, dropped.id)

        assert not await enrollments.is_enrolled(dropped.id, student.id)
        assert session.count("chapter_progress", course_id=dropped.id) == 0
        assert session.count("course_completions", course_id=dropped.id) == 0
        assert session.count("chapter_progress", course_id=kept.id) == 1
        assert await enrollments.is_enrolled(kept.id, student.id)

    @pytest.mark.asyncio
    async def test_re_enroll_starts_from_scratch(
        self, services, make_user, make_course
    ) -> None:
        mentor = await make_user(UserRole.MENTOR)
        student = await make_user(UserRole.STUDENT)
        course, chapters = await make_course(mentor, chapters=2)
        await services.enrollment_service.enroll(student, course.id)
        await services.progress_service.complete_chapter(student, chapters[0].id)

        await services.enrollment_service.unenroll(student.id, course.id)
        await services.enrollment_service.enroll(student, course.id)

        aggregator = services.progress_service.aggregator
        assert await aggregator.course_percent(student.id, course.id) == 0

    @pytest.mark.asyncio
    async def test_not_enrolled(self, services, make_user, make_course) -> None:
        mentor = await make_user(UserRole.MENTOR)
        student = await make_user(UserRole.STUDENT)
        course, _ = await make_course(mentor)

        with pytest.raises(NotEnrolledError):
            await services.enrollment_service.unenroll(student.id, course.id)
