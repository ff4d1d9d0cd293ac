"""Tests for course content, catalog, dashboard and certificate eligibility."""

from uuid import uuid4

import pytest

from codearc.auth.permissions import UserRole
from codearc.core.exceptions import PermissionDeniedError
from codearc.courses.service import CourseNotFoundError
from codearc.progress.service import (
    CourseHasNoContentError,
    NotEligibleError,
    NotEnrolledInCourseError,
)


class TestDashboard:
    """Tests for ProgressService.dashboard."""

    @pytest.mark.asyncio
    async def test_no_enrollments(self, services, make_user, make_course) -> None:
        mentor = await make_user(UserRole.MENTOR)
        student = await make_user(UserRole.STUDENT)
        for n in range(6):
            await make_course(mentor, f"Course {n}", chapters=1)

        dashboard = await services.progress_service.dashboard(student.id)

        assert dashboard.stats.enrolled == 0
        assert dashboard.stats.completed == 0
        assert dashboard.stats.in_progress == 0
        assert dashboard.stats.certificates == 0
        assert dashboard.recent == []
        assert [c.title for c in dashboard.recommended] == [
            "Course 0",
            "Course 1",
            "Course 2",
            "Course 3",
        ]

    @pytest.mark.asyncio
    async def test_stats_and_recommendations(
        self, services, make_user, make_course
    ) -> None:
        mentor = await make_user(UserRole.MENTOR, "Maria Mentor")
        student = await make_user(UserRole.STUDENT)
        done, done_chapters = await make_course(mentor, "Done", chapters=1)
        started, _ = await make_course(mentor, "Started", chapters=2)
        other, _ = await make_course(mentor, "Other", chapters=1)

        await services.enrollment_service.enroll(student, done.id)
        await services.enrollment_service.enroll(student, started.id)
        await services.progress_service.complete_chapter(student, done_chapters[0].id)

        dashboard = await services.progress_service.dashboard(student.id)

        assert dashboard.stats.enrolled == 2
        assert dashboard.stats.completed == 1
        assert dashboard.stats.in_progress == 1
        assert {p.course.id for p in dashboard.recent} == {done.id, started.id}
        assert [c.id for c in dashboard.recommended] == [other.id]
        assert dashboard.mentor_names[mentor.id] == "Maria Mentor"

    @pytest.mark.asyncio
    async def test_recent_is_capped(self, services, make_user, make_course) -> None:
        mentor = await make_user(UserRole.MENTOR)
        student = await make_user(UserRole.STUDENT)
        for n in range(7):
            course, _ = await make_course(mentor, f"Course {n}", chapters=1)
            await services.enrollment_service.enroll(student, course.id)

        dashboard = await services.progress_service.dashboard(student.id)

        assert dashboard.stats.enrolled == 7
        assert len(dashboard.recent) == 5
        assert dashboard.recommended == []


class TestCourseContent:
    """Tests for ProgressService.get_course_content."""

    @pytest.mark.asyncio
    async def test_student_sees_locks(self, services, make_user, make_course) -> None:
        mentor = await make_user(UserRole.MENTOR, "Maria Mentor")
        student = await make_user(UserRole.STUDENT)
        course, chapters = await make_course(mentor, chapters=3)
        await services.enrollment_service.enroll(student, course.id)
        await services.progress_service.complete_chapter(student, chapters[0].id)

        content = await services.progress_service.get_course_content(student, course.id)

        assert content.mentor_name == "Maria Mentor"
        assert content.percent == 33
        assert [c.is_completed for c in content.chapters] == [True, False, False]
        assert [c.is_locked for c in content.chapters] == [False, False, True]
        assert content.chapters[2].video_url is None

    @pytest.mark.asyncio
    async def test_student_must_be_enrolled(
        self, services, make_user, make_course
    ) -> None:
        mentor = await make_user(UserRole.MENTOR)
        student = await make_user(UserRole.STUDENT)
        course, _ = await make_course(mentor)

        with pytest.raises(NotEnrolledInCourseError):
            await services.progress_service.get_course_content(student, course.id)

    @pytest.mark.asyncio
    async def test_owner_sees_everything(self, services, make_user, make_course) -> None:
        mentor = await make_user(UserRole.MENTOR)
        course, _ = await make_course(mentor)

        content = await services.progress_service.get_course_content(mentor, course.id)

        assert content.percent is None
        assert not any(c.is_locked for c in content.chapters)

    @pytest.mark.asyncio
    async def test_other_mentor_is_denied(
        self, services, make_user, make_course
    ) -> None:
        owner = await make_user(UserRole.MENTOR)
        other = await make_user(UserRole.MENTOR)
        course, _ = await make_course(owner)

        with pytest.raises(PermissionDeniedError):
            await services.progress_service.get_course_content(other, course.id)


class TestCatalog:
    @pytest.mark.asyncio
    async def test_student_catalog_status(
        self, services, make_user, make_course
    ) -> None:
        mentor = await make_user(UserRole.MENTOR)
        student = await make_user(UserRole.STUDENT)
        enrolled, chapters = await make_course(mentor, "Enrolled", chapters=2)
        await make_course(mentor, "Open", chapters=2)
        await services.enrollment_service.enroll(student, enrolled.id)
        await services.progress_service.complete_chapter(student, chapters[0].id)

        entries = {
            e.course.title: e for e in await services.progress_service.catalog(student)
        }

        assert entries["Enrolled"].is_enrolled
        assert entries["Enrolled"].progress == 50
        assert not entries["Enrolled"].is_completed
        assert not entries["Open"].is_enrolled
        assert entries["Open"].progress == 0

    @pytest.mark.asyncio
    async def test_mentor_catalog_is_own_courses(
        self, services, make_user, make_course
    ) -> None:
        mine = await make_user(UserRole.MENTOR)
        theirs = await make_user(UserRole.MENTOR)
        await make_course(mine, "Mine")
        await make_course(theirs, "Theirs")

        entries = await services.progress_service.catalog(mine)

        assert [e.course.title for e in entries] == ["Mine"]


class TestMentorStats:
    @pytest.mark.asyncio
    async def test_course_students_progress(
        self, services, make_user, make_course
    ) -> None:
        mentor = await make_user(UserRole.MENTOR)
        student = await make_user(UserRole.STUDENT, "Sam Student")
        course, chapters = await make_course(mentor, chapters=4)
        await services.enrollment_service.enroll(student, course.id)
        await services.progress_service.complete_chapter(student, chapters[0].id)

        [stats] = await services.progress_service.mentor_stats(mentor)

        assert stats.course.id == course.id
        assert stats.total_chapters == 4
        assert [(s.name, s.percent) for s in stats.students] == [("Sam Student", 25)]


class TestCertificateEligibility:
    """Tests for ProgressService.certificate_payload."""

    @pytest.mark.asyncio
    async def test_completed_course(self, services, make_user, make_course) -> None:
        mentor = await make_user(UserRole.MENTOR, "Maria Mentor")
        student = await make_user(UserRole.STUDENT, "Sam Student")
        course, chapters = await make_course(mentor, "Python Basics", chapters=2)
        await services.enrollment_service.enroll(student, course.id)
        for chapter in chapters:
            await services.progress_service.complete_chapter(student, chapter.id)

        payload = await services.progress_service.certificate_payload(
            student.id, course.id
        )

        assert payload.student_name == "Sam Student"
        assert payload.course_title == "Python Basics"
        assert payload.mentor_name == "Maria Mentor"

    @pytest.mark.asyncio
    async def test_incomplete_course(self, services, make_user, make_course) -> None:
        mentor = await make_user(UserRole.MENTOR)
        student = await make_user(UserRole.STUDENT)
        course, chapters = await make_course(mentor, chapters=2)
        await services.enrollment_service.enroll(student, course.id)
        await services.progress_service.complete_chapter(student, chapters[0].id)

        with pytest.raises(NotEligibleError):
            await services.progress_service.certificate_payload(student.id, course.id)

    @pytest.mark.asyncio
    async def test_course_without_chapters(
        self, services, make_user, make_course
    ) -> None:
        mentor = await make_user(UserRole.MENTOR)
        student = await make_user(UserRole.STUDENT)
        course, _ = await make_course(mentor, chapters=0)
        await services.enrollment_service.enroll(student, course.id)

        with pytest.raises(CourseHasNoContentError) as exc_info:
            await services.progress_service.certificate_payload(student.id, course.id)

        assert exc_info.value.message == "Course has no content"

    @pytest.mark.asyncio
    async def test_not_enrolled(self, services, make_user, make_course) -> None:
        mentor = await make_user(UserRole.MENTOR)
        student = await make_user(UserRole.STUDENT)
        course, _ = await make_course(mentor)

        with pytest.raises(NotEnrolledInCourseError):
            await services.progress_service.certificate_payload(student.id, course.id)

    @pytest.mark.asyncio
    async def test_unknown_course(self, services, make_user) -> None:
        student = await make_user(UserRole.STUDENT)
        with pytest.raises(CourseNotFoundError):
            await services.progress_service.certificate_payload(student.id, uuid4())
