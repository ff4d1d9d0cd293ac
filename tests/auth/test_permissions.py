"""Tests for auth permissions."""

from uuid import uuid4

import pytest

from codearc.auth.permissions import (
    CHAT_AUDIENCE,
    ROLE_CAPABILITIES,
    SELF_REGISTER_ROLES,
    Capability,
    UserRole,
    can,
    can_manage_course,
    is_admin,
    is_sequenced,
    parse_role,
    requires_approval,
)


class TestUserRole:
    """Tests for UserRole enum."""

    def test_role_values(self) -> None:
        """Roles should have correct string values."""
        assert UserRole.STUDENT.value == "student"
        assert UserRole.MENTOR.value == "mentor"
        assert UserRole.ADMIN.value == "admin"

    def test_all_roles_have_capabilities(self) -> None:
        """All UserRole members should have a capability set."""
        for role in UserRole:
            assert role in ROLE_CAPABILITIES

    def test_admins_cannot_self_register(self) -> None:
        assert UserRole.ADMIN not in SELF_REGISTER_ROLES


class TestParseRole:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("student", UserRole.STUDENT),
            ("mentor", UserRole.MENTOR),
            (UserRole.ADMIN, UserRole.ADMIN),
            ("guest", None),
            ("", None),
        ],
    )
    def test_parse(self, value: str, expected: UserRole | None) -> None:
        assert parse_role(value) == expected


class TestCan:
    """Tests for the capability table."""

    @pytest.mark.parametrize(
        "capability",
        [
            Capability.ENROLL,
            Capability.COMPLETE_CHAPTER,
            Capability.VIEW_DASHBOARD,
            Capability.DOWNLOAD_CERTIFICATE,
        ],
    )
    def test_learner_only_capabilities(self, capability: Capability) -> None:
        """Only students learn; staff never get learner operations."""
        assert can(UserRole.STUDENT, capability)
        assert not can(UserRole.MENTOR, capability)
        assert not can(UserRole.ADMIN, capability)

    @pytest.mark.parametrize(
        "capability",
        [
            Capability.MANAGE_COURSES,
            Capability.ASSIGN_STUDENTS,
            Capability.VIEW_MENTOR_STATS,
        ],
    )
    def test_staff_capabilities(self, capability: Capability) -> None:
        assert can(UserRole.MENTOR, capability)
        assert can(UserRole.ADMIN, capability)
        assert not can(UserRole.STUDENT, capability)

    @pytest.mark.parametrize(
        "capability",
        [
            Capability.ADMINISTER_USERS,
            Capability.BROADCAST_NOTIFICATIONS,
            Capability.VIEW_PLATFORM_STATS,
        ],
    )
    def test_admin_only_capabilities(self, capability: Capability) -> None:
        assert can(UserRole.ADMIN, capability)
        assert not can(UserRole.MENTOR, capability)
        assert not can(UserRole.STUDENT, capability)

    def test_everyone_can_chat(self) -> None:
        for role in UserRole:
            assert can(role, Capability.CHAT)

    def test_unknown_role_has_nothing(self) -> None:
        assert not can("guest", Capability.BROWSE_COURSES)

    def test_string_roles(self) -> None:
        assert can("student", Capability.ENROLL)
        assert not can("mentor", Capability.ENROLL)


class TestRoleHelpers:
    def test_is_admin(self) -> None:
        assert is_admin(UserRole.ADMIN)
        assert is_admin("admin")
        assert not is_admin(UserRole.MENTOR)

    def test_only_students_are_sequenced(self) -> None:
        assert is_sequenced(UserRole.STUDENT)
        assert not is_sequenced(UserRole.MENTOR)
        assert not is_sequenced(UserRole.ADMIN)

    def test_only_mentors_require_approval(self) -> None:
        assert requires_approval(UserRole.MENTOR)
        assert not requires_approval(UserRole.STUDENT)
        assert not requires_approval(UserRole.ADMIN)


class TestCanManageCourse:
    """Tests for course ownership."""

    def test_owner(self) -> None:
        mentor_id = uuid4()
        assert can_manage_course(UserRole.MENTOR, mentor_id, mentor_id)

    def test_other_mentor(self) -> None:
        assert not can_manage_course(UserRole.MENTOR, uuid4(), uuid4())

    def test_admin_manages_any_course(self) -> None:
        assert can_manage_course(UserRole.ADMIN, uuid4(), uuid4())

    def test_student_never_manages(self) -> None:
        student_id = uuid4()
        assert not can_manage_course(UserRole.STUDENT, student_id, student_id)


class TestChatAudience:
    def test_students_cannot_chat_with_students(self) -> None:
        assert UserRole.STUDENT not in CHAT_AUDIENCE[UserRole.STUDENT]

    def test_admins_reach_everyone(self) -> None:
        assert set(CHAT_AUDIENCE[UserRole.ADMIN]) == set(UserRole)
