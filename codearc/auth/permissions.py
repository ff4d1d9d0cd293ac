"""Role-based capabilities for CodeArc.

Roles form a closed set. Each role maps to an explicit set of capabilities
and every operation checks the capability it needs:
- STUDENT: browse, enroll, learn, download certificates, chat
- MENTOR: author and manage own courses, assign students, view stats, chat
- ADMIN: everything a mentor can do on any course, plus user administration
"""

from enum import Enum


class UserRole(str, Enum):
    """User roles."""

    STUDENT = "student"
    MENTOR = "mentor"
    ADMIN = "admin"


class Capability(str, Enum):
    """Operations guarded by role."""

    BROWSE_COURSES = "browse_courses"
    VIEW_COURSE_CONTENT = "view_course_content"
    ENROLL = "enroll"
    COMPLETE_CHAPTER = "complete_chapter"
    VIEW_DASHBOARD = "view_dashboard"
    DOWNLOAD_CERTIFICATE = "download_certificate"
    MANAGE_COURSES = "manage_courses"
    ASSIGN_STUDENTS = "assign_students"
    VIEW_MENTOR_STATS = "view_mentor_stats"
    LIST_STUDENTS = "list_students"
    CHAT = "chat"
    ADMINISTER_USERS = "administer_users"
    BROADCAST_NOTIFICATIONS = "broadcast_notifications"
    VIEW_PLATFORM_STATS = "view_platform_stats"


_STAFF_CAPABILITIES = frozenset(
    {
        Capability.BROWSE_COURSES,
        Capability.VIEW_COURSE_CONTENT,
        Capability.MANAGE_COURSES,
        Capability.ASSIGN_STUDENTS,
        Capability.VIEW_MENTOR_STATS,
        Capability.LIST_STUDENTS,
        Capability.CHAT,
    }
)

ROLE_CAPABILITIES: dict[UserRole, frozenset[Capability]] = {
    UserRole.STUDENT: frozenset(
        {
            Capability.BROWSE_COURSES,
            Capability.VIEW_COURSE_CONTENT,
            Capability.ENROLL,
            Capability.COMPLETE_CHAPTER,
            Capability.VIEW_DASHBOARD,
            Capability.DOWNLOAD_CERTIFICATE,
            Capability.CHAT,
        }
    ),
    UserRole.MENTOR: _STAFF_CAPABILITIES,
    UserRole.ADMIN: _STAFF_CAPABILITIES
    | {
        Capability.ADMINISTER_USERS,
        Capability.BROADCAST_NOTIFICATIONS,
        Capability.VIEW_PLATFORM_STATS,
    },
}

# Who a user may open a chat with, by their own role
CHAT_AUDIENCE: dict[UserRole, tuple[UserRole, ...]] = {
    UserRole.STUDENT: (UserRole.MENTOR, UserRole.ADMIN),
    UserRole.MENTOR: (UserRole.STUDENT, UserRole.ADMIN),
    UserRole.ADMIN: (UserRole.STUDENT, UserRole.MENTOR, UserRole.ADMIN),
}

# Roles allowed to self-register
SELF_REGISTER_ROLES = frozenset({UserRole.STUDENT, UserRole.MENTOR})


def parse_role(role: UserRole | str) -> UserRole | None:
    """Convert a string to a UserRole, returning None for unknown values."""
    if isinstance(role, UserRole):
        return role
    try:
        return UserRole(role)
    except ValueError:
        return None


def can(role: UserRole | str, capability: Capability) -> bool:
    """Check whether a role grants a capability.

    Examples:
        >>> can(UserRole.STUDENT, Capability.ENROLL)
        True
        >>> can("mentor", Capability.ENROLL)
        False
    """
    parsed = parse_role(role)
    if parsed is None:
        return False
    return capability in ROLE_CAPABILITIES[parsed]


def is_admin(role: UserRole | str) -> bool:
    """Check if the role is ADMIN."""
    return parse_role(role) == UserRole.ADMIN


def is_sequenced(role: UserRole | str) -> bool:
    """Check if chapter locking applies to viewers with this role.

    Only learners are sequenced; mentors and admins see every chapter.
    """
    return parse_role(role) == UserRole.STUDENT


def can_manage_course(role: UserRole | str, user_id: object, mentor_id: object) -> bool:
    """Check if a user may modify a course: its owner, or any admin."""
    if is_admin(role):
        return True
    return can(role, Capability.MANAGE_COURSES) and user_id == mentor_id


def requires_approval(role: UserRole | str) -> bool:
    """Check if accounts with this role start unapproved."""
    return parse_role(role) == UserRole.MENTOR
