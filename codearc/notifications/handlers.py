"""Notification fanout for domain events.

Each handler turns one event into the notifications its audiences should
receive. Handlers run after the triggering write has been stored.
"""

import structlog

from codearc.auth.permissions import UserRole
from codearc.chat.events import MessageSent
from codearc.core.events import EventBus
from codearc.courses.events import CourseCreated
from codearc.enrollments.events import StudentEnrolled
from codearc.notifications.models import NotificationType
from codearc.notifications.service import NotificationService
from codearc.progress.events import CourseCompleted


logger = structlog.get_logger(__name__)


class NotificationFanout:
    """Event subscriber that delivers notifications."""

    def __init__(self, notifications: NotificationService):
        self.notifications = notifications

    def register(self, bus: EventBus) -> None:
        bus.subscribe(CourseCompleted, self.on_course_completed)
        bus.subscribe(StudentEnrolled, self.on_student_enrolled)
        bus.subscribe(CourseCreated, self.on_course_created)
        bus.subscribe(MessageSent, self.on_message_sent)

    async def on_course_completed(self, event: CourseCompleted) -> None:
        """Tell admins, the student and the mentor about a completion."""
        await self.notifications.notify_role(
            UserRole.ADMIN,
            "Course Completion",
            f'Student {event.student_name} has completed the course "{event.course_title}".',
            NotificationType.SUCCESS,
        )
        await self.notifications.notify_user(
            event.student_id,
            "Course Completed",
            f'Congratulations! You have completed "{event.course_title}". '
            "You can now download your certificate.",
            NotificationType.SUCCESS,
        )
        await self.notifications.notify_user(
            event.mentor_id,
            "Student Completed",
            f'{event.student_name} has completed your course "{event.course_title}".',
            NotificationType.SUCCESS,
        )
        logger.info(
            "course_completion_notified",
            student_id=str(event.student_id),
            course_id=str(event.course_id),
        )

    async def on_student_enrolled(self, event: StudentEnrolled) -> None:
        await self.notifications.notify_user(
            event.mentor_id,
            "New Enrollment",
            f'{event.student_name} has enrolled in your course "{event.course_title}".',
            NotificationType.INFO,
        )

    async def on_course_created(self, event: CourseCreated) -> None:
        await self.notifications.notify_role(
            UserRole.STUDENT,
            "New Course Available",
            f'A new course "{event.course_title}" by {event.mentor_name} '
            "is now available to enroll.",
            NotificationType.INFO,
        )
        await self.notifications.notify_role(
            UserRole.ADMIN,
            "New Course Alert",
            f'A new course "{event.course_title}" has been created by '
            f"{event.mentor_name}.",
            NotificationType.INFO,
        )

    async def on_message_sent(self, event: MessageSent) -> None:
        await self.notifications.notify_user(
            event.receiver_id,
            "New Message",
            f"You have a new message from {event.sender_name}.",
            NotificationType.INFO,
        )
