# ruff: noqa: S608 - All CQL queries use keyspace from config, not user input
"""Notification fanout service layer.

Business logic for:
- Delivering a notification to one user
- Broadcasting to every current member of a role
- Listing notifications and tracking unread counts
- Marking notifications as read (own notifications only)

Delivery is best effort: a failed insert raises DeliveryFailure internally,
which is logged and absorbed here and never reaches the caller of the action
that triggered the notification.
"""

import contextlib
from typing import TYPE_CHECKING
from uuid import UUID

import structlog
from redis.exceptions import RedisError

from codearc.auth.permissions import UserRole
from codearc.core.exceptions import DeliveryFailure
from codearc.core.redis import unread_count_key
from codearc.notifications.models import Notification, NotificationType


if TYPE_CHECKING:
    from cassandra.cluster import Session
    from redis.asyncio import Redis

    from codearc.auth.service import AuthService


logger = structlog.get_logger(__name__)


class NotificationService:
    """Service for notification delivery and the per-user inbox."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        directory: "AuthService",
        redis: "Redis | None" = None,
        cache_ttl: int = 300,
    ):
        """Initialize with Cassandra session, user directory and optional Redis."""
        self.session = session
        self.keyspace = keyspace
        self.directory = directory
        self.redis = redis
        self.cache_ttl = cache_ttl
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient queries."""
        self._insert_notification = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.notifications
            (user_id, created_at, notification_id, type, title, message, is_read)
            VALUES (?, ?, ?, ?, ?, ?, ?)
        """)
        self._insert_lookup = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.notifications_by_id
            (user_id, notification_id, created_at)
            VALUES (?, ?, ?)
        """)
        self._get_lookup = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.notifications_by_id
            WHERE user_id = ? AND notification_id = ?
        """)
        self._get_notification = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.notifications
            WHERE user_id = ? AND created_at = ? AND notification_id = ?
        """)
        self._list_notifications = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.notifications
            WHERE user_id = ?
            LIMIT ?
        """)
        self._list_unread = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.notifications
            WHERE user_id = ? AND is_read = false
            ALLOW FILTERING
        """)
        self._count_unread = self.session.prepare(f"""
            SELECT COUNT(*) FROM {self.keyspace}.notifications
            WHERE user_id = ? AND is_read = false
            ALLOW FILTERING
        """)
        self._mark_read = self.session.prepare(f"""
            UPDATE {self.keyspace}.notifications
            SET is_read = true
            WHERE user_id = ? AND created_at = ? AND notification_id = ?
        """)

    # ==========================================================================
    # Delivery
    # ==========================================================================

    async def _deliver(self, notification: Notification) -> Notification:
        """Store a notification.

        Raises:
            DeliveryFailure: If the insert fails
        """
        try:
            await self.session.aexecute(
                self._insert_notification,
                [
                    notification.user_id,
                    notification.created_at,
                    notification.notification_id,
                    notification.type.value,
                    notification.title,
                    notification.message,
                    notification.is_read,
                ],
            )
            await self.session.aexecute(
                self._insert_lookup,
                [
                    notification.user_id,
                    notification.notification_id,
                    notification.created_at,
                ],
            )
        except Exception as e:
            raise DeliveryFailure(str(e)) from e

        await self._invalidate_cache(notification.user_id)
        return notification

    async def notify_user(
        self,
        user_id: UUID,
        title: str,
        message: str,
        type: NotificationType = NotificationType.INFO,
    ) -> Notification | None:
        """Deliver one notification.

        Returns:
            The stored notification, or None if delivery failed (logged).
        """
        notification = Notification(
            user_id=user_id, title=title, message=message, type=type
        )
        try:
            return await self._deliver(notification)
        except DeliveryFailure as e:
            logger.warning(
                "notification_delivery_failed",
                recipient_id=str(user_id),
                title=title,
                error=e.message,
            )
            return None

    async def notify_role(
        self,
        role: UserRole,
        title: str,
        message: str,
        type: NotificationType = NotificationType.INFO,
    ) -> int:
        """Deliver a notification to every user holding ``role`` right now.

        Returns:
            Number of notifications delivered
        """
        members = await self.directory.list_role_members(role)
        delivered = 0
        for member in members:
            if await self.notify_user(member.user_id, title, message, type):
                delivered += 1

        logger.info(
            "notification_role_fanout",
            role=role.value,
            title=title,
            recipients=len(members),
            delivered=delivered,
        )
        return delivered

    # ==========================================================================
    # Reading
    # ==========================================================================

    async def list_notifications(
        self,
        user_id: UUID,
        limit: int = 50,
        unread_only: bool = False,
    ) -> list[Notification]:
        """Get a user's notifications, newest first."""
        if unread_only:
            rows = await self.session.aexecute(self._list_unread, [user_id])
            items = [Notification.from_row(row) for row in rows]
            return items[:limit]

        rows = await self.session.aexecute(self._list_notifications, [user_id, limit])
        return [Notification.from_row(row) for row in rows]

    async def get_unread_count(self, user_id: UUID) -> int:
        """Get unread notification count, cached in Redis when available."""
        if self.redis:
            with contextlib.suppress(RedisError):
                cached = await self.redis.get(unread_count_key(user_id))
                if cached is not None:
                    return int(cached)

        result = await self.session.aexecute(self._count_unread, [user_id])
        row = result.one()
        count = row.count if row else 0

        if self.redis:
            with contextlib.suppress(RedisError):
                await self.redis.setex(unread_count_key(user_id), self.cache_ttl, count)

        return count

    # ==========================================================================
    # Mark as Read
    # ==========================================================================

    async def mark_as_read(self, user_id: UUID, notification_ids: list[UUID]) -> int:
        """Mark specific notifications as read.

        Lookups are scoped to ``user_id``'s partition, so ids belonging to
        other users simply match nothing.

        Returns:
            Count of notifications that changed from unread to read
        """
        marked = 0
        for notification_id in dict.fromkeys(notification_ids):
            lookup = (
                await self.session.aexecute(
                    self._get_lookup, [user_id, notification_id]
                )
            ).one()
            if lookup is None:
                continue

            row = (
                await self.session.aexecute(
                    self._get_notification,
                    [user_id, lookup.created_at, notification_id],
                )
            ).one()
            if row is None or row.is_read:
                continue

            await self.session.aexecute(
                self._mark_read, [user_id, lookup.created_at, notification_id]
            )
            marked += 1

        if marked:
            await self._invalidate_cache(user_id)
        return marked

    async def mark_all_as_read(self, user_id: UUID) -> int:
        """Mark every unread notification of a user as read."""
        rows = await self.session.aexecute(self._list_unread, [user_id])
        marked = 0
        for row in rows:
            await self.session.aexecute(
                self._mark_read, [user_id, row.created_at, row.notification_id]
            )
            marked += 1

        if marked:
            await self._invalidate_cache(user_id)
        return marked

    # ==========================================================================
    # Cache Management
    # ==========================================================================

    async def _invalidate_cache(self, user_id: UUID) -> None:
        if not self.redis:
            return
        with contextlib.suppress(RedisError):
            await self.redis.delete(unread_count_key(user_id))
