# ruff: noqa: S608 - All CQL queries use keyspace from config, not user input
"""User directory and authentication service layer.

Business logic for:
- Registration (email uniqueness claimed with a lightweight transaction)
- Login, access token issue and password change
- User lookups by id and by role
- Mentor approval and user deletion (admin)
"""

from collections.abc import Awaitable, Callable
from datetime import timedelta
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from codearc.auth.models import RoleMember, User
from codearc.auth.permissions import SELF_REGISTER_ROLES, UserRole
from codearc.auth.schemas import LoginRequest, RegisterRequest, TokenResponse, UserResponse
from codearc.auth.security import create_access_token, hash_password, verify_password
from codearc.config.settings import get_settings
from codearc.core.database import statements
from codearc.core.exceptions import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)


if TYPE_CHECKING:
    from cassandra.cluster import Session

logger = structlog.get_logger(__name__)

# Runs before a user leaves the directory, to remove what the user owns
DeletionHook = Callable[[User], Awaitable[None]]


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class EmailAlreadyExistsError(ConflictError):
    default_message = "Email already registered"
    default_code = "email_exists"


class InvalidCredentialsError(AuthenticationError):
    default_message = "Invalid email or password"
    default_code = "invalid_credentials"


class MentorNotApprovedError(PermissionDeniedError):
    default_message = "Your mentor account is pending admin approval"
    default_code = "not_approved"


class UserNotFoundError(NotFoundError):
    default_message = "User not found"
    default_code = "user_not_found"


class RoleNotAllowedError(ValidationError):
    default_message = "Only student or mentor accounts can be registered"
    default_code = "role_not_allowed"


class CannotDeleteSelfError(ValidationError):
    default_message = "You cannot delete your own account"
    default_code = "cannot_delete_self"


class InvalidOldPasswordError(ValidationError):
    default_message = "Invalid old password"
    default_code = "invalid_old_password"


# ==============================================================================
# Auth Service
# ==============================================================================


class AuthService:
    """Registration, login and the user directory."""

    def __init__(self, session: "Session", keyspace: str):
        """Initialize with Cassandra session."""
        self.session = session
        self.keyspace = keyspace
        self._deletion_hooks: list[DeletionHook] = []
        self._prepare_statements()

    def add_deletion_hook(self, hook: DeletionHook) -> None:
        """Register cleanup for data owned by a user (courses, enrollments)."""
        self._deletion_hooks.append(hook)

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient execution."""
        self._claim_email = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.users_by_email (email, user_id)
            VALUES (?, ?) IF NOT EXISTS
        """)
        self._get_by_email = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.users_by_email WHERE email = ?
        """)
        self._delete_email = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.users_by_email WHERE email = ?
        """)

        self._insert_user = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.users
            (id, email, name, password_hash, role, is_approved, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
        """)
        self._get_user = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.users WHERE id = ?
        """)
        self._list_users = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.users
        """)
        self._set_approval = self.session.prepare(f"""
            UPDATE {self.keyspace}.users SET is_approved = ? WHERE id = ?
        """)
        self._update_password = self.session.prepare(f"""
            UPDATE {self.keyspace}.users SET password_hash = ? WHERE id = ?
        """)
        self._delete_user = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.users WHERE id = ?
        """)

        self._insert_role_member = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.users_by_role (role, user_id, name, email)
            VALUES (?, ?, ?, ?)
        """)
        self._list_role_members = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.users_by_role WHERE role = ?
        """)
        self._count_role_members = self.session.prepare(f"""
            SELECT COUNT(*) FROM {self.keyspace}.users_by_role WHERE role = ?
        """)
        self._delete_role_member = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.users_by_role WHERE role = ? AND user_id = ?
        """)

    # ==========================================================================
    # Registration and Login
    # ==========================================================================

    async def register(self, data: RegisterRequest) -> User:
        """Register a student or mentor.

        Mentors are created unapproved; an admin must approve them before
        they can log in.

        Raises:
            RoleNotAllowedError: If the requested role cannot self-register
            EmailAlreadyExistsError: If the email is taken
        """
        if data.role not in SELF_REGISTER_ROLES:
            raise RoleNotAllowedError

        user = User(
            email=data.email,
            name=data.name,
            password_hash=hash_password(data.password),
            role=data.role.value,
        )
        return await self.create_user(user)

    async def create_user(self, user: User) -> User:
        """Persist a user after claiming its email.

        Raises:
            EmailAlreadyExistsError: If the email is taken
        """
        result = await self.session.aexecute(self._claim_email, [user.email, user.id])
        if not result.was_applied:
            raise EmailAlreadyExistsError

        await self.session.aexecute(
            self._insert_user,
            [
                user.id,
                user.email,
                user.name,
                user.password_hash,
                user.role,
                user.is_approved,
                user.created_at,
            ],
        )
        await self.session.aexecute(
            self._insert_role_member, [user.role, user.id, user.name, user.email]
        )

        logger.info(
            "user_registered",
            user_id=str(user.id),
            role=user.role,
            is_approved=user.is_approved,
        )
        return user

    async def authenticate(self, email: str, password: str) -> User:
        """Verify credentials and approval status.

        Raises:
            InvalidCredentialsError: If the email or password is wrong
            MentorNotApprovedError: If a mentor has not been approved yet
        """
        result = await self.session.aexecute(
            self._get_by_email, [email.lower().strip()]
        )
        row = result.one()
        user = await self.get_user(row.user_id) if row else None

        if user is None or not verify_password(password, user.password_hash):
            logger.warning("login_failed", email=email)
            raise InvalidCredentialsError

        if not user.is_approved:
            logger.warning("login_rejected_unapproved", user_id=str(user.id))
            raise MentorNotApprovedError

        return user

    async def login(self, data: LoginRequest) -> TokenResponse:
        """Authenticate and issue an access token."""
        user = await self.authenticate(data.email, data.password)
        settings = get_settings()
        expires_minutes = settings.auth_access_token_expire_minutes

        token = create_access_token(
            {
                "sub": str(user.id),
                "email": user.email,
                "role": user.role,
                "name": user.name,
            },
            expires_delta=timedelta(minutes=expires_minutes),
        )

        logger.info("user_logged_in", user_id=str(user.id), role=user.role)
        return TokenResponse(
            access_token=token,
            expires_in=expires_minutes * 60,
            user=UserResponse.from_user(user),
        )

    async def change_password(
        self, user_id: UUID, old_password: str, new_password: str
    ) -> None:
        """Change a user's password after checking the current one.

        Raises:
            UserNotFoundError: If the user does not exist
            InvalidOldPasswordError: If the current password is wrong
        """
        user = await self.require_user(user_id)
        if not verify_password(old_password, user.password_hash):
            logger.warning("password_change_rejected", user_id=str(user_id))
            raise InvalidOldPasswordError

        await self.session.aexecute(
            self._update_password, [hash_password(new_password), user_id]
        )
        logger.info("password_changed", user_id=str(user_id))

    # ==========================================================================
    # Directory
    # ==========================================================================

    async def get_user(self, user_id: UUID) -> User | None:
        """Get user by ID."""
        result = await self.session.aexecute(self._get_user, [user_id])
        row = result.one()
        return User.from_row(row) if row else None

    async def require_user(self, user_id: UUID) -> User:
        """Get user by ID or raise UserNotFoundError."""
        user = await self.get_user(user_id)
        if user is None:
            raise UserNotFoundError
        return user

    async def get_users(self, user_ids: list[UUID]) -> dict[UUID, User]:
        """Get several users by ID. Missing users are omitted."""
        users: dict[UUID, User] = {}
        for user_id in dict.fromkeys(user_ids):
            user = await self.get_user(user_id)
            if user is not None:
                users[user_id] = user
        return users

    async def list_role_members(self, role: UserRole) -> list[RoleMember]:
        """Get the current members of a role (never cached)."""
        rows = await self.session.aexecute(self._list_role_members, [role.value])
        return [RoleMember.from_row(row) for row in rows]

    async def count_role_members(self, role: UserRole) -> int:
        result = await self.session.aexecute(self._count_role_members, [role.value])
        row = result.one()
        return row.count if row else 0

    async def list_users(self, role: UserRole | None = None) -> list[User]:
        """List users, optionally restricted to one role, newest first."""
        if role is not None:
            members = await self.list_role_members(role)
            users = list(
                (await self.get_users([m.user_id for m in members])).values()
            )
        else:
            rows = await self.session.aexecute(self._list_users)
            users = [User.from_row(row) for row in rows]

        return sorted(users, key=lambda u: u.created_at, reverse=True)

    # ==========================================================================
    # Administration
    # ==========================================================================

    async def set_approval(self, user_id: UUID, is_approved: bool) -> User:
        """Approve or revoke a user (mentor approval toggle)."""
        user = await self.require_user(user_id)
        await self.session.aexecute(self._set_approval, [is_approved, user_id])
        user.is_approved = is_approved

        logger.info(
            "user_approval_changed",
            target_user_id=str(user_id),
            is_approved=is_approved,
        )
        return user

    async def delete_user(self, actor_id: UUID, user_id: UUID) -> None:
        """Remove a user and everything they own.

        Deletion hooks run first: a mentor's courses are deleted with their
        cascade, a student's enrollments and progress are removed. The
        directory rows go last, so a failed hook leaves the user in place
        and the deletion can be retried.

        Raises:
            CannotDeleteSelfError: If an admin tries to delete themselves
            UserNotFoundError: If the user does not exist
        """
        if actor_id == user_id:
            raise CannotDeleteSelfError

        user = await self.require_user(user_id)
        for hook in self._deletion_hooks:
            await hook(user)

        batch = statements.logged_batch()
        batch.add(self._delete_user, [user.id])
        batch.add(self._delete_email, [user.email])
        batch.add(self._delete_role_member, [user.role, user.id])
        await self.session.aexecute(batch)

        logger.info("user_deleted", target_user_id=str(user_id), role=user.role)
