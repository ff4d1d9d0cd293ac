"""FastAPI dependencies for authentication.

Provides dependency injection for:
- The acting principal, read from a verified JWT
- Capability checks per operation
- Approved course managers (mentors must still be approved)
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from jose import JWTError

from codearc.auth.permissions import Capability, UserRole, can
from codearc.auth.schemas import Principal
from codearc.auth.security import decode_access_token
from codearc.auth.service import AuthService, MentorNotApprovedError
from codearc.core.context import set_principal


def get_token_from_header(request: Request) -> str | None:
    """Extract Bearer token from Authorization header."""
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        return None

    expected_parts = 2
    parts = auth_header.split()
    if len(parts) != expected_parts or parts[0].lower() != "bearer":
        return None

    return parts[1]


async def get_auth_service(request: Request) -> AuthService:
    """Get auth service from app state."""
    service = getattr(request.app.state, "auth_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Auth service not available",
        )
    return service


AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]


async def get_current_principal(
    token: Annotated[str | None, Depends(get_token_from_header)],
) -> Principal:
    """Get the acting user from the access token.

    The token is trusted once its signature and expiry check out; the
    directory is not consulted here.

    Raises:
        HTTPException(401): If the token is missing, invalid or expired
    """
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Access token not provided",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        payload = decode_access_token(token)
        principal = Principal(
            id=payload["sub"],
            role=UserRole(payload["role"]),
            email=payload.get("email", ""),
            name=payload.get("name", ""),
        )
    except (JWTError, ValueError) as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from e

    set_principal(principal.id, principal.role.value)
    return principal


CurrentUser = Annotated[Principal, Depends(get_current_principal)]


def require_capability(capability: Capability):
    """Create a dependency requiring the principal's role to grant a capability.

    Example:
        @router.post("/enroll")
        async def enroll(
            user: Annotated[Principal, Depends(require_capability(Capability.ENROLL))]
        ):
            ...
    """

    async def capability_checker(principal: CurrentUser) -> Principal:
        if not can(principal.role, capability):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return principal

    return capability_checker


async def require_course_manager(
    principal: Annotated[
        Principal, Depends(require_capability(Capability.MANAGE_COURSES))
    ],
    auth_service: AuthServiceDep,
) -> Principal:
    """Require a course manager whose account is still approved.

    Approval can be revoked after a token was issued, so mentors are
    re-checked against the directory.
    """
    if principal.role == UserRole.MENTOR:
        user = await auth_service.get_user(principal.id)
        if user is None or not user.is_approved:
            raise MentorNotApprovedError
    return principal


# ==============================================================================
# Type Aliases for Cleaner Code
# ==============================================================================

StudentUser = Annotated[Principal, Depends(require_capability(Capability.ENROLL))]
CourseManager = Annotated[Principal, Depends(require_course_manager)]
AdminUser = Annotated[
    Principal, Depends(require_capability(Capability.ADMINISTER_USERS))
]
