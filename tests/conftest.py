"""Shared fixtures.

Services run against the in-memory session from ``tests.fakes``; HTTP tests
use FastAPI's TestClient with the same services installed on ``app.state``
(the lifespan, which would connect to Cassandra, is not run).
"""

import os


os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import asyncio  # noqa: E402
from collections.abc import Callable, Coroutine  # noqa: E402
from typing import Any  # noqa: E402
from uuid import uuid4  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from codearc.auth.models import User  # noqa: E402
from codearc.auth.permissions import UserRole  # noqa: E402
from codearc.auth.schemas import Principal  # noqa: E402
from codearc.auth.security import create_access_token  # noqa: E402
from codearc.config import get_settings  # noqa: E402
from codearc.core.database import statements  # noqa: E402
from codearc.courses.models import Chapter, Course  # noqa: E402
from codearc.courses.schemas import CreateChapterRequest, CreateCourseRequest  # noqa: E402
from codearc.main import Services, build_services, create_app  # noqa: E402
from tests.fakes import FakeBatch, FakeSession  # noqa: E402


KEYSPACE = "codearc_test"


# ==============================================================================
# Storage and Services
# ==============================================================================


@pytest.fixture(autouse=True)
def fake_batches(monkeypatch: pytest.MonkeyPatch) -> None:
    """Services build batches through ``statements.logged_batch``."""
    monkeypatch.setattr(statements, "logged_batch", FakeBatch)


@pytest.fixture
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def services(session: FakeSession) -> Services:
    return build_services(session, KEYSPACE, get_settings())


@pytest.fixture
def make_user(services: Services) -> Callable[..., Coroutine[Any, Any, Principal]]:
    """Factory that stores a user and returns their principal."""

    async def _make_user(
        role: UserRole = UserRole.STUDENT,
        name: str | None = None,
        *,
        approved: bool = True,
        password_hash: str = "not-a-real-hash",
    ) -> Principal:
        user_id = uuid4()
        user = User(
            id=user_id,
            email=f"{role.value}-{user_id.hex[:8]}@example.com",
            name=name or f"Test {role.value.title()}",
            password_hash=password_hash,
            role=role.value,
            is_approved=approved,
        )
        await services.auth_service.create_user(user)
        return Principal(id=user.id, role=role, email=user.email, name=user.name)

    return _make_user


@pytest.fixture
def make_course(
    services: Services,
) -> Callable[..., Coroutine[Any, Any, tuple[Course, list[Chapter]]]]:
    """Factory that creates a course with ``chapters`` sequential chapters."""

    async def _make_course(
        mentor: Principal, title: str = "Python Basics", chapters: int = 3
    ) -> tuple[Course, list[Chapter]]:
        course = await services.course_service.create_course(
            mentor, CreateCourseRequest(title=title)
        )
        created = []
        for sequence in range(1, chapters + 1):
            created.append(
                await services.course_service.add_chapter(
                    mentor,
                    course.id,
                    CreateChapterRequest(
                        title=f"Chapter {sequence}",
                        sequence=sequence,
                        video_url=f"https://videos.codearc.test/{sequence}.mp4",
                    ),
                )
            )
        return course, created

    return _make_course


# ==============================================================================
# HTTP
# ==============================================================================


@pytest.fixture
def client(services: Services) -> TestClient:
    app = create_app()
    services.install(app)
    return TestClient(app)


@pytest.fixture
def run() -> Callable[[Coroutine[Any, Any, Any]], Any]:
    """Run a coroutine from a synchronous test (seeding data for HTTP tests)."""
    return asyncio.run


@pytest.fixture
def auth_headers() -> Callable[[Principal], dict[str, str]]:
    """Build an Authorization header carrying a token for a principal."""

    def _headers(principal: Principal) -> dict[str, str]:
        token = create_access_token(
            {
                "sub": str(principal.id),
                "email": principal.email,
                "role": principal.role.value,
                "name": principal.name,
            }
        )
        return {"Authorization": f"Bearer {token}"}

    return _headers
