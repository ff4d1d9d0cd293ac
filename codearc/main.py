"""CodeArc API - Main Application."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from codearc import __version__
from codearc.admin.router import router as admin_router
from codearc.auth.router import router as auth_router
from codearc.auth.router import users_router
from codearc.auth.service import AuthService
from codearc.chat.router import router as chat_router
from codearc.chat.service import ChatService
from codearc.config import Settings, get_settings
from codearc.core.context import get_request_id
from codearc.core.database import init_async_cassandra
from codearc.core.events import EventBus
from codearc.core.exceptions import CodeArcError, http_status_for
from codearc.core.logging import configure_structlog, get_logger
from codearc.core.middleware import RequestContextMiddleware
from codearc.core.redis import init_redis, shutdown_redis
from codearc.courses.router import router as courses_router
from codearc.courses.service import CourseService
from codearc.enrollments.router import router as enrollments_router
from codearc.enrollments.service import EnrollmentService
from codearc.health.router import router as health_router
from codearc.notifications.handlers import NotificationFanout
from codearc.notifications.router import router as notifications_router
from codearc.notifications.service import NotificationService
from codearc.progress.aggregator import ProgressAggregator
from codearc.progress.certificate import HttpCertificateRenderer
from codearc.progress.router import router as progress_router
from codearc.progress.service import ProgressService


logger = get_logger(__name__)


# Application services, shared by every request
@dataclass
class Services:
    """Service container installed on ``app.state``."""

    events: EventBus
    auth_service: AuthService
    notification_service: NotificationService
    course_service: CourseService
    enrollment_service: EnrollmentService
    progress_service: ProgressService
    chat_service: ChatService

    def install(self, app: FastAPI) -> None:
        for item in fields(self):
            setattr(app.state, item.name, getattr(self, item.name))


def build_services(
    session: Any, keyspace: str, settings: Settings, redis: Any = None
) -> Services:
    """Wire every service to one Cassandra session and one event bus."""
    events = EventBus()
    auth_service = AuthService(session=session, keyspace=keyspace)

    notification_service = NotificationService(
        session=session,
        keyspace=keyspace,
        directory=auth_service,
        redis=redis,
        cache_ttl=settings.notification_unread_cache_ttl,
    )
    NotificationFanout(notification_service).register(events)

    course_service = CourseService(
        session=session, keyspace=keyspace, directory=auth_service, events=events
    )
    enrollment_service = EnrollmentService(
        session=session,
        keyspace=keyspace,
        courses=course_service,
        directory=auth_service,
        events=events,
    )
    auth_service.add_deletion_hook(course_service.delete_mentor_courses)
    auth_service.add_deletion_hook(enrollment_service.withdraw_student)

    progress_service = ProgressService(
        session=session,
        keyspace=keyspace,
        courses=course_service,
        enrollments=enrollment_service,
        aggregator=ProgressAggregator(session=session, keyspace=keyspace),
        directory=auth_service,
        events=events,
        renderer=HttpCertificateRenderer(
            url=settings.certificate_renderer_url,
            timeout=settings.certificate_renderer_timeout,
        ),
        recent_limit=settings.dashboard_recent_limit,
        recommended_limit=settings.dashboard_recommended_limit,
    )
    chat_service = ChatService(
        session=session,
        keyspace=keyspace,
        directory=auth_service,
        events=events,
        history_window_hours=settings.chat_history_window_hours,
    )

    return Services(
        events=events,
        auth_service=auth_service,
        notification_service=notification_service,
        course_service=course_service,
        enrollment_service=enrollment_service,
        progress_service=progress_service,
        chat_service=chat_service,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings = get_settings()
    logger.info(
        "starting_application",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
    )

    # Redis only backs the unread-count cache; the app works without it
    redis_client = None
    if settings.redis_enabled:
        try:
            redis_client = await init_redis(settings)
            logger.info("redis_initialized")
        except Exception as e:
            logger.warning(
                "redis_init_skipped",
                error=str(e),
                message="Running without Redis - unread counts are not cached",
            )
    app.state.redis = redis_client

    connection = await init_async_cassandra(settings)
    app.state.cassandra = connection
    services = build_services(
        connection.session, settings.cassandra_keyspace, settings, redis=redis_client
    )
    services.install(app)
    logger.info("services_initialized", redis_enabled=redis_client is not None)

    yield

    # Shutdown
    logger.info("shutting_down_application", **services.events.stats)
    await shutdown_redis(redis_client)
    connection.close()


def _error_body(
    request: Request, status_code: int, message: str, code: str
) -> dict[str, Any]:
    request_id = getattr(request.state, "request_id", None) or get_request_id()
    return {
        "error": True,
        "message": message,
        "code": code,
        "status_code": status_code,
        "request_id": request_id or None,
    }


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or get_settings()
    configure_structlog(
        settings,
        log_dir=Path(settings.log_dir),
        log_to_files=not settings.is_testing,
    )

    # debug=False keeps Starlette from rendering tracebacks
    app = FastAPI(
        title=settings.app_name,
        version=__version__,
        description="CodeArc learning platform API",
        debug=False,
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
    )

    app.add_middleware(
        RequestContextMiddleware,
        log_requests=settings.log_requests,
        exclude_paths=settings.log_exclude_paths,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
        max_age=settings.cors_max_age,
    )

    @app.exception_handler(CodeArcError)
    async def domain_error_handler(request: Request, exc: CodeArcError) -> ORJSONResponse:
        """Map domain errors to their HTTP status."""
        status_code = http_status_for(exc)
        if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
            log = logger.error
        else:
            log = logger.info
        log(
            "domain_error",
            error_type=type(exc).__name__,
            code=exc.code,
            status_code=status_code,
            path=request.url.path,
        )
        return ORJSONResponse(
            status_code=status_code,
            content=_error_body(request, status_code, exc.message, exc.code),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> ORJSONResponse:
        """Handle HTTP exceptions with safe error messages."""
        logger.warning(
            "http_exception",
            status_code=exc.status_code,
            detail=str(exc.detail),
            path=request.url.path,
            method=request.method,
        )
        message = (
            str(exc.detail)
            if exc.status_code < status.HTTP_500_INTERNAL_SERVER_ERROR
            else "Internal server error"
        )
        return ORJSONResponse(
            status_code=exc.status_code,
            content=_error_body(request, exc.status_code, message, "http_error"),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> ORJSONResponse:
        """Handle request validation errors. Field errors are safe to expose."""
        logger.warning(
            "validation_error",
            errors=exc.errors(),
            path=request.url.path,
            method=request.method,
        )
        status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
        content = _error_body(request, status_code, "Validation error", "validation_error")
        content["details"] = [
            {
                "field": ".".join(str(loc) for loc in err.get("loc", [])),
                "message": err.get("msg", "Invalid value"),
            }
            for err in exc.errors()
        ]
        return ORJSONResponse(status_code=status_code, content=content)

    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request, exc: Exception
    ) -> ORJSONResponse:
        """Catch-all handler. Details are logged, never returned."""
        logger.exception(
            "unhandled_exception",
            error_type=type(exc).__name__,
            error_message=str(exc),
            path=request.url.path,
            method=request.method,
        )
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
        return ORJSONResponse(
            status_code=status_code,
            content=_error_body(
                request,
                status_code,
                "An unexpected error occurred. Please try again later.",
                "internal_error",
            ),
        )

    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(users_router)
    app.include_router(courses_router)
    app.include_router(enrollments_router)
    app.include_router(progress_router)
    app.include_router(notifications_router)
    app.include_router(chat_router)
    app.include_router(admin_router)

    @app.get("/", include_in_schema=False)
    async def root(request: Request) -> dict[str, str]:
        """Root endpoint."""
        return {
            "message": "CodeArc API",
            "version": __version__,
            "docs": f"{request.url}docs",
        }

    return app


app = create_app()
