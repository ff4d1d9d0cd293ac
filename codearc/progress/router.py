"""Student progress API endpoints.

Provides routes for:
- POST /v1/progress/chapters/{chapter_id}/complete - Complete a chapter
- GET /v1/progress/dashboard - Student dashboard
- GET /v1/progress/courses/{course_id}/certificate - Download a certificate
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from codearc.auth.dependencies import require_capability
from codearc.auth.permissions import Capability
from codearc.auth.schemas import Principal

from .dependencies import ProgressServiceDep
from .schemas import CompletionResponse, DashboardResponse


router = APIRouter(prefix="/v1/progress", tags=["progress"])

Learner = Annotated[
    Principal, Depends(require_capability(Capability.COMPLETE_CHAPTER))
]


@router.post(
    "/chapters/{chapter_id}/complete",
    response_model=CompletionResponse,
    summary="Complete a chapter",
    description=(
        "Marks a chapter completed. The previous chapter must be completed "
        "first. Completing a chapter twice is a no-op."
    ),
)
async def complete_chapter(
    chapter_id: UUID, principal: Learner, service: ProgressServiceDep
) -> CompletionResponse:
    result = await service.complete_chapter(principal, chapter_id)
    return CompletionResponse.from_result(result)


@router.get("/dashboard", response_model=DashboardResponse, summary="Student dashboard")
async def dashboard(
    principal: Annotated[
        Principal, Depends(require_capability(Capability.VIEW_DASHBOARD))
    ],
    service: ProgressServiceDep,
) -> DashboardResponse:
    return DashboardResponse.from_dashboard(await service.dashboard(principal.id))


@router.get(
    "/courses/{course_id}/certificate",
    response_class=StreamingResponse,
    summary="Download course certificate",
    responses={200: {"content": {"application/pdf": {}}}},
)
async def download_certificate(
    course_id: UUID,
    principal: Annotated[
        Principal, Depends(require_capability(Capability.DOWNLOAD_CERTIFICATE))
    ],
    service: ProgressServiceDep,
) -> StreamingResponse:
    """Stream the rendered certificate. Requires 100% completion."""
    payload, rendered = await service.render_certificate(principal.id, course_id)
    return StreamingResponse(
        rendered.chunks,
        media_type=rendered.content_type,
        headers={"Content-Disposition": f'attachment; filename="{payload.filename}"'},
    )
