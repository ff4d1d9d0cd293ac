"""FastAPI dependencies for chat."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from codearc.auth.dependencies import require_capability
from codearc.auth.permissions import Capability
from codearc.auth.schemas import Principal
from codearc.chat.service import ChatService


async def get_chat_service(request: Request) -> ChatService:
    """Get chat service from app state."""
    service = getattr(request.app.state, "chat_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Chat service not available",
        )
    return service


ChatServiceDep = Annotated[ChatService, Depends(get_chat_service)]
ChatUser = Annotated[Principal, Depends(require_capability(Capability.CHAT))]
