"""Chat API endpoints.

Provides routes for:
- POST /v1/chat/messages - Send a message
- GET /v1/chat/messages/{user_id} - Conversation history (last 48 hours)
- GET /v1/chat/contacts - Contacts with unread counts
"""

from uuid import UUID

from fastapi import APIRouter, status

from .dependencies import ChatServiceDep, ChatUser
from .schemas import ChatMessageResponse, ContactResponse, SendMessageRequest


router = APIRouter(prefix="/v1/chat", tags=["chat"])


@router.post(
    "/messages",
    response_model=ChatMessageResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Send a message",
)
async def send_message(
    body: SendMessageRequest, principal: ChatUser, service: ChatServiceDep
) -> ChatMessageResponse:
    message = await service.send_message(principal, body.receiver_id, body.content)
    return ChatMessageResponse.from_message(message)


@router.get(
    "/messages/{user_id}",
    response_model=list[ChatMessageResponse],
    summary="Conversation history",
    description="Marks the other user's messages as read. Newest first.",
)
async def get_history(
    user_id: UUID, principal: ChatUser, service: ChatServiceDep
) -> list[ChatMessageResponse]:
    messages = await service.history(principal.id, user_id)
    return [ChatMessageResponse.from_message(m) for m in messages]


@router.get("/contacts", response_model=list[ContactResponse], summary="Chat contacts")
async def get_contacts(
    principal: ChatUser, service: ChatServiceDep
) -> list[ContactResponse]:
    contacts = await service.contacts(principal)
    return [
        ContactResponse(
            id=c.user_id, name=c.name, role=c.role, unread_count=c.unread_count
        )
        for c in contacts
    ]
