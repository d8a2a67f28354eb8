"""Conversation history routes.

Provides:
- GET /api/conversations - List owner's conversations with message counts
- POST /api/conversations - Create conversation with its first message
- DELETE /api/conversations/clear - Delete all of the owner's conversations
- GET /api/conversations/{id} - Get conversation with messages
- DELETE /api/conversations/{id} - Delete conversation
- POST /api/conversations/{id}/messages - Append a message

The owner comes from ``?userId=`` (placeholder identity, defaults to 1).
"""
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from sqlmodel import Session

from answer_engine.core.deps import get_conversation_service, get_db, get_owner_id
from answer_engine.models.conversation import Conversation, Message
from answer_engine.services.conversation_service import ConversationService

router = APIRouter(prefix="/api/conversations", tags=["conversations"])


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        protected_namespaces=(),
    )


class CreateConversationRequest(CamelModel):
    """Request model for starting a conversation."""
    title: Optional[str] = None
    message: Optional[str] = None
    user_id: Optional[int] = None


class AppendMessageRequest(CamelModel):
    """Request model for appending a message."""
    role: Optional[str] = None
    content: Optional[str] = None
    model_used: Optional[str] = None


class MessageResponse(CamelModel):
    """Response model for a single message."""
    id: int
    conversation_id: int
    role: str
    content: str
    model_used: Optional[str] = None
    created_at: datetime


class ConversationSummary(CamelModel):
    """Response model for conversation list."""
    id: int
    user_id: int
    title: str
    created_at: datetime
    updated_at: datetime
    message_count: int


class ConversationDetail(CamelModel):
    """Response model for conversation with messages."""
    id: int
    user_id: int
    title: str
    created_at: datetime
    updated_at: datetime
    messages: List[MessageResponse]


def _detail(conversation: Conversation, messages: List[Message]) -> ConversationDetail:
    return ConversationDetail(
        id=conversation.id,
        user_id=conversation.user_id,
        title=conversation.title,
        created_at=conversation.created_at,
        updated_at=conversation.updated_at,
        messages=[MessageResponse.model_validate(message) for message in messages],
    )


@router.get("", response_model=List[ConversationSummary])
def list_conversations(
    owner_id: int = Depends(get_owner_id),
    session: Session = Depends(get_db),
    service: ConversationService = Depends(get_conversation_service),
) -> List[ConversationSummary]:
    """List conversations, most recently updated first."""
    return [
        ConversationSummary(
            id=conversation.id,
            user_id=conversation.user_id,
            title=conversation.title,
            created_at=conversation.created_at,
            updated_at=conversation.updated_at,
            message_count=message_count,
        )
        for conversation, message_count in service.list_conversations(session, owner_id)
    ]


@router.post("", response_model=ConversationDetail, status_code=status.HTTP_201_CREATED)
def create_conversation(
    request: CreateConversationRequest,
    owner_id: int = Depends(get_owner_id),
    session: Session = Depends(get_db),
    service: ConversationService = Depends(get_conversation_service),
) -> ConversationDetail:
    """
    Create a conversation seeded with the user's first message.

    ``userId`` in the body takes precedence over the query parameter.
    Title defaults to the first 100 characters of the message.
    """
    if request.user_id is not None:
        owner_id = request.user_id

    conversation, messages = service.create_conversation(
        session, owner_id, request.message, title=request.title
    )
    return _detail(conversation, messages)


@router.delete("/clear", status_code=status.HTTP_204_NO_CONTENT)
def clear_conversations(
    owner_id: int = Depends(get_owner_id),
    session: Session = Depends(get_db),
    service: ConversationService = Depends(get_conversation_service),
) -> Response:
    """Delete all conversations of the owner; succeeds even if there are none."""
    service.clear_conversations(session, owner_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{conversation_id}", response_model=ConversationDetail)
def get_conversation(
    conversation_id: int,
    owner_id: int = Depends(get_owner_id),
    session: Session = Depends(get_db),
    service: ConversationService = Depends(get_conversation_service),
) -> ConversationDetail:
    """
    Get conversation with all messages.

    Raises:
        NotFoundError: 404 if conversation not found or not owned
    """
    conversation, messages = service.get_conversation(session, conversation_id, owner_id)
    return _detail(conversation, messages)


@router.delete("/{conversation_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_conversation(
    conversation_id: int,
    owner_id: int = Depends(get_owner_id),
    session: Session = Depends(get_db),
    service: ConversationService = Depends(get_conversation_service),
) -> Response:
    """
    Delete conversation and all messages.

    Raises:
        NotFoundError: 404 if conversation not found or not owned
    """
    service.delete_conversation(session, conversation_id, owner_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{conversation_id}/messages",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
)
def append_message(
    conversation_id: int,
    request: AppendMessageRequest,
    owner_id: int = Depends(get_owner_id),
    session: Session = Depends(get_db),
    service: ConversationService = Depends(get_conversation_service),
) -> MessageResponse:
    """
    Append a user or assistant message.

    Raises:
        ClientInputError: 400 MISSING_ROLE, INVALID_CONTENT or INVALID_ROLE
        NotFoundError: 404 if conversation not found or not owned
    """
    message = service.append_message(
        session,
        conversation_id,
        owner_id,
        role=request.role,
        content=request.content,
        model_used=request.model_used,
    )
    return MessageResponse.model_validate(message)
