"""Conversation and Message SQLModel definitions for answer history.

Models:
- Conversation: Saved question/answer thread with owner reference
- Message: Individual user question or assistant answer in a conversation
"""
from datetime import datetime, timezone
from typing import Optional

from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Conversation(SQLModel, table=True):
    """
    Conversation entity for saved answers.

    Ownership: Each conversation belongs to exactly one user via user_id.
    All queries MUST filter by user_id.
    """
    __tablename__ = "conversation"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(index=True, nullable=False)
    title: str = Field(nullable=False)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow, index=True)


class Message(SQLModel, table=True):
    """
    Message entity for conversations.

    Role: "user" or "assistant"
    Rows are removed by the database when their conversation is deleted.
    """
    __tablename__ = "message"

    id: Optional[int] = Field(default=None, primary_key=True)
    conversation_id: int = Field(
        foreign_key="conversation.id",
        ondelete="CASCADE",
        nullable=False,
        index=True,
    )
    role: str = Field(max_length=20)  # "user" or "assistant"
    content: str = Field()
    model_used: Optional[str] = Field(default=None, max_length=100)
    created_at: datetime = Field(default_factory=utcnow)
