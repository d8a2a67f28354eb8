"""Conversation history persistence.

Handles:
- Conversation creation seeded with the first user message
- Ownership-scoped listing, lookup and deletion
- Appending user/assistant messages
"""
import logging
from typing import List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from answer_engine.core.exceptions import ClientInputError, NotFoundError, PersistenceFailure
from answer_engine.models.conversation import Conversation, Message, utcnow

logger = logging.getLogger(__name__)

VALID_ROLES = ("user", "assistant")
TITLE_MAX_LENGTH = 100


def title_from_message(message: str) -> str:
    """First 100 characters of the message, with an ellipsis when cut."""
    if len(message) > TITLE_MAX_LENGTH:
        return message[:TITLE_MAX_LENGTH].strip() + "..."
    return message.strip()


class ConversationService:
    """Service layer for conversation history operations."""

    def create_conversation(
        self,
        session: Session,
        owner_id: int,
        message: Optional[str],
        title: Optional[str] = None,
    ) -> Tuple[Conversation, List[Message]]:
        """
        Create a conversation and its seeding user message.

        If the message cannot be stored the new conversation is deleted
        again so no empty conversation is left behind.

        Raises:
            ClientInputError: If message is missing or blank
            PersistenceFailure: If either insert fails
        """
        if not isinstance(message, str) or not message.strip():
            raise ClientInputError(
                "Message is required and must be a non-empty string", code="MISSING_MESSAGE"
            )
        message = message.strip()

        if not isinstance(title, str) or not title.strip():
            title = title_from_message(message)
        title = title.strip()

        now = utcnow()
        conversation = Conversation(user_id=owner_id, title=title, created_at=now, updated_at=now)
        try:
            session.add(conversation)
            session.commit()
            session.refresh(conversation)
        except SQLAlchemyError as e:
            session.rollback()
            logger.error("Failed to create conversation for user %s: %s", owner_id, e)
            raise PersistenceFailure(f"Internal server error: {e}", code="CONVERSATION_CREATE_FAILED")

        try:
            first_message = self._insert_message(session, conversation.id, "user", message, None, now)
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(
                "Failed to store initial message for conversation %s, removing it: %s",
                conversation.id,
                e,
            )
            self._delete_quietly(session, conversation)
            raise PersistenceFailure(f"Internal server error: {e}", code="MESSAGE_CREATE_FAILED")

        logger.info("Conversation created: user=%s, conversation=%s", owner_id, conversation.id)
        return conversation, [first_message]

    def list_conversations(self, session: Session, owner_id: int) -> List[Tuple[Conversation, int]]:
        """
        List the owner's conversations, most recently updated first.

        Returns:
            (conversation, message_count) pairs
        """
        try:
            statement = (
                select(Conversation)
                .where(Conversation.user_id == owner_id)
                .order_by(Conversation.updated_at.desc(), Conversation.id.desc())
            )
            conversations = session.exec(statement).all()

            result = []
            for conversation in conversations:
                count_statement = (
                    select(func.count())
                    .select_from(Message)
                    .where(Message.conversation_id == conversation.id)
                )
                result.append((conversation, session.exec(count_statement).one()))
            return result
        except SQLAlchemyError as e:
            logger.error("Failed to list conversations for user %s: %s", owner_id, e)
            raise PersistenceFailure(f"Internal server error: {e}")

    def get_conversation(
        self, session: Session, conversation_id: int, owner_id: int
    ) -> Tuple[Conversation, List[Message]]:
        """
        Get a conversation with its messages in chronological order.

        Raises:
            NotFoundError: If conversation not found or not owned
        """
        conversation = self._get_owned(session, conversation_id, owner_id)
        try:
            statement = (
                select(Message)
                .where(Message.conversation_id == conversation.id)
                .order_by(Message.created_at, Message.id)
            )
            return conversation, list(session.exec(statement).all())
        except SQLAlchemyError as e:
            logger.error("Failed to load messages for conversation %s: %s", conversation_id, e)
            raise PersistenceFailure(f"Internal server error: {e}")

    def append_message(
        self,
        session: Session,
        conversation_id: int,
        owner_id: int,
        role: Optional[str],
        content: Optional[str],
        model_used: Optional[str] = None,
    ) -> Message:
        """
        Store a message and bump the conversation's updated_at.

        Raises:
            ClientInputError: MISSING_ROLE, INVALID_CONTENT or INVALID_ROLE
            NotFoundError: If conversation not found or not owned
        """
        if not role:
            raise ClientInputError("Role is required", code="MISSING_ROLE")
        if not isinstance(content, str) or not content.strip():
            raise ClientInputError(
                "Content is required and must be a non-empty string", code="INVALID_CONTENT"
            )
        role = role.strip() if isinstance(role, str) else role
        if role not in VALID_ROLES:
            raise ClientInputError('Role must be either "user" or "assistant"', code="INVALID_ROLE")

        conversation = self._get_owned(session, conversation_id, owner_id)
        if isinstance(model_used, str):
            model_used = model_used.strip() or None

        now = utcnow()
        try:
            message = self._insert_message(
                session, conversation.id, role, content.strip(), model_used, now, commit=False
            )
            conversation.updated_at = now
            session.add(conversation)
            session.commit()
            session.refresh(message)
        except SQLAlchemyError as e:
            session.rollback()
            logger.error("Failed to append message to conversation %s: %s", conversation_id, e)
            raise PersistenceFailure(f"Internal server error: {e}")

        return message

    def delete_conversation(self, session: Session, conversation_id: int, owner_id: int) -> None:
        """
        Delete a conversation; its messages go with it (ON DELETE CASCADE).

        Raises:
            NotFoundError: If conversation not found or not owned
        """
        conversation = self._get_owned(session, conversation_id, owner_id)
        try:
            session.delete(conversation)
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error("Failed to delete conversation %s: %s", conversation_id, e)
            raise PersistenceFailure(f"Internal server error: {e}")
        logger.info("Conversation deleted: user=%s, conversation=%s", owner_id, conversation_id)

    def clear_conversations(self, session: Session, owner_id: int) -> int:
        """Delete every conversation owned by owner_id. Returns how many were removed."""
        try:
            conversations = session.exec(
                select(Conversation).where(Conversation.user_id == owner_id)
            ).all()
            for conversation in conversations:
                session.delete(conversation)
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error("Failed to clear conversations for user %s: %s", owner_id, e)
            raise PersistenceFailure(f"Internal server error: {e}")

        logger.info("Cleared %d conversations for user %s", len(conversations), owner_id)
        return len(conversations)

    def _get_owned(self, session: Session, conversation_id: int, owner_id: int) -> Conversation:
        statement = select(Conversation).where(
            Conversation.id == conversation_id,
            Conversation.user_id == owner_id,
        )
        try:
            conversation = session.exec(statement).first()
        except SQLAlchemyError as e:
            logger.error("Failed to load conversation %s: %s", conversation_id, e)
            raise PersistenceFailure(f"Internal server error: {e}")

        if not conversation:
            raise NotFoundError("Conversation not found")
        return conversation

    def _insert_message(
        self,
        session: Session,
        conversation_id: int,
        role: str,
        content: str,
        model_used: Optional[str],
        created_at,
        commit: bool = True,
    ) -> Message:
        message = Message(
            conversation_id=conversation_id,
            role=role,
            content=content,
            model_used=model_used,
            created_at=created_at,
        )
        session.add(message)
        if commit:
            session.commit()
            session.refresh(message)
        else:
            session.flush()
        return message

    def _delete_quietly(self, session: Session, conversation: Conversation) -> None:
        try:
            session.delete(conversation)
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error("Compensating delete of conversation %s failed: %s", conversation.id, e)
