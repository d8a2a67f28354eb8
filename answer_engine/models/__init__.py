from answer_engine.models.conversation import Conversation, Message

__all__ = ["Conversation", "Message"]
