from docs_agent.models.chat_session import ChatSession
from docs_agent.models.chat_message import ChatMessage, MessageRole

__all__ = [
    "ChatSession",
    "ChatMessage",
    "MessageRole",
]
