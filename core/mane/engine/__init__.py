"""Engine module - ReAct agent, response parsing, sessions and model clients."""

from mane.engine.llm import (
    ChatModel,
    LLMUnavailableError,
    LlamaCppChatModel,
    OllamaChatModel,
    create_chat_model,
)
from mane.engine.orchestrator import (
    AgentEvent,
    AgentOrchestrator,
    AgentResponse,
    extract_session_id,
)
from mane.engine.parser import parse_react_response
from mane.engine.sessions import PendingActions, SessionStore

__all__ = [
    "ChatModel",
    "LLMUnavailableError",
    "LlamaCppChatModel",
    "OllamaChatModel",
    "create_chat_model",
    "AgentEvent",
    "AgentOrchestrator",
    "AgentResponse",
    "extract_session_id",
    "parse_react_response",
    "PendingActions",
    "SessionStore",
]
