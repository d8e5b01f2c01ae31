"""
Personal agent conversation package.

Implements the tool-invocation loop: the `AgentOrchestrator` sends the
`ConversationSession` history and the `ToolRegistry` declarations to an
OpenAI-compatible LLM (`openai.AsyncOpenAI`), streams text back, dispatches
the tool calls the model selects and folds their results into the history.
"""

from personal_agent.conversation.orchestrator import (
    AgentOrchestrator,
    TextSink,
    TurnResult,
    TurnState,
)
from personal_agent.conversation.providers import (
    LLMProvider,
    OpenAICompatibleProvider,
    ProviderAPIError,
    ProviderConnectionError,
    ProviderError,
    ProviderRateLimitError,
    ProviderResponseError,
    StreamChunk,
    ToolCall,
    ToolDefinition,
)
from personal_agent.conversation.session import ConversationSession, Message

__all__ = [
    "AgentOrchestrator",
    "ConversationSession",
    "LLMProvider",
    "Message",
    "OpenAICompatibleProvider",
    "ProviderAPIError",
    "ProviderConnectionError",
    "ProviderError",
    "ProviderRateLimitError",
    "ProviderResponseError",
    "StreamChunk",
    "TextSink",
    "ToolCall",
    "ToolDefinition",
    "TurnResult",
    "TurnState",
]
