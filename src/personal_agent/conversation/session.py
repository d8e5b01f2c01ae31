"""
ConversationSession: ordered, append-only message history for one chat.

The session is a passive container: only the `AgentOrchestrator` appends to
it, and nothing is ever edited or removed once appended. History is kept in
memory for the lifetime of the process.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Literal

from personal_agent.conversation.providers import ToolCall

Role = Literal["system", "user", "assistant", "tool"]


@dataclass(frozen=True)
class Message:
    """One conversation turn.

    Attributes:
        role: ``"system"``, ``"user"``, ``"assistant"`` or ``"tool"``.
        content: Turn text. ``None`` for an assistant turn that only
            requested tools.
        tool_call_id: For tool turns, the ID of the call this result answers.
        tool_name: For tool turns, the name of the tool that produced it.
        tool_calls: For assistant turns, the tool calls the model requested.
    """

    role: Role
    content: str | None
    tool_call_id: str | None = None
    tool_name: str | None = None
    tool_calls: tuple[ToolCall, ...] = ()

    def to_openai_format(self) -> dict[str, Any]:
        """Serialise to an OpenAI chat message dict."""
        if self.role == "tool":
            return {
                "role": "tool",
                "tool_call_id": self.tool_call_id,
                "content": self.content or "",
            }
        message: dict[str, Any] = {"role": self.role, "content": self.content}
        if self.tool_calls:
            message["tool_calls"] = [tc.to_openai_format() for tc in self.tool_calls]
        return message

    @classmethod
    def system(cls, text: str) -> Message:
        return cls(role="system", content=text)

    @classmethod
    def user(cls, text: str) -> Message:
        return cls(role="user", content=text)

    @classmethod
    def assistant(cls, text: str | None, tool_calls: Iterable[ToolCall] = ()) -> Message:
        return cls(role="assistant", content=text, tool_calls=tuple(tool_calls))

    @classmethod
    def tool(cls, call_id: str, tool_name: str, result_text: str) -> Message:
        return cls(
            role="tool",
            content=result_text,
            tool_call_id=call_id,
            tool_name=tool_name,
        )


class ConversationSession:
    """Append-only message history for a single logical chat."""

    def __init__(self) -> None:
        self._messages: list[Message] = []

    def append_system(self, text: str) -> Message:
        return self._append(Message.system(text))

    def append_user(self, text: str) -> Message:
        return self._append(Message.user(text))

    def append_assistant(
        self, text: str | None, tool_calls: Iterable[ToolCall] = ()
    ) -> Message:
        return self._append(Message.assistant(text, tool_calls))

    def append_tool(self, call_id: str, tool_name: str, result_text: str) -> Message:
        return self._append(Message.tool(call_id, tool_name, result_text))

    def extend(self, messages: Iterable[Message]) -> None:
        """Append several already-built messages, preserving their order."""
        for message in messages:
            self._append(message)

    def history(self) -> tuple[Message, ...]:
        """Return a read-only snapshot of the history in append order."""
        return tuple(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def _append(self, message: Message) -> Message:
        if not isinstance(message, Message):
            raise TypeError(f"Expected Message, got {type(message).__name__}")
        self._messages.append(message)
        return message
