"""
LLM Provider abstractions for the personal agent conversation package.

Defines the `LLMProvider` Protocol so the `AgentOrchestrator` can work with
any OpenAI-compatible backend (Ollama, OpenAI, Claude via LiteLLM proxy, etc.)
without being tied to a specific vendor or SDK.

The concrete implementation, `OpenAICompatibleProvider`, uses `openai.AsyncOpenAI`
which supports any OpenAI-compatible base URL. Responses are always streamed:
text arrives as incremental chunks, tool calls are assembled from their deltas
and delivered complete in the final chunk.

Also provides the custom exception hierarchy for provider failures.
"""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Literal, Protocol, runtime_checkable

from openai import (
    APIConnectionError,
    APIError,
    APIStatusError,
    AsyncOpenAI,
    RateLimitError,
)

logger = logging.getLogger(__name__)

ToolChoice = Literal["required", "auto", "none"]


# ---------------------------------------------------------------------------
# Custom exception hierarchy
# ---------------------------------------------------------------------------


class ProviderError(Exception):
    """Base exception for all LLM provider errors."""


class ProviderRateLimitError(ProviderError):
    """Raised when the LLM API returns a rate-limit (429) response."""


class ProviderConnectionError(ProviderError):
    """Raised when the LLM API endpoint cannot be reached (or times out)."""


class ProviderAPIError(ProviderError):
    """Raised for other LLM API errors (e.g., 5xx, authentication failures).

    Attributes:
        status_code: HTTP status code from the API, or ``None`` if unavailable.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ProviderResponseError(ProviderError):
    """Raised when the LLM response is malformed or empty."""


# ---------------------------------------------------------------------------
# Core data types
# ---------------------------------------------------------------------------


@dataclass
class ToolDefinition:
    """Describes a callable tool available to the LLM.

    Mirrors the OpenAI function-calling tool definition format.

    Attributes:
        name: The tool's unique name (used by the LLM to invoke it).
        description: Human-readable description the LLM uses to decide
            whether the tool is relevant.
        parameters: JSON Schema dict describing the tool's input parameters.
    """

    name: str
    description: str
    parameters: dict[str, Any] = field(
        default_factory=lambda: {"type": "object", "properties": {}, "required": []}
    )

    def to_openai_format(self) -> dict[str, Any]:
        """Serialise to OpenAI tool definition format."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }


@dataclass(frozen=True)
class ToolCall:
    """A tool invocation requested by the LLM.

    Attributes:
        id: Unique call ID returned by the LLM (used to correlate the result).
        name: Name of the tool to invoke.
        arguments: Parsed JSON arguments dict.
        arguments_error: Set when the raw argument string was not a JSON
            object; ``arguments`` is then empty and the call must not run.
    """

    id: str
    name: str
    arguments: dict[str, Any]
    arguments_error: str | None = None

    def to_openai_format(self) -> dict[str, Any]:
        """Serialise as an entry of an assistant message's ``tool_calls``."""
        return {
            "id": self.id,
            "type": "function",
            "function": {
                "name": self.name,
                "arguments": json.dumps(self.arguments),
            },
        }


@dataclass
class StreamChunk:
    """One increment of a streamed completion.

    Text chunks carry ``content``. The final chunk of a stream carries the
    ``finish_reason`` and, when the model chose tools, the complete list of
    ``tool_calls``.
    """

    content: str | None = None
    tool_calls: list[ToolCall] = field(default_factory=list)
    finish_reason: str | None = None


# ---------------------------------------------------------------------------
# LLMProvider Protocol
# ---------------------------------------------------------------------------


@runtime_checkable
class LLMProvider(Protocol):
    """Protocol for LLM backends used by AgentOrchestrator.

    Any object implementing this Protocol can serve as the LLM backend.
    The default implementation is `OpenAICompatibleProvider`.
    """

    def stream(
        self,
        messages: list[dict[str, Any]],
        tools: list[ToolDefinition],
        tool_choice: ToolChoice = "auto",
    ) -> AsyncIterator[StreamChunk]:
        """Stream a completion for *messages*.

        Args:
            messages: The full conversation history in OpenAI message format.
            tools: The available tool definitions.
            tool_choice: ``"required"`` forces the model to pick at least one
                tool; ``"auto"`` lets it answer in text or call tools.

        Returns:
            A finite, single-pass async iterator of `StreamChunk` objects.

        Raises:
            ProviderRateLimitError: If the API returns a 429 rate-limit response.
            ProviderConnectionError: If the API endpoint cannot be reached.
            ProviderAPIError: For other API-level failures.
            ProviderResponseError: If the response cannot be interpreted.
        """
        ...


# ---------------------------------------------------------------------------
# Concrete provider implementation
# ---------------------------------------------------------------------------


class OpenAICompatibleProvider:
    """LLM provider backed by any OpenAI-compatible endpoint.

    Works with:
    - Ollama (``http://localhost:11434/v1``)
    - OpenAI (``https://api.openai.com/v1``)
    - Claude via LiteLLM proxy
    - Any other OpenAI-compatible API

    Attributes:
        base_url: The API base URL.
        model: The model identifier.
        temperature: Sampling temperature (0.0–2.0).
        timeout: Request timeout in seconds, or ``None`` for the SDK default.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:11434/v1",
        model: str = "qwen3:8b",
        api_key: str = "ollama",
        temperature: float = 0.7,
        timeout: float | None = 120.0,
    ) -> None:
        self.base_url = base_url
        self.model = model
        self.temperature = temperature
        self.timeout = timeout
        client_kwargs: dict[str, Any] = {"base_url": base_url, "api_key": api_key}
        if timeout is not None:
            client_kwargs["timeout"] = timeout
        self._client = AsyncOpenAI(**client_kwargs)

    async def stream(
        self,
        messages: list[dict[str, Any]],
        tools: list[ToolDefinition],
        tool_choice: ToolChoice = "auto",
    ) -> AsyncIterator[StreamChunk]:
        """Call the LLM with ``stream=True`` and yield `StreamChunk` objects.

        Raises:
            ProviderRateLimitError: If the API returns a 429 response.
            ProviderConnectionError: If the API endpoint cannot be reached.
            ProviderAPIError: For other API-level failures (e.g. 4xx/5xx).
        """
        openai_tools = [t.to_openai_format() for t in tools] if tools else []

        kwargs: dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": self.temperature,
            "stream": True,
        }
        if openai_tools:
            kwargs["tools"] = openai_tools
            kwargs["tool_choice"] = tool_choice

        logger.debug(
            "LLM request: model=%s, messages=%d, tools=%d, tool_choice=%s",
            self.model,
            len(messages),
            len(openai_tools),
            tool_choice if openai_tools else "-",
        )

        # Tool call fragments in order of first appearance; ``open_slots`` maps a
        # stream index to the call currently being assembled at that index.
        slots: list[dict[str, str]] = []
        open_slots: dict[int, dict[str, str]] = {}
        finish_reason: str | None = None

        try:
            response = await self._client.chat.completions.create(**kwargs)
            async for chunk in response:
                if not chunk.choices:
                    continue
                choice = chunk.choices[0]
                delta = choice.delta
                if delta is not None:
                    if delta.tool_calls:
                        for tc_delta in delta.tool_calls:
                            slot = open_slots.get(tc_delta.index)
                            # A new call id at a used index starts another call
                            # (some backends send every call at index 0).
                            if slot is None or (
                                tc_delta.id and slot["id"] and tc_delta.id != slot["id"]
                            ):
                                slot = {"id": "", "name": "", "arguments": ""}
                                slots.append(slot)
                                open_slots[tc_delta.index] = slot
                            if tc_delta.id:
                                slot["id"] = tc_delta.id
                            if tc_delta.function is not None:
                                if tc_delta.function.name:
                                    slot["name"] += tc_delta.function.name
                                if tc_delta.function.arguments:
                                    slot["arguments"] += tc_delta.function.arguments
                    if delta.content:
                        yield StreamChunk(content=delta.content)
                if choice.finish_reason:
                    finish_reason = choice.finish_reason
        except RateLimitError as exc:
            logger.warning("LLM rate limit exceeded: %s", exc)
            raise ProviderRateLimitError(f"Rate limit exceeded: {exc}") from exc
        except APIConnectionError as exc:
            logger.error("LLM connection failed: %s", exc)
            raise ProviderConnectionError(f"Could not connect to LLM endpoint: {exc}") from exc
        except APIStatusError as exc:
            logger.error("LLM API error %d: %s", exc.status_code, exc)
            raise ProviderAPIError(
                f"LLM API returned status {exc.status_code}: {exc}",
                status_code=exc.status_code,
            ) from exc
        except APIError as exc:
            logger.error("LLM stream failed: %s", exc)
            raise ProviderResponseError(f"LLM stream failed: {exc}") from exc

        tool_calls = [_assemble_tool_call(slot) for slot in slots]
        if tool_calls and finish_reason in (None, "stop"):
            # Some backends (Ollama among them) report "stop" alongside tool calls.
            finish_reason = "tool_calls"

        logger.debug(
            "LLM response: finish_reason=%s, tool_calls=%d",
            finish_reason,
            len(tool_calls),
        )
        yield StreamChunk(tool_calls=tool_calls, finish_reason=finish_reason or "stop")


def _assemble_tool_call(slot: dict[str, str]) -> ToolCall:
    """Build a `ToolCall` from accumulated stream fragments."""
    call_id = slot["id"] or f"call_{uuid.uuid4().hex[:12]}"
    raw_arguments = slot["arguments"].strip() or "{}"
    try:
        arguments = json.loads(raw_arguments)
    except json.JSONDecodeError as exc:
        logger.warning("Malformed arguments for tool %r: %s", slot["name"], exc)
        return ToolCall(
            id=call_id,
            name=slot["name"],
            arguments={},
            arguments_error=f"Arguments are not valid JSON: {exc.msg}",
        )
    if not isinstance(arguments, dict):
        return ToolCall(
            id=call_id,
            name=slot["name"],
            arguments={},
            arguments_error="Arguments must be a JSON object.",
        )
    return ToolCall(id=call_id, name=slot["name"], arguments=arguments)
