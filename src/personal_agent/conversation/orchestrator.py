"""
AgentOrchestrator: the tool-invocation loop for the personal agent.

This module implements the core "agentic" behaviour: sending the running
conversation and the tool declarations to the LLM, streaming text back to
the caller as it arrives, dispatching the tool calls the LLM requests,
feeding their results back, and repeating until the LLM produces a final
text response.

Tool selection is left entirely to the model; the orchestrator only
assembles context, dispatches calls, folds results back and streams output.

A turn moves through these states::

    AWAIT_INPUT -> COMPOSING -> STREAMING_OR_CALLING
        -> (DISPATCHING_TOOLS -> COMPOSING)* -> DONE

Messages produced during a turn are staged and committed to the
`ConversationSession` only when the turn succeeds, so a provider failure
leaves the history exactly as it was.
"""

from __future__ import annotations

import asyncio
import enum
import logging
import time
from dataclasses import dataclass, field
from typing import AsyncIterator, Callable, Sequence

from personal_agent.conversation.prompts import build_system_prompt
from personal_agent.conversation.providers import (
    LLMProvider,
    ProviderAPIError,
    ProviderConnectionError,
    ProviderError,
    ProviderRateLimitError,
    ProviderResponseError,
    StreamChunk,
    ToolCall,
    ToolChoice,
)
from personal_agent.conversation.session import ConversationSession, Message
from personal_agent.conversation.tools.registry import (
    ToolRegistry,
    ToolResult,
    UnknownToolError,
)

logger = logging.getLogger(__name__)

# Receives streamed assistant text (and diagnostic lines) as it arrives.
TextSink = Callable[[str], None]


class TurnState(str, enum.Enum):
    AWAIT_INPUT = "await_input"
    COMPOSING = "composing"
    STREAMING_OR_CALLING = "streaming_or_calling"
    DISPATCHING_TOOLS = "dispatching_tools"
    DONE = "done"


class TurnLimitError(RuntimeError):
    """Raised when a turn needs more provider rounds than allowed."""


@dataclass
class TurnResult:
    """Outcome of one user turn.

    Attributes:
        text: The final assistant text, or the diagnostic line on failure.
        ok: ``False`` if the turn was aborted; the session is then unchanged.
        tool_results: Results of every tool call made during the turn.
        iterations: Number of provider rounds used.
    """

    text: str
    ok: bool = True
    tool_results: list[ToolResult] = field(default_factory=list)
    iterations: int = 0


class AgentOrchestrator:
    """Runs user turns through the LLM + tool-calling loop.

    Typical usage::

        orchestrator = AgentOrchestrator(provider=provider, registry=registry)
        result = await orchestrator.process("What's my gym schedule?", sink=print_chunk)

    Attributes:
        provider: The LLM backend (any `LLMProvider` implementation).
        registry: The tools declared to the model and used for dispatch.
        session: The conversation history this orchestrator owns.
        system_prompt: Policy text re-sent as a system turn on every turn.
        max_iterations: Maximum provider rounds per turn (guard against tool
            call loops). Default: 10.
        max_history_turns: Number of most recent user turns of committed
            history sent with each request. ``0`` sends the full history.
        first_round_tool_choice: Tool choice for the first round of a turn.
            ``"required"`` makes the model pick a tool before answering;
            later rounds always use ``"auto"`` so it can conclude in text.
    """

    def __init__(
        self,
        provider: LLMProvider,
        registry: ToolRegistry,
        session: ConversationSession | None = None,
        system_prompt: str | None = None,
        max_iterations: int = 10,
        max_history_turns: int = 0,
        first_round_tool_choice: ToolChoice = "required",
    ) -> None:
        if max_iterations < 1:
            raise ValueError("max_iterations must be at least 1.")
        if max_history_turns < 0:
            raise ValueError("max_history_turns must not be negative.")
        self.provider = provider
        self.registry = registry
        self.session = session if session is not None else ConversationSession()
        self.max_iterations = max_iterations
        self.max_history_turns = max_history_turns
        self.first_round_tool_choice = first_round_tool_choice
        self._tools = registry.describe()
        self.system_prompt = system_prompt or build_system_prompt(self._tools)
        self._state = TurnState.AWAIT_INPUT
        self._lock = asyncio.Lock()

    @property
    def state(self) -> TurnState:
        return self._state

    async def process(self, user_text: str, sink: TextSink) -> TurnResult:
        """Run one user turn to completion.

        Turns are serialised: a second call waits until the current turn
        (including all of its tool rounds) has finished.

        Args:
            user_text: The user's input line.
            sink: Callable receiving assistant text chunks as they stream in.
                On failure it receives a single diagnostic line instead of
                (or after) any partial text.

        Returns:
            A `TurnResult`. Provider failures do not raise; they produce
            ``TurnResult(ok=False)``.
        """
        async with self._lock:
            self._state = TurnState.AWAIT_INPUT
            streamed: list[str] = []

            def forward(chunk: str) -> None:
                streamed.append(chunk)
                sink(chunk)

            try:
                return await self._run_turn(user_text, forward)
            except ProviderError as exc:
                diagnostic = _diagnostic_for(exc)
            except TurnLimitError as exc:
                logger.error("Turn aborted: %s", exc)
                diagnostic = "I'm sorry, I got stuck trying to answer that. Please try again."
            except Exception as exc:
                logger.error("Unexpected error in conversation turn: %s", exc, exc_info=True)
                diagnostic = "I'm sorry, I encountered an error. Please try again."
            finally:
                self._state = TurnState.DONE

            if streamed and not streamed[-1].endswith("\n"):
                sink("\n")
            sink(diagnostic)
            return TurnResult(text=diagnostic, ok=False)

    # ------------------------------------------------------------------
    # Turn mechanics
    # ------------------------------------------------------------------

    async def _run_turn(self, user_text: str, sink: TextSink) -> TurnResult:
        staged: list[Message] = [Message.system(self.system_prompt), Message.user(user_text)]
        executed: list[ToolResult] = []
        last_text = ""
        turn_start = time.monotonic()

        for iteration in range(self.max_iterations):
            self._state = TurnState.COMPOSING
            messages = self._compose(staged)
            tool_choice: ToolChoice = self.first_round_tool_choice if iteration == 0 else "auto"
            logger.debug(
                "Turn round %d/%d: messages=%d, tool_choice=%s",
                iteration + 1,
                self.max_iterations,
                len(messages),
                tool_choice,
            )

            self._state = TurnState.STREAMING_OR_CALLING
            llm_t0 = time.monotonic()
            text, tool_calls = await self._consume_stream(
                self.provider.stream(messages, self._tools, tool_choice),
                sink,
                lead="\n" if last_text and not last_text[-1].isspace() else "",
            )
            logger.debug(
                "LLM round %d took %.3fs (text=%d chars, tool_calls=%d)",
                iteration + 1,
                time.monotonic() - llm_t0,
                len(text),
                len(tool_calls),
            )

            if not tool_calls:
                if not text:
                    raise ProviderResponseError("The model returned neither text nor tool calls.")
                staged.append(Message.assistant(text))
                self.session.extend(staged)
                self._state = TurnState.DONE
                logger.info(
                    "Turn complete after %d round(s) and %d tool call(s) in %.3fs",
                    iteration + 1,
                    len(executed),
                    time.monotonic() - turn_start,
                )
                return TurnResult(text=text, tool_results=executed, iterations=iteration + 1)

            staged.append(Message.assistant(text or None, tool_calls))
            if text:
                last_text = text

            self._state = TurnState.DISPATCHING_TOOLS
            tools_t0 = time.monotonic()
            results = await self._dispatch_tool_calls(tool_calls)
            logger.debug(
                "Dispatched %d tool(s) concurrently in %.3fs",
                len(tool_calls),
                time.monotonic() - tools_t0,
            )
            executed.extend(results)
            staged.extend(
                Message.tool(result.call_id or "", result.name, result.content)
                for result in results
            )

        raise TurnLimitError(
            f"Exceeded max_iterations={self.max_iterations} without reaching a "
            "final response. Check for tool call loops."
        )

    def _compose(self, staged: Sequence[Message]) -> list[dict]:
        """Build the request messages: windowed history plus the staged turn."""
        history = self._window(self.session.history())
        return [message.to_openai_format() for message in (*history, *staged)]

    def _window(self, history: tuple[Message, ...]) -> tuple[Message, ...]:
        """Keep the last ``max_history_turns`` user turns of *history*.

        The cut always falls on a user-turn boundary (together with the
        system turn staged right before it), so tool turns are never
        separated from the assistant turn that requested them.
        """
        if self.max_history_turns == 0:
            return history
        user_positions = [i for i, message in enumerate(history) if message.role == "user"]
        if len(user_positions) <= self.max_history_turns:
            return history
        start = user_positions[-self.max_history_turns]
        while start > 0 and history[start - 1].role == "system":
            start -= 1
        logger.debug(
            "History window: dropping %d oldest message(s) to stay within "
            "max_history_turns=%d",
            start,
            self.max_history_turns,
        )
        return history[start:]

    async def _consume_stream(
        self, stream: AsyncIterator[StreamChunk], sink: TextSink, lead: str = ""
    ) -> tuple[str, list[ToolCall]]:
        """Single pass over *stream*: forward text to *sink* while accumulating it.

        *lead* is written to the sink (but not accumulated) before the first
        text chunk, to separate this round's text from an earlier round's.
        """
        parts: list[str] = []
        tool_calls: list[ToolCall] = []
        async for chunk in stream:
            if chunk.content:
                if lead:
                    sink(lead)
                    lead = ""
                sink(chunk.content)
                parts.append(chunk.content)
            if chunk.tool_calls:
                tool_calls.extend(chunk.tool_calls)
        return "".join(parts), tool_calls

    async def _dispatch_tool_calls(self, tool_calls: list[ToolCall]) -> list[ToolResult]:
        """Run sibling tool calls concurrently.

        Every result carries the ID of the call it answers; the returned list
        follows the order of *tool_calls* regardless of completion order.
        """

        async def _run_one(tc: ToolCall) -> ToolResult:
            if tc.arguments_error:
                logger.warning("Tool %r called with malformed arguments", tc.name)
                return ToolResult(
                    name=tc.name,
                    content=f"Invalid arguments for {tc.name}: {tc.arguments_error}",
                    is_error=True,
                    call_id=tc.id,
                )
            try:
                return await self.registry.invoke(tc.name, tc.arguments, call_id=tc.id)
            except UnknownToolError as exc:
                available = ", ".join(tool.name for tool in self._tools)
                return ToolResult(
                    name=tc.name,
                    content=f"Error: {exc}. Available tools: {available}",
                    is_error=True,
                    call_id=tc.id,
                )

        return list(await asyncio.gather(*[_run_one(tc) for tc in tool_calls]))


def _diagnostic_for(exc: ProviderError) -> str:
    """Map a provider failure to the single line shown to the user."""
    if isinstance(exc, ProviderRateLimitError):
        logger.warning("LLM rate limit hit: %s", exc)
        return (
            "I'm sorry, I'm receiving too many requests right now. "
            "Please try again in a moment."
        )
    if isinstance(exc, ProviderConnectionError):
        logger.error("LLM connection error: %s", exc)
        return (
            "I'm sorry, I can't reach my language model right now. "
            "Please check the connection and try again."
        )
    if isinstance(exc, ProviderAPIError):
        logger.error("LLM API error (status=%s): %s", exc.status_code, exc)
        return "I'm sorry, my language model returned an error. Please try again."
    logger.error("LLM response error: %s", exc)
    return "I'm sorry, I couldn't understand my language model's response. Please try again."
