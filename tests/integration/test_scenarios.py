"""End-to-end conversation scenarios.

These run the real orchestrator, tool registry and SQLite note store; only
the LLM is replaced by a scripted provider whose later rounds can react to
the tool results it was sent.
"""

from __future__ import annotations

import asyncio
import copy
from datetime import datetime, timezone
from typing import Any, Callable

import pytest

from personal_agent.config import Settings
from personal_agent.conversation.orchestrator import AgentOrchestrator
from personal_agent.conversation.providers import StreamChunk, ToolCall
from personal_agent.conversation.tools import build_default_registry
from personal_agent.conversation.tools.datetime_tool import DateTimeTools
from personal_agent.conversation.tools.math_tools import MathTools
from personal_agent.conversation.tools.memory_tools import NO_NOTES
from personal_agent.conversation.tools.registry import ToolRegistry
from personal_agent.memory.store import MemoryStore

FIXED_NOW = datetime(2026, 2, 20, 14, 30, 0, tzinfo=timezone.utc)

Round = Callable[[list[dict[str, Any]]], list[StreamChunk]]


def _calls(*calls: tuple[str, str, dict[str, Any]]) -> Round:
    tool_calls = [ToolCall(id=id_, name=name, arguments=args) for id_, name, args in calls]
    return lambda messages: [StreamChunk(tool_calls=tool_calls, finish_reason="tool_calls")]


def _say(text: str) -> Round:
    return lambda messages: [StreamChunk(content=text), StreamChunk(finish_reason="stop")]


def _summarise_last_tool() -> Round:
    """Answer with the content of the most recent tool turn."""

    def _round(messages: list[dict[str, Any]]) -> list[StreamChunk]:
        tool_turns = [m for m in messages if m["role"] == "tool"]
        return [
            StreamChunk(content=f"Here is what I found: {tool_turns[-1]['content']}"),
            StreamChunk(finish_reason="stop"),
        ]

    return _round


class ReactiveProvider:
    def __init__(self, *rounds: Round) -> None:
        self._rounds = list(rounds)
        self.calls: list[dict[str, Any]] = []

    async def stream(self, messages, tools, tool_choice="auto"):
        self.calls.append({"messages": copy.deepcopy(messages), "tool_choice": tool_choice})
        for chunk in self._rounds.pop(0)(messages):
            yield chunk


def _settings(tmp_path) -> Settings:
    return Settings(database_path=str(tmp_path / "notes.db"), timezone="UTC", max_history_turns=0)


@pytest.mark.anyio
async def test_remembered_fact_is_recalled(store: MemoryStore, tmp_path) -> None:
    provider = ReactiveProvider(
        _calls(("call_store", "StoreNote", {"content": "gym Mon/Wed at 5pm"})),
        _say("Got it, I'll remember that."),
        _calls(("call_search", "SearchNotes", {"query": "gym"})),
        _summarise_last_tool(),
    )
    orchestrator = AgentOrchestrator(
        provider=provider,
        registry=build_default_registry(store, _settings(tmp_path)),
    )
    output: list[str] = []

    await orchestrator.process("Remember that I go to the gym Mon/Wed at 5pm", output.append)
    result = await orchestrator.process("What's my gym schedule?", output.append)

    search_request = provider.calls[3]["messages"]
    assert search_request[-2]["tool_calls"][0]["function"]["name"] == "SearchNotes"
    assert "gym" in search_request[-2]["tool_calls"][0]["function"]["arguments"]
    assert result.ok is True
    assert "gym Mon/Wed at 5pm" in result.text
    assert await store.count() == 1


@pytest.mark.anyio
async def test_list_notes_on_empty_store_returns_sentinel(store: MemoryStore, tmp_path) -> None:
    provider = ReactiveProvider(
        _calls(("call_list", "ListNotes", {})),
        _summarise_last_tool(),
    )
    orchestrator = AgentOrchestrator(
        provider=provider,
        registry=build_default_registry(store, _settings(tmp_path)),
    )

    result = await orchestrator.process("What do you remember about me?", lambda _chunk: None)

    tool_turn = provider.calls[1]["messages"][-1]
    assert tool_turn == {"role": "tool", "tool_call_id": "call_list", "content": NO_NOTES}
    assert tool_turn["content"] not in ("", "[]")
    assert result.tool_results[0].is_error is False


@pytest.mark.anyio
async def test_simultaneous_tool_calls_are_correlated_by_id() -> None:
    date_done = asyncio.Event()
    math = MathTools()
    clock = DateTimeTools(timezone_name="UTC", clock=lambda: FIXED_NOW)

    async def delayed_add(args: dict[str, Any]) -> str:
        # Finish only after GetCurrentDate has, so completion order is reversed.
        await date_done.wait()
        return await math.add(args)

    async def current_date(args: dict[str, Any]) -> str:
        text = await clock.get_current_date(args)
        date_done.set()
        return text

    registry = ToolRegistry(
        [(MathTools.ADD, delayed_add), (DateTimeTools.GET_CURRENT_DATE, current_date)]
    )
    provider = ReactiveProvider(
        _calls(("call_add", "Add", {"a": 2, "b": 3}), ("call_date", "GetCurrentDate", {})),
        _say("2 + 3 = 5, and today is Friday, February 20, 2026."),
    )
    orchestrator = AgentOrchestrator(provider=provider, registry=registry)

    result = await orchestrator.process("What's 2+3, and what's today's date?", lambda _chunk: None)

    tool_turns = [m for m in orchestrator.session.history() if m.role == "tool"]
    assert {(m.tool_call_id, m.content) for m in tool_turns} == {
        ("call_add", "5"),
        ("call_date", "Friday, February 20, 2026"),
    }
    assert [m.tool_call_id for m in tool_turns] == ["call_add", "call_date"]
    assert result.ok is True
