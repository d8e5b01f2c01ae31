"""Unit tests for personal_agent.console.ConsoleChat."""

from __future__ import annotations

import asyncio
import io
import threading
from unittest.mock import AsyncMock, MagicMock

import pytest

from personal_agent.console import ConsoleChat
from personal_agent.conversation.orchestrator import TurnResult
from personal_agent.conversation.tools.registry import ToolResult


def _scripted_input(*lines: str):
    """Return an input() replacement that plays *lines* then signals EOF."""
    pending = list(lines)

    def _input(prompt: str) -> str:
        if not pending:
            raise EOFError
        return pending.pop(0)

    return _input


def _make_chat(*lines: str, exit_command: str = "quit"):
    orchestrator = MagicMock()

    async def _process(user_text, sink):
        sink(f"echo {user_text}")
        return TurnResult(text=f"echo {user_text}")

    orchestrator.process = AsyncMock(side_effect=_process)
    registry = MagicMock()
    registry.invoke = AsyncMock(return_value=ToolResult(name="ListNotes", content="No notes stored yet."))
    output = io.StringIO()
    chat = ConsoleChat(
        orchestrator=orchestrator,
        registry=registry,
        exit_command=exit_command,
        input_func=_scripted_input(*lines),
        output=output,
    )
    return chat, orchestrator, registry, output


@pytest.mark.anyio
async def test_lines_are_sent_to_orchestrator() -> None:
    chat, orchestrator, _registry, output = _make_chat("hello", "quit")

    await chat.run()

    orchestrator.process.assert_awaited_once()
    assert orchestrator.process.await_args.args[0] == "hello"
    assert "Assistant: echo hello\n" in output.getvalue()
    assert output.getvalue().endswith("Goodbye!\n")


@pytest.mark.anyio
async def test_blank_lines_are_skipped() -> None:
    chat, orchestrator, _registry, _output = _make_chat("", "   ", "quit")

    await chat.run()

    orchestrator.process.assert_not_awaited()


@pytest.mark.anyio
async def test_exit_command_is_case_insensitive() -> None:
    chat, orchestrator, _registry, _output = _make_chat("EXIT", "never sent", exit_command="exit")

    await chat.run()

    orchestrator.process.assert_not_awaited()


@pytest.mark.anyio
async def test_end_of_input_ends_session() -> None:
    chat, orchestrator, _registry, output = _make_chat("one", "two")

    await chat.run()

    assert orchestrator.process.await_count == 2
    assert output.getvalue().endswith("Goodbye!\n")


@pytest.mark.anyio
async def test_show_notes_bypasses_model() -> None:
    chat, orchestrator, registry, output = _make_chat("Show Notes", "quit")

    await chat.run()

    registry.invoke.assert_awaited_once_with("ListNotes", {})
    orchestrator.process.assert_not_awaited()
    assert "No notes stored yet.\n" in output.getvalue()


@pytest.mark.anyio
async def test_banner_names_commands() -> None:
    chat, _orchestrator, _registry, output = _make_chat(exit_command="bye")

    await chat.run()

    assert "'bye' to exit" in output.getvalue()
    assert "'show notes'" in output.getvalue()


@pytest.mark.anyio
async def test_input_is_read_on_a_daemon_thread() -> None:
    daemon_flags: list[bool] = []

    def _input(prompt: str) -> str:
        daemon_flags.append(threading.current_thread().daemon)
        raise EOFError

    chat = ConsoleChat(MagicMock(), MagicMock(), input_func=_input, output=io.StringIO())

    await chat.run()

    assert daemon_flags == [True]


@pytest.mark.anyio
async def test_interrupt_while_waiting_for_input_ends_promptly() -> None:
    release = threading.Event()

    def _blocked_input(prompt: str) -> str:
        release.wait(timeout=5)
        raise EOFError

    chat = ConsoleChat(MagicMock(), MagicMock(), input_func=_blocked_input, output=io.StringIO())
    task = asyncio.ensure_future(chat.run())
    await asyncio.sleep(0.05)

    task.cancel()
    try:
        with pytest.raises(asyncio.CancelledError):
            await asyncio.wait_for(task, timeout=1)
    finally:
        release.set()
