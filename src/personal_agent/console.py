"""Line-oriented console chat for the personal agent."""

from __future__ import annotations

import asyncio
import logging
import sys
import threading
from typing import Callable, TextIO

from personal_agent.conversation.orchestrator import AgentOrchestrator
from personal_agent.conversation.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)

SHOW_NOTES_COMMAND = "show notes"


class ConsoleChat:
    """Reads user lines from the console and streams assistant replies back.

    Args:
        orchestrator: Runs each user turn.
        registry: Used for the ``show notes`` shortcut, which lists notes
            without a round trip through the model.
        exit_command: Input that ends the session (case-insensitive).
        input_func: Blocking line reader; ``input`` by default.
        output: Stream the assistant text is written to.
    """

    def __init__(
        self,
        orchestrator: AgentOrchestrator,
        registry: ToolRegistry,
        exit_command: str = "quit",
        input_func: Callable[[str], str] = input,
        output: TextIO | None = None,
    ) -> None:
        self.orchestrator = orchestrator
        self.registry = registry
        self.exit_command = exit_command
        self._input = input_func
        self._output = output or sys.stdout

    def write(self, text: str) -> None:
        self._output.write(text)
        self._output.flush()

    async def run(self) -> None:
        """Run the read loop until the exit command or end of input."""
        self.write("Assistant is ready! Type your messages below.\n")
        self.write(
            f"Commands: '{self.exit_command}' to exit, "
            f"'{SHOW_NOTES_COMMAND}' to see all stored notes\n"
        )
        self.write("-" * 50 + "\n")

        while True:
            try:
                line = await self._read_line("\nYou: ")
            except EOFError:
                logger.info("End of input; leaving chat")
                break

            user_text = line.strip()
            if not user_text:
                continue
            if user_text.lower() == self.exit_command.lower():
                break

            if user_text.lower() == SHOW_NOTES_COMMAND:
                result = await self.registry.invoke("ListNotes", {})
                self.write(f"{result.content}\n")
                continue

            self.write("Assistant: ")
            await self.orchestrator.process(user_text, self.write)
            self.write("\n")

        self.write("Goodbye!\n")

    async def _read_line(self, prompt: str) -> str:
        """Read one line from ``input_func`` without blocking the event loop.

        The read runs on a daemon thread, so a read still pending after
        Ctrl+C or cancellation never holds up interpreter exit.
        """
        loop = asyncio.get_running_loop()
        future: asyncio.Future[str] = loop.create_future()

        def _deliver(line: str | None, exc: Exception | None) -> None:
            if future.done():
                return
            if exc is not None:
                future.set_exception(exc)
            else:
                future.set_result(line)

        def _reader() -> None:
            line: str | None = None
            error: Exception | None = None
            try:
                line = self._input(prompt)
            except Exception as exc:
                error = exc
            try:
                loop.call_soon_threadsafe(_deliver, line, error)
            except RuntimeError:
                # Event loop already closed: nobody is waiting for this line.
                logger.debug("Discarding console input read after shutdown")

        threading.Thread(target=_reader, name="console-input", daemon=True).start()
        return await future
