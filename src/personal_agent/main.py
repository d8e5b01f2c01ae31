"""
Personal Agent - Main Entry Point.

This module is the entry point for the console agent. It handles
configuration loading, logging setup, wiring of the components and startup.

Architecture:
    - config.py: Configuration management
    - memory/: Note storage (SQLite)
    - conversation/tools/: Tools declared to the LLM
    - conversation/orchestrator.py: Tool-invocation loop
    - console.py: Console read loop
    - main.py: Orchestration and entry point
"""

import argparse
import asyncio
import logging

from personal_agent.config import Settings, get_settings
from personal_agent.console import ConsoleChat
from personal_agent.conversation.orchestrator import AgentOrchestrator
from personal_agent.conversation.providers import OpenAICompatibleProvider
from personal_agent.conversation.tools import build_default_registry
from personal_agent.memory.store import MemoryStore, PersistenceError

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def build_orchestrator(settings: Settings, store: MemoryStore) -> AgentOrchestrator:
    """Wire provider, tool registry and orchestrator from *settings*."""
    registry = build_default_registry(store, settings)
    provider = OpenAICompatibleProvider(
        base_url=settings.llm_base_url,
        model=settings.llm_model,
        api_key=settings.llm_api_key,
        temperature=settings.llm_temperature,
        timeout=settings.llm_timeout,
    )
    return AgentOrchestrator(
        provider=provider,
        registry=registry,
        max_iterations=settings.max_tool_iterations,
        max_history_turns=settings.max_history_turns,
        first_round_tool_choice=settings.first_round_tool_choice,
    )


async def main(settings: Settings) -> int:
    """Initialise storage, then run the console chat.

    Returns:
        Process exit status: ``1`` if the note store cannot be initialised.
    """
    store = MemoryStore(settings.database_path, table_name=settings.notes_table)
    try:
        await store.initialize()
    except PersistenceError as exc:
        logger.critical("Cannot initialise note store at %s: %s", settings.database_path, exc)
        print(f"Error: {exc}")
        return 1

    try:
        orchestrator = build_orchestrator(settings, store)
    except ValueError as exc:
        logger.critical("Invalid configuration: %s", exc)
        print(f"Error: {exc}")
        return 1
    logger.info(
        "Agent ready: model=%s endpoint=%s tools=%d",
        settings.llm_model,
        settings.llm_base_url,
        len(orchestrator.registry),
    )

    chat = ConsoleChat(
        orchestrator=orchestrator,
        registry=orchestrator.registry,
        exit_command=settings.exit_command,
    )
    await chat.run()
    return 0


def cli_main() -> None:
    """Entry point for the personal-agent console script."""
    settings = get_settings()

    parser = argparse.ArgumentParser(
        description="Console chat agent with long-term memory and tools"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--model",
        type=str,
        default=settings.llm_model,
        help=f"LLM model identifier (default: {settings.llm_model})",
    )
    parser.add_argument(
        "--base-url",
        type=str,
        default=settings.llm_base_url,
        help=f"OpenAI-compatible endpoint (default: {settings.llm_base_url})",
    )
    parser.add_argument(
        "--database",
        type=str,
        default=settings.database_path,
        help=f"SQLite database file for notes (default: {settings.database_path})",
    )
    args = parser.parse_args()

    # Override settings with CLI arguments
    settings.llm_model = args.model
    settings.llm_base_url = args.base_url
    settings.database_path = args.database
    if args.debug:
        settings.log_level = "DEBUG"

    configure_logging(settings.log_level)

    try:
        status = asyncio.run(main(settings))
    except KeyboardInterrupt:
        status = 0
    raise SystemExit(status)


if __name__ == "__main__":
    cli_main()
