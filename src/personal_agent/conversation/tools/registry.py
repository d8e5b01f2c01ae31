"""
Tool registry for the personal agent conversation loop.

Provides ``ToolRegistry``, an immutable mapping from tool name to its
``ToolDefinition`` and async handler, built once at startup from an explicit
registration list.

Typical usage::

    from personal_agent.conversation.tools.registry import ToolRegistry
    from personal_agent.conversation.tools.math_tools import MathTools

    registry = ToolRegistry(MathTools().registrations(), timeout=10.0)

    orchestrator = AgentOrchestrator(provider=provider, registry=registry)
    result = await registry.invoke("Add", {"a": 2, "b": 3})
    result.content  # "5"
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterable

from personal_agent.conversation.providers import ToolDefinition

logger = logging.getLogger(__name__)

# Type alias for a single tool handler: async (args_dict) -> result_str
AsyncToolHandler = Callable[[dict[str, Any]], Awaitable[str]]

# One entry of a registration list.
ToolRegistration = tuple[ToolDefinition, AsyncToolHandler]


class UnknownToolError(LookupError):
    """Raised when the model requests a tool that is not registered."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown tool: {name!r}")
        self.name = name


class ToolArgumentError(ValueError):
    """Raised by tool handlers when the call arguments are unusable.

    The message is returned to the model verbatim, so it should say what a
    valid argument looks like.
    """


@dataclass
class ToolResult:
    """Outcome of a single tool invocation.

    Attributes:
        name: The tool that was invoked.
        content: Text result (or error description) fed back to the model.
        is_error: ``True`` if the tool failed.
        call_id: The model's call ID, when the invocation answers one.
    """

    name: str
    content: str
    is_error: bool = False
    call_id: str | None = None


class ToolRegistry:
    """Registry mapping tool names to their definitions and async handlers.

    The registry is fixed at construction; tools cannot be added or removed
    afterwards. Use ``describe()`` to obtain the ``ToolDefinition`` list for
    the provider request and ``invoke()`` to run a tool the model selected.

    Attributes:
        timeout: Maximum seconds per tool call, or ``None`` for no limit.
    """

    def __init__(
        self,
        tools: Iterable[ToolRegistration],
        timeout: float | None = 30.0,
    ) -> None:
        """Build the registry.

        Args:
            tools: ``(ToolDefinition, handler)`` pairs in the order they
                should be declared to the model.
            timeout: Per-call timeout in seconds. ``None`` disables it.

        Raises:
            ValueError: If two tools share a name.
        """
        entries: dict[str, ToolRegistration] = {}
        for definition, handler in tools:
            if definition.name in entries:
                raise ValueError(f"Tool {definition.name!r} is registered more than once.")
            entries[definition.name] = (definition, handler)
            logger.debug("Registered tool: %r", definition.name)
        self._tools = entries
        self.timeout = timeout

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def describe(self) -> list[ToolDefinition]:
        """Return all ``ToolDefinition`` objects in registration order."""
        return [defn for defn, _handler in self._tools.values()]

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    async def invoke(
        self,
        name: str,
        arguments: dict[str, Any],
        call_id: str | None = None,
    ) -> ToolResult:
        """Run the tool *name* with *arguments*.

        Handler failures never propagate: they come back as a ``ToolResult``
        with ``is_error=True`` and a message the model can act on.

        Raises:
            UnknownToolError: If *name* is not registered.
        """
        entry = self._tools.get(name)
        if entry is None:
            logger.warning("Unknown tool requested: %r", name)
            raise UnknownToolError(name)

        _definition, handler = entry
        logger.debug("Invoking tool %s(%s)", name, arguments)
        try:
            if self.timeout is not None:
                content = await asyncio.wait_for(handler(arguments), timeout=self.timeout)
            else:
                content = await handler(arguments)
        except ToolArgumentError as exc:
            logger.warning("Tool %r rejected its arguments: %s", name, exc)
            return ToolResult(name=name, content=str(exc), is_error=True, call_id=call_id)
        except asyncio.TimeoutError:
            logger.error("Tool %r timed out after %ss", name, self.timeout)
            return ToolResult(
                name=name,
                content=f"Error: tool {name} timed out after {self.timeout}s",
                is_error=True,
                call_id=call_id,
            )
        except Exception as exc:
            logger.error("Tool %r failed: %s", name, exc, exc_info=True)
            return ToolResult(
                name=name,
                content=f"Error running {name}: {exc}",
                is_error=True,
                call_id=call_id,
            )
        return ToolResult(name=name, content=content, call_id=call_id)


# ---------------------------------------------------------------------------
# Argument helpers shared by the built-in tools
# ---------------------------------------------------------------------------


def require_text(args: dict[str, Any], key: str) -> str:
    """Return the non-blank string argument *key* or raise ``ToolArgumentError``."""
    value = args.get(key)
    if value is None or not str(value).strip():
        raise ToolArgumentError(f"Missing required argument {key!r}.")
    return str(value)


def optional_text(args: dict[str, Any], key: str) -> str | None:
    """Return the string argument *key*, or ``None`` if absent or blank."""
    value = args.get(key)
    if value is None or not str(value).strip():
        return None
    return str(value).strip()


def require_number(args: dict[str, Any], key: str) -> float:
    """Return argument *key* as a float; numeric strings are accepted."""
    if key not in args or args[key] is None:
        raise ToolArgumentError(f"Missing required argument {key!r}.")
    value = args[key]
    if isinstance(value, bool):
        raise ToolArgumentError(f"Argument {key!r} must be a number, got {value!r}.")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ToolArgumentError(f"Argument {key!r} must be a number, got {value!r}.") from None
