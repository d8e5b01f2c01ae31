"""Arithmetic tools (Add, Subtract). Pure functions, no side effects."""

from __future__ import annotations

from typing import Any

from personal_agent.conversation.providers import ToolDefinition
from personal_agent.conversation.tools.registry import ToolRegistration, require_number


def _binary_parameters(a_description: str, b_description: str) -> dict[str, Any]:
    return {
        "type": "object",
        "properties": {
            "a": {"type": "number", "description": a_description},
            "b": {"type": "number", "description": b_description},
        },
        "required": ["a", "b"],
    }


def format_number(value: float) -> str:
    """Render *value* without a trailing ``.0`` for whole numbers."""
    if value.is_integer():
        return str(int(value))
    return repr(value)


class MathTools:
    """Adds and subtracts two numbers."""

    ADD = ToolDefinition(
        name="Add",
        description="Adds two numbers and returns a + b.",
        parameters=_binary_parameters("The first number to add", "The second number to add"),
    )

    SUBTRACT = ToolDefinition(
        name="Subtract",
        description="Subtracts two numbers and returns a - b.",
        parameters=_binary_parameters("The number to subtract from", "The number to subtract"),
    )

    async def add(self, args: dict[str, Any]) -> str:
        return format_number(require_number(args, "a") + require_number(args, "b"))

    async def subtract(self, args: dict[str, Any]) -> str:
        return format_number(require_number(args, "a") - require_number(args, "b"))

    def registrations(self) -> list[ToolRegistration]:
        return [(self.ADD, self.add), (self.SUBTRACT, self.subtract)]
