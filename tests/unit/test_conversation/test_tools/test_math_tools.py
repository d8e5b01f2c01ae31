"""Unit tests for personal_agent.conversation.tools.math_tools."""

from __future__ import annotations

import pytest

from personal_agent.conversation.tools.math_tools import MathTools, format_number
from personal_agent.conversation.tools.registry import ToolArgumentError, ToolRegistry


@pytest.fixture
def math() -> MathTools:
    return MathTools()


@pytest.mark.anyio
async def test_add(math: MathTools) -> None:
    assert await math.add({"a": 2, "b": 3}) == "5"


@pytest.mark.anyio
async def test_add_fractions(math: MathTools) -> None:
    assert await math.add({"a": 0.5, "b": 0.25}) == "0.75"


@pytest.mark.anyio
async def test_subtract_can_go_negative(math: MathTools) -> None:
    assert await math.subtract({"a": 3, "b": 10}) == "-7"


@pytest.mark.anyio
async def test_numeric_strings_are_accepted(math: MathTools) -> None:
    assert await math.add({"a": "40", "b": "2"}) == "42"


@pytest.mark.anyio
async def test_missing_operand_raises(math: MathTools) -> None:
    with pytest.raises(ToolArgumentError, match="'b'"):
        await math.add({"a": 1})


@pytest.mark.anyio
async def test_bad_operand_becomes_error_result(math: MathTools) -> None:
    registry = ToolRegistry(math.registrations())

    result = await registry.invoke("Subtract", {"a": "ten", "b": 1})

    assert result.is_error is True
    assert "must be a number" in result.content


def test_registrations_names(math: MathTools) -> None:
    assert [d.name for d, _h in math.registrations()] == ["Add", "Subtract"]
    assert MathTools.ADD.parameters["required"] == ["a", "b"]


@pytest.mark.parametrize(
    "value, expected",
    [(5.0, "5"), (-7.0, "-7"), (0.1 + 0.2, "0.30000000000000004"), (2.5, "2.5")],
)
def test_format_number(value: float, expected: str) -> None:
    assert format_number(value) == expected
