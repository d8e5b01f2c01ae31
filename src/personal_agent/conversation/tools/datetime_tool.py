"""
Date/time tools for the personal agent conversation loop.

A family of clock and calendar tools that read the wall-clock time in the
local timezone (or a named IANA timezone) and do simple date arithmetic.
None of them need an external API.

"Local" means the timezone configured for the agent, or the host's own
timezone when none is configured.

The ``DateTimeTools`` class exposes one async handler per tool plus
``registrations()``, which returns the ``(ToolDefinition, handler)`` pairs
for ``ToolRegistry``.

Timezone support uses the stdlib ``zoneinfo`` module. Unknown timezone IDs
and unparseable dates raise ``ToolArgumentError`` with a message that tells
the model what valid input looks like.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone, tzinfo
from typing import Any, Callable
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from personal_agent.conversation.providers import ToolDefinition
from personal_agent.conversation.tools.registry import (
    ToolArgumentError,
    ToolRegistration,
    optional_text,
    require_text,
)

logger = logging.getLogger(__name__)

COMMON_TIMEZONES: list[tuple[str, str]] = [
    ("America/New_York", "Eastern Time"),
    ("America/Chicago", "Central Time"),
    ("America/Denver", "Mountain Time"),
    ("America/Los_Angeles", "Pacific Time"),
    ("Europe/London", "GMT/BST"),
    ("Europe/Paris", "Central European Time"),
    ("Asia/Tokyo", "Japan Standard Time"),
    ("Asia/Shanghai", "China Standard Time"),
    ("Pacific/Auckland", "New Zealand Time"),
    ("Australia/Sydney", "Australian Eastern Time"),
]

_SUGGESTED_TIMEZONES = "America/New_York, Europe/London, Asia/Tokyo, Pacific/Auckland"

INVALID_DATE_MESSAGE = "Invalid date format. Please use yyyy-MM-dd format (e.g., 2025-12-25)"

_DATETIME_FORMAT = "%A, %B %d, %Y at %I:%M:%S %p"
_DATE_FORMAT = "%A, %B %d, %Y"

_OPTIONAL_TIMEZONE: dict[str, Any] = {
    "type": "object",
    "properties": {
        "timezone": {
            "type": "string",
            "description": (
                "Optional IANA timezone name, e.g. 'America/Chicago', "
                "'Europe/Paris', 'Asia/Tokyo'. Omit for the user's local time."
            ),
        }
    },
    "required": [],
}

_NO_PARAMETERS: dict[str, Any] = {"type": "object", "properties": {}, "required": []}


def resolve_timezone(name: str) -> ZoneInfo:
    """Return the ``ZoneInfo`` for *name*.

    Raises:
        ToolArgumentError: If *name* is not a known IANA timezone.
    """
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown timezone: %r", name)
        raise ToolArgumentError(
            f"Timezone '{name}' not found. Common timezone IDs: {_SUGGESTED_TIMEZONES}"
        ) from None


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class DateTimeTools:
    """Clock and calendar tools.

    Args:
        timezone_name: IANA timezone treated as "local". ``None`` uses the
            host timezone.
        clock: Callable returning the current time as an aware datetime.
            Defaults to the system clock; tests pass a fixed clock.

    Raises:
        ToolArgumentError: If *timezone_name* is not a known timezone.
    """

    GET_CURRENT_DATETIME = ToolDefinition(
        name="GetCurrentDateTime",
        description=(
            "Gets the current date and time in a human-readable format, in the "
            "user's local timezone unless a timezone is given."
        ),
        parameters=_OPTIONAL_TIMEZONE,
    )
    GET_CURRENT_TIME = ToolDefinition(
        name="GetCurrentTime",
        description="Gets the current time in 24-hour format (HH:MM:SS).",
        parameters=_OPTIONAL_TIMEZONE,
    )
    GET_CURRENT_DATE = ToolDefinition(
        name="GetCurrentDate",
        description="Gets the current date, e.g. 'Monday, October 19, 2026'.",
        parameters=_OPTIONAL_TIMEZONE,
    )
    GET_DAY_OF_WEEK = ToolDefinition(
        name="GetDayOfWeek",
        description="Gets the current day of the week.",
        parameters=_OPTIONAL_TIMEZONE,
    )
    GET_TIMEZONE = ToolDefinition(
        name="GetTimezone",
        description="Gets the user's local timezone and its current UTC offset.",
        parameters=_NO_PARAMETERS,
    )
    GET_UTC_TIME = ToolDefinition(
        name="GetUtcTime",
        description="Gets the current UTC date and time.",
        parameters=_NO_PARAMETERS,
    )
    GET_WEEK_NUMBER = ToolDefinition(
        name="GetWeekNumber",
        description="Gets the current ISO week number of the year.",
        parameters=_NO_PARAMETERS,
    )
    DAYS_UNTIL = ToolDefinition(
        name="DaysUntil",
        description="Calculates how many days remain until a specific date (or how long ago it was).",
        parameters={
            "type": "object",
            "properties": {
                "targetDate": {
                    "type": "string",
                    "description": "The target date in format yyyy-MM-dd (e.g., 2025-12-25)",
                }
            },
            "required": ["targetDate"],
        },
    )
    GET_TIME_IN_TIMEZONE = ToolDefinition(
        name="GetTimeInTimezone",
        description="Gets the current date and time in a specific timezone.",
        parameters={
            "type": "object",
            "properties": {
                "timezoneId": {
                    "type": "string",
                    "description": (
                        "The timezone ID (e.g., 'America/New_York', 'Europe/London', "
                        "'Asia/Tokyo', 'Pacific/Auckland')"
                    ),
                }
            },
            "required": ["timezoneId"],
        },
    )
    LIST_COMMON_TIMEZONES = ToolDefinition(
        name="ListCommonTimezones",
        description="Lists common timezone IDs that can be used with GetTimeInTimezone.",
        parameters=_NO_PARAMETERS,
    )

    def __init__(
        self,
        timezone_name: str | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._local_tz: tzinfo | None = resolve_timezone(timezone_name) if timezone_name else None
        self._clock = clock or _utc_now

    # ------------------------------------------------------------------
    # Tool handlers
    # ------------------------------------------------------------------

    async def get_current_datetime(self, args: dict[str, Any]) -> str:
        now = self._now(optional_text(args, "timezone"))
        return f"{now.strftime(_DATETIME_FORMAT)} ({_zone_label(now)})"

    async def get_current_time(self, args: dict[str, Any]) -> str:
        return self._now(optional_text(args, "timezone")).strftime("%H:%M:%S")

    async def get_current_date(self, args: dict[str, Any]) -> str:
        return self._now(optional_text(args, "timezone")).strftime(_DATE_FORMAT)

    async def get_day_of_week(self, args: dict[str, Any]) -> str:
        return self._now(optional_text(args, "timezone")).strftime("%A")

    async def get_timezone(self, args: dict[str, Any]) -> str:
        now = self._now()
        offset = now.strftime("%z")
        return f"{_zone_label(now)} (UTC{offset[:3]}:{offset[3:5]})"

    async def get_utc_time(self, args: dict[str, Any]) -> str:
        return self._clock().astimezone(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")

    async def get_week_number(self, args: dict[str, Any]) -> str:
        iso_year, iso_week, _weekday = self._now().isocalendar()
        return f"Week {iso_week} of {iso_year}"

    async def days_until(self, args: dict[str, Any]) -> str:
        target = _parse_date(require_text(args, "targetDate"))
        days = (target - self._now().date()).days

        if days < 0:
            ago = abs(days)
            return f"That date was {ago} day{'s' if ago != 1 else ''} ago"
        if days == 0:
            return "That date is today!"
        if days == 1:
            return "That date is tomorrow"
        return f"There are {days} days until {target:%B %d, %Y}"

    async def get_time_in_timezone(self, args: dict[str, Any]) -> str:
        zone = resolve_timezone(require_text(args, "timezoneId").strip())
        now = self._clock().astimezone(zone)
        return f"{now.strftime(_DATETIME_FORMAT)} ({zone.key})"

    async def list_common_timezones(self, args: dict[str, Any]) -> str:
        lines = ["Common Timezone IDs:"]
        lines.extend(f"- {zone} ({label})" for zone, label in COMMON_TIMEZONES)
        return "\n".join(lines)

    def registrations(self) -> list[ToolRegistration]:
        """Return the ``(definition, handler)`` pairs for ``ToolRegistry``."""
        return [
            (self.GET_CURRENT_DATETIME, self.get_current_datetime),
            (self.GET_CURRENT_TIME, self.get_current_time),
            (self.GET_CURRENT_DATE, self.get_current_date),
            (self.GET_DAY_OF_WEEK, self.get_day_of_week),
            (self.GET_TIMEZONE, self.get_timezone),
            (self.GET_UTC_TIME, self.get_utc_time),
            (self.GET_WEEK_NUMBER, self.get_week_number),
            (self.DAYS_UNTIL, self.days_until),
            (self.GET_TIME_IN_TIMEZONE, self.get_time_in_timezone),
            (self.LIST_COMMON_TIMEZONES, self.list_common_timezones),
        ]

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _now(self, timezone_name: str | None = None) -> datetime:
        """Current time in *timezone_name*, else in the local timezone."""
        if timezone_name:
            return self._clock().astimezone(resolve_timezone(timezone_name))
        if self._local_tz is not None:
            return self._clock().astimezone(self._local_tz)
        return self._clock().astimezone()


def _parse_date(text: str) -> date:
    """Parse an ISO date (``2025-12-25``) or ISO date-time into a ``date``."""
    text = text.strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        raise ToolArgumentError(INVALID_DATE_MESSAGE) from None


def _zone_label(moment: datetime) -> str:
    zone = moment.tzinfo
    if isinstance(zone, ZoneInfo):
        return zone.key
    return moment.tzname() or "local time"
