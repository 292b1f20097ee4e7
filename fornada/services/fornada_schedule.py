"""Fornada events and the notification window arithmetic.

Fornada times are wall-clock ``HH:MM`` strings in a fixed civil timezone that
recur every day. The sweep runs on a fixed cadence and, at each tick, asks
whether "now" sits inside one of two windows ahead of a fornada:

- one hour before: ``now`` in ``[target - 60, target - 55)``
- five minutes before: ``now`` in ``[target - 5, target)``

Both windows are as wide as the sweep cadence, so a sweep that runs reliably
every five minutes fires each window exactly once per day.
"""

import re
from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import Any
from zoneinfo import ZoneInfo

MINUTES_PER_DAY = 24 * 60
WINDOW_WIDTH_MINUTES = 5
ONE_HOUR_LEAD_MINUTES = 60
FIVE_MINUTES_LEAD_MINUTES = 5

_TIME_PATTERN = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*$")


class NotificationWindow(StrEnum):
    """Windows ahead of a fornada that trigger a notification."""

    ONE_HOUR_BEFORE = "one_hour_before"
    FIVE_MINUTES_BEFORE = "five_minutes_before"


@dataclass(frozen=True)
class FornadaEvent:
    """A daily fornada, normalized from either the bare-string or the object shape."""

    time: str
    minutes: int
    id: str | None = None
    description: str | None = None


@dataclass(frozen=True)
class WindowMatch:
    """Result of evaluating both windows for one target time."""

    one_hour_before: bool
    five_minutes_before: bool

    @property
    def window(self) -> NotificationWindow | None:
        if self.one_hour_before:
            return NotificationWindow.ONE_HOUR_BEFORE
        if self.five_minutes_before:
            return NotificationWindow.FIVE_MINUTES_BEFORE
        return None


def parse_time_of_day(value: Any) -> int | None:
    """Parse ``HH:MM`` into minutes since midnight.

    Returns None for anything that is not a valid 24-hour time ("N/A", "",
    None, "25:00", ...).
    """
    if not isinstance(value, str):
        return None
    match = _TIME_PATTERN.match(value)
    if not match:
        return None
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        return None
    return hours * 60 + minutes


def _in_window(now_minutes: int, target_minutes: int, lead: int) -> bool:
    # Windows that would start before midnight never match; there is no wraparound.
    start = target_minutes - lead
    return start <= now_minutes < start + WINDOW_WIDTH_MINUTES


def evaluate_window(now_minutes: int, target_minutes: int) -> WindowMatch:
    """Evaluate both notification windows for a target time."""
    return WindowMatch(
        one_hour_before=_in_window(now_minutes, target_minutes, ONE_HOUR_LEAD_MINUTES),
        five_minutes_before=_in_window(now_minutes, target_minutes, FIVE_MINUTES_LEAD_MINUTES),
    )


def minutes_since_midnight(now: datetime, timezone: str) -> int:
    """Minutes since local midnight of ``now`` in the given timezone.

    Naive datetimes are taken to already be local wall-clock time.
    """
    if now.tzinfo is not None:
        now = now.astimezone(ZoneInfo(timezone))
    return now.hour * 60 + now.minute


def _normalize_event(raw: Any) -> FornadaEvent | None:
    if isinstance(raw, str):
        time_str, event_id, description = raw, None, None
    elif isinstance(raw, dict):
        time_str = raw.get("time")
        event_id = raw.get("id")
        description = raw.get("description")
    else:
        return None

    minutes = parse_time_of_day(time_str)
    if minutes is None:
        return None
    return FornadaEvent(
        time=time_str.strip(),
        minutes=minutes,
        id=str(event_id) if event_id not in (None, "") else None,
        description=description or None,
    )


def normalize_fornada_events(
    fornadas: list | None, details: dict | None = None
) -> list[FornadaEvent]:
    """Normalize stored fornada events, dropping malformed entries.

    Accepts bare ``"HH:MM"`` strings and ``{"id", "time", "description"}``
    objects, in any mix. When no events are configured, a legacy
    ``details["proximaFornada"]`` string is used instead.
    """
    raw_events = list(fornadas or [])
    if not raw_events and isinstance(details, dict):
        legacy = details.get("proximaFornada")
        if legacy:
            raw_events = [legacy]

    events = []
    for raw in raw_events:
        event = _normalize_event(raw)
        if event is not None:
            events.append(event)
    return events
