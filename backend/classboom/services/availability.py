"""Weekly availability arithmetic.

A weekly availability maps a lowercase day key (``monday`` .. ``sunday``) to
``{"available": bool, "slots": [{"start": "HH:MM", "end": "HH:MM"}, ...]}``.
Slots are half-open ``[start, end)`` intervals in minutes since midnight and
never span midnight. Slots are neither sorted nor merged: overlapping slots on
the same day are counted twice by :func:`summarize`.
"""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
import re
from typing import Any

from classboom.core.exceptions import MalformedTimeError, ValidationError

DAY_KEYS: tuple[str, ...] = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)

TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def parse_time_to_minutes(value: str) -> int:
    if not isinstance(value, str) or not TIME_PATTERN.match(value):
        raise MalformedTimeError(value)
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def _slot_bounds(slot: Mapping[str, Any]) -> tuple[int, int]:
    return parse_time_to_minutes(slot["start"]), parse_time_to_minutes(slot["end"])


def _requested_bounds(start: str, end: str) -> tuple[int, int]:
    requested_start = parse_time_to_minutes(start)
    requested_end = parse_time_to_minutes(end)
    if requested_end <= requested_start:
        raise ValidationError("end must be after start", details={"start": start, "end": end})
    return requested_start, requested_end


def _day_entry(availability: Mapping[str, Any], day: str) -> Mapping[str, Any] | None:
    entry = availability.get(day.strip().lower())
    if not entry or not entry.get("available"):
        return None
    return entry


def slots_overlap(slot_a: Mapping[str, Any], slot_b: Mapping[str, Any]) -> bool:
    start_a, end_a = _slot_bounds(slot_a)
    start_b, end_b = _slot_bounds(slot_b)
    return start_a < end_b and start_b < end_a


def is_covered(availability: Mapping[str, Any], day: str, start: str, end: str) -> bool:
    """True when one slot on ``day`` fully contains ``[start, end)``."""
    requested_start, requested_end = _requested_bounds(start, end)
    entry = _day_entry(availability, day)
    if entry is None:
        return False
    for slot in entry.get("slots") or []:
        slot_start, slot_end = _slot_bounds(slot)
        if slot_start <= requested_start and slot_end >= requested_end:
            return True
    return False


def overlaps_any(availability: Mapping[str, Any], day: str, start: str, end: str) -> bool:
    """True when any slot on ``day`` shares at least a minute with ``[start, end)``."""
    _requested_bounds(start, end)
    requested = {"start": start, "end": end}
    entry = _day_entry(availability, day)
    if entry is None:
        return False
    return any(slots_overlap(slot, requested) for slot in entry.get("slots") or [])


@dataclass(frozen=True)
class LongestDay:
    day: str
    hours: float


@dataclass(frozen=True)
class ScheduleSummary:
    total_hours: float
    available_day_count: int
    per_day_hours: dict[str, float] = field(default_factory=dict)
    longest_day: LongestDay | None = None


def summarize(availability: Mapping[str, Any]) -> ScheduleSummary:
    per_day_hours: dict[str, float] = {}
    total_minutes = 0
    available_days = 0
    longest: LongestDay | None = None

    for day in DAY_KEYS:
        entry = _day_entry(availability, day)
        if entry is None:
            continue
        slots = entry.get("slots") or []
        minutes = 0
        for slot in slots:
            slot_start, slot_end = _slot_bounds(slot)
            minutes += slot_end - slot_start
        if slots:
            available_days += 1
        hours = round(minutes / 60, 2)
        per_day_hours[day] = hours
        total_minutes += minutes
        if minutes > 0 and (longest is None or hours > longest.hours):
            longest = LongestDay(day=day, hours=hours)

    return ScheduleSummary(
        total_hours=round(total_minutes / 60, 2),
        available_day_count=available_days,
        per_day_hours=per_day_hours,
        longest_day=longest,
    )
