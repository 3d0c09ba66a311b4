"""Booking conflict detection for a single resource.

An existing booking occupies ``[start - buffer_time_before, end + buffer_time_after)``
where both buffers come from the resource, not from the booking row. Only
confirmed and pending bookings occupy a resource.
"""
from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.orm import Session

from classboom.core.exceptions import ValidationError
from classboom.models.booking import BLOCKING_STATUSES, ResourceBooking
from classboom.models.resource import Resource
from classboom.services.availability import parse_time_to_minutes


@dataclass
class AvailabilityReport:
    resource_id: str
    is_available: bool
    conflicts: list[dict] = field(default_factory=list)


def _descriptor(booking: ResourceBooking, reason: str) -> dict:
    return {
        "id": booking.id,
        "start": booking.start_datetime,
        "end": booking.end_datetime,
        "session_id": booking.session_id,
        "booked_for": booking.booked_for,
        "reason": reason,
    }


def _clock_minutes(value: str) -> int:
    # Stored operating hours may carry seconds ("08:00:00").
    return parse_time_to_minutes(value[:5])


def _operating_window_conflicts(resource: Resource, start: datetime, end: datetime) -> list[dict]:
    conflicts: list[dict] = []
    if resource.days_available and start.isoweekday() not in resource.days_available:
        conflicts.append({"start": start, "end": end, "reason": "Resource not available on this day"})
    if resource.available_from or resource.available_until:
        opens = _clock_minutes(resource.available_from) if resource.available_from else 0
        closes = _clock_minutes(resource.available_until) if resource.available_until else 24 * 60
        start_minutes = start.hour * 60 + start.minute
        end_minutes = end.hour * 60 + end.minute if end.date() == start.date() else 24 * 60
        if start_minutes < opens or end_minutes > closes:
            conflicts.append({"start": start, "end": end, "reason": "Outside resource operating hours"})
    return conflicts


def find_conflicting_bookings(
    db: Session,
    resource: Resource,
    start: datetime,
    end: datetime,
    exclude_booking_ids: Iterable[str] = (),
) -> list[ResourceBooking]:
    if end <= start:
        raise ValidationError("end_datetime must be after start_datetime")
    # Shift the candidate instead of every stored interval; buffers are per resource.
    window_start = start - timedelta(minutes=resource.buffer_time_after or 0)
    window_end = end + timedelta(minutes=resource.buffer_time_before or 0)
    stmt = (
        select(ResourceBooking)
        .where(
            ResourceBooking.resource_id == resource.id,
            ResourceBooking.status.in_(BLOCKING_STATUSES),
            ResourceBooking.start_datetime < window_end,
            ResourceBooking.end_datetime > window_start,
        )
        .order_by(ResourceBooking.start_datetime)
    )
    excluded = [item for item in exclude_booking_ids if item]
    if excluded:
        stmt = stmt.where(ResourceBooking.id.not_in(excluded))
    return list(db.execute(stmt).scalars())


def check_resource_availability(
    db: Session,
    resource: Resource,
    start: datetime,
    end: datetime,
    exclude_booking_ids: Iterable[str] = (),
) -> AvailabilityReport:
    conflicts = _operating_window_conflicts(resource, start, end)
    for booking in find_conflicting_bookings(db, resource, start, end, exclude_booking_ids):
        direct = booking.start_datetime < end and start < booking.end_datetime
        reason = "Overlaps existing booking" if direct else "Within buffer time of existing booking"
        conflicts.append(_descriptor(booking, reason))
    return AvailabilityReport(resource_id=resource.id, is_available=not conflicts, conflicts=conflicts)
