from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
import logging
import uuid

from sqlalchemy import select
from sqlalchemy.orm import Session

from classboom.core.exceptions import (
    ResourceConflictError,
    ResourceNotFoundError,
    ResourceUnavailableError,
    ValidationError,
)
from classboom.models.booking import BLOCKING_STATUSES, BookingStatus, ResourceBooking
from classboom.models.resource import Resource
from classboom.schemas.booking import BookingCreate, BookingFilters, RecurrencePattern
from classboom.services.audit import log_activity
from classboom.services.conflicts import check_resource_availability
from classboom.services.locks import booking_attempt
from classboom.services.resources import get_resource
from classboom.services.tenant import TenantContext

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now()


def booking_rule_violation(resource: Resource, start: datetime, end: datetime, *, now: datetime) -> str | None:
    duration = (end - start).total_seconds() / 60
    if duration < resource.min_booking_duration:
        return f"Booking is shorter than the minimum of {resource.min_booking_duration} minutes"
    if duration > resource.max_booking_duration:
        return f"Booking is longer than the maximum of {resource.max_booking_duration} minutes"
    if start > now + timedelta(days=resource.advance_booking_days):
        return f"Booking starts more than {resource.advance_booking_days} days ahead"
    return None


def _ensure_bookable(db: Session, resource: Resource, start: datetime, end: datetime, *, now: datetime) -> None:
    if end <= start:
        raise ValidationError("end_datetime must be after start_datetime")
    # Called under booking_attempt; reload so a concurrent deactivation is seen.
    db.refresh(resource)
    if not resource.is_active:
        raise ResourceUnavailableError(f"{resource.name} is inactive", resource.id)
    violation = booking_rule_violation(resource, start, end, now=now)
    if violation:
        raise ValidationError(violation, details={"resource_id": resource.id})


def _load_resources(db: Session, tenant: TenantContext, resource_ids: Iterable[str]) -> list[Resource]:
    return [get_resource(db, tenant, resource_id) for resource_id in resource_ids]


def get_booking(db: Session, tenant: TenantContext, booking_id: str) -> ResourceBooking:
    booking = db.execute(
        select(ResourceBooking)
        .join(Resource, Resource.id == ResourceBooking.resource_id)
        .where(ResourceBooking.id == booking_id, Resource.school_id == tenant.school_id)
    ).scalar_one_or_none()
    if booking is None:
        raise ResourceNotFoundError("Booking", booking_id)
    return booking


def list_bookings(db: Session, tenant: TenantContext, filters: BookingFilters | None = None) -> list[ResourceBooking]:
    filters = filters or BookingFilters()
    stmt = (
        select(ResourceBooking)
        .join(Resource, Resource.id == ResourceBooking.resource_id)
        .where(Resource.school_id == tenant.school_id)
    )
    if filters.resource_id:
        stmt = stmt.where(ResourceBooking.resource_id == filters.resource_id)
    if filters.session_id:
        stmt = stmt.where(ResourceBooking.session_id == filters.session_id)
    if filters.status is not None:
        stmt = stmt.where(ResourceBooking.status == filters.status)
    if filters.booked_by:
        stmt = stmt.where(ResourceBooking.booked_by == filters.booked_by)
    if filters.date_from is not None:
        stmt = stmt.where(ResourceBooking.start_datetime >= filters.date_from)
    if filters.date_to is not None:
        stmt = stmt.where(ResourceBooking.end_datetime <= filters.date_to)
    return list(db.execute(stmt.order_by(ResourceBooking.start_datetime)).scalars())


def check_multiple_resource_conflicts(
    db: Session,
    tenant: TenantContext,
    resource_ids: Iterable[str],
    start: datetime,
    end: datetime,
    exclude_booking_ids: Iterable[str] = (),
) -> list[dict]:
    excluded = list(exclude_booking_ids)
    conflicts: list[dict] = []
    for resource in _load_resources(db, tenant, resource_ids):
        report = check_resource_availability(db, resource, start, end, excluded)
        if not report.is_available:
            conflicts.append(
                {
                    "resource_id": resource.id,
                    "resource_name": resource.name,
                    "conflict_type": "booking",
                    "message": f"{resource.name} is not available",
                    "conflicts": report.conflicts,
                }
            )
    return conflicts


def _new_booking(
    tenant: TenantContext,
    resource: Resource,
    start: datetime,
    end: datetime,
    **fields,
) -> ResourceBooking:
    return ResourceBooking(
        resource_id=resource.id,
        start_datetime=start,
        end_datetime=end,
        booked_by=tenant.user_id,
        status=BookingStatus.confirmed,
        **fields,
    )


def create_booking(
    db: Session,
    tenant: TenantContext,
    payload: BookingCreate,
    *,
    now: datetime | None = None,
) -> ResourceBooking:
    resource = get_resource(db, tenant, payload.resource_id)
    start, end = payload.start_datetime, payload.end_datetime
    with booking_attempt(db, [resource.id]):
        _ensure_bookable(db, resource, start, end, now=now or _now())
        report = check_resource_availability(db, resource, start, end)
        if not report.is_available:
            raise ResourceConflictError(
                "Resource is not available for the selected time",
                [{"resource_id": resource.id, "resource_name": resource.name, "conflicts": report.conflicts}],
            )
        booking = _new_booking(
            tenant,
            resource,
            start,
            end,
            session_id=payload.session_id,
            booked_for=payload.booked_for,
            booking_notes=payload.booking_notes,
            priority=payload.priority,
        )
        db.add(booking)
        db.flush()
        log_activity(
            db,
            tenant=tenant,
            action="booking.created",
            entity_type="resource_booking",
            entity_id=booking.id,
            details={"resource_id": resource.id},
        )
        db.commit()
    db.refresh(booking)
    logger.info("Booked resource %s from %s to %s (%s)", resource.id, start, end, booking.id)
    return booking


def book_resources_for_session(
    db: Session,
    tenant: TenantContext,
    session_id: str,
    resource_ids: list[str],
    start: datetime,
    end: datetime,
    notes: str | None = None,
    *,
    now: datetime | None = None,
) -> list[ResourceBooking]:
    """Reserve every resource for one session, or none of them."""
    resources = _load_resources(db, tenant, dict.fromkeys(resource_ids))
    moment = now or _now()

    with booking_attempt(db, [resource.id for resource in resources]):
        for resource in resources:
            _ensure_bookable(db, resource, start, end, now=moment)
        conflicts = check_multiple_resource_conflicts(
            db, tenant, [resource.id for resource in resources], start, end
        )
        if conflicts:
            messages = ", ".join(item["message"] for item in conflicts)
            raise ResourceConflictError(f"Resource conflicts detected: {messages}", conflicts)

        bookings = [
            _new_booking(tenant, resource, start, end, session_id=session_id, booking_notes=notes)
            for resource in resources
        ]
        db.add_all(bookings)
        db.flush()
        log_activity(
            db,
            tenant=tenant,
            action="booking.session_reserved",
            entity_type="session",
            entity_id=session_id,
            details={"resource_ids": [resource.id for resource in resources]},
        )
        db.commit()
    for booking in bookings:
        db.refresh(booking)
    logger.info("Reserved %d resource(s) for session %s", len(bookings), session_id)
    return bookings


def generate_recurring_dates(start_date: date, end_date: date, days_of_week: Iterable[int]) -> list[date]:
    """Every date in ``[start_date, end_date]`` whose ISO weekday (Monday=1 .. Sunday=7) is wanted."""
    wanted = set(days_of_week)
    dates: list[date] = []
    current = start_date
    while current <= end_date:
        if current.isoweekday() in wanted:
            dates.append(current)
        current += timedelta(days=1)
    return dates


@dataclass
class RecurringOutcome:
    recurrence_group_id: str
    requested_count: int
    created: list[ResourceBooking] = field(default_factory=list)
    skipped: list[dict] = field(default_factory=list)


def book_recurring_resources(
    db: Session,
    tenant: TenantContext,
    resource_id: str,
    pattern: RecurrencePattern,
    session_ids: list[str] | None = None,
    *,
    now: datetime | None = None,
) -> RecurringOutcome:
    resource = get_resource(db, tenant, resource_id)
    moment = now or _now()
    dates = generate_recurring_dates(pattern.start_date, pattern.end_date, pattern.days_of_week)
    start_clock = time.fromisoformat(pattern.start_time)
    end_clock = time.fromisoformat(pattern.end_time)
    outcome = RecurringOutcome(recurrence_group_id=str(uuid.uuid4()), requested_count=len(dates))

    with booking_attempt(db, [resource.id]):
        db.refresh(resource)
        if not resource.is_active:
            raise ResourceUnavailableError(f"{resource.name} is inactive", resource.id)
        for index, day in enumerate(dates):
            start = datetime.combine(day, start_clock)
            end = datetime.combine(day, end_clock)
            reason = booking_rule_violation(resource, start, end, now=moment)
            if reason is None:
                report = check_resource_availability(db, resource, start, end)
                if not report.is_available:
                    reason = report.conflicts[0]["reason"]
            if reason is not None:
                outcome.skipped.append({"date": day, "reason": reason})
                logger.warning("Skipping recurring booking of %s on %s: %s", resource.id, day, reason)
                continue

            booking = _new_booking(
                tenant,
                resource,
                start,
                end,
                session_id=session_ids[index] if session_ids and index < len(session_ids) else None,
                is_recurring=True,
                recurrence_group_id=outcome.recurrence_group_id,
                booking_notes=f"Recurring booking {index + 1} of {len(dates)}",
            )
            db.add(booking)
            # Flush so the next date's conflict check sees this row.
            db.flush()
            outcome.created.append(booking)

        log_activity(
            db,
            tenant=tenant,
            action="booking.recurring_created",
            entity_type="recurrence_group",
            entity_id=outcome.recurrence_group_id,
            details={
                "resource_id": resource.id,
                "requested": outcome.requested_count,
                "created": len(outcome.created),
            },
        )
        db.commit()
    for booking in outcome.created:
        db.refresh(booking)
    logger.info(
        "Recurring group %s: %d of %d booking(s) created on %s",
        outcome.recurrence_group_id,
        len(outcome.created),
        outcome.requested_count,
        resource.id,
    )
    return outcome


def cancel_booking(db: Session, tenant: TenantContext, booking_id: str, reason: str | None = None) -> ResourceBooking:
    booking = get_booking(db, tenant, booking_id)
    if booking.status != BookingStatus.cancelled:
        booking.status = BookingStatus.cancelled
        booking.cancellation_reason = reason or None
        log_activity(
            db,
            tenant=tenant,
            action="booking.cancelled",
            entity_type="resource_booking",
            entity_id=booking.id,
            details={"reason": reason},
        )
        db.commit()
        db.refresh(booking)
    return booking


def cancel_recurring_bookings(
    db: Session,
    tenant: TenantContext,
    recurrence_group_id: str,
    reason: str | None = None,
) -> int:
    """Cancel every booking of a recurrence group. Repeating the call changes nothing."""
    pending = db.execute(
        select(ResourceBooking)
        .join(Resource, Resource.id == ResourceBooking.resource_id)
        .where(
            ResourceBooking.recurrence_group_id == recurrence_group_id,
            Resource.school_id == tenant.school_id,
            ResourceBooking.status != BookingStatus.cancelled,
        )
    ).scalars().all()
    for booking in pending:
        booking.status = BookingStatus.cancelled
        booking.cancellation_reason = reason or "Recurring booking cancelled"
    cancelled = len(pending)
    if cancelled:
        log_activity(
            db,
            tenant=tenant,
            action="booking.recurring_cancelled",
            entity_type="recurrence_group",
            entity_id=recurrence_group_id,
            details={"cancelled": cancelled, "reason": reason},
        )
    db.commit()
    logger.info("Cancelled %d booking(s) in recurrence group %s", cancelled, recurrence_group_id)
    return cancelled


def transfer_booking(
    db: Session,
    tenant: TenantContext,
    booking_id: str,
    new_resource_id: str,
    reason: str | None = None,
) -> ResourceBooking:
    booking = get_booking(db, tenant, booking_id)
    if booking.status not in BLOCKING_STATUSES:
        raise ValidationError(
            f"Cannot transfer a {booking.status.value} booking",
            details={"booking_id": booking.id},
        )
    if booking.resource_id == new_resource_id:
        raise ValidationError("Booking already uses this resource", details={"resource_id": new_resource_id})

    target = get_resource(db, tenant, new_resource_id)
    previous = booking.resource

    with booking_attempt(db, [target.id]):
        db.refresh(target)
        if not target.is_active:
            raise ResourceUnavailableError(f"{target.name} is inactive", target.id)
        report = check_resource_availability(
            db, target, booking.start_datetime, booking.end_datetime, [booking.id]
        )
        if not report.is_available:
            raise ResourceUnavailableError(
                "New resource is not available for this time slot", target.id, report.conflicts
            )
        note = f"Transferred from {previous.name}. Reason: {reason or 'Not specified'}"
        booking.booking_notes = f"{booking.booking_notes}\n\n{note}" if booking.booking_notes else note
        booking.resource = target
        log_activity(
            db,
            tenant=tenant,
            action="booking.transferred",
            entity_type="resource_booking",
            entity_id=booking.id,
            details={"from": previous.id, "to": target.id, "reason": reason},
        )
        db.commit()
    db.refresh(booking)
    logger.info("Transferred booking %s from %s to %s", booking.id, previous.id, target.id)
    return booking
