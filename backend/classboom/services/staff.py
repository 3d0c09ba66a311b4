from __future__ import annotations

from collections import Counter
import logging
import re

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from classboom.core.exceptions import ResourceNotFoundError, ValidationError
from classboom.models.staff import Staff, StaffRole, StaffStatus
from classboom.schemas.staff import StaffCreate, StaffFilters, StaffUpdate, WeeklyAvailability
from classboom.services import availability as calculator
from classboom.services.audit import log_activity
from classboom.services.tenant import TenantContext

logger = logging.getLogger(__name__)

STAFF_CODE_PREFIXES: dict[StaffRole, str] = {
    StaffRole.teacher: "TCH",
    StaffRole.manager: "MGR",
    StaffRole.admin: "ADM",
    StaffRole.support: "SUP",
    StaffRole.custodian: "CUS",
}


def get_staff(db: Session, tenant: TenantContext, staff_id: str) -> Staff:
    staff = db.execute(
        select(Staff).where(Staff.id == staff_id, Staff.school_id == tenant.school_id)
    ).scalar_one_or_none()
    if staff is None:
        raise ResourceNotFoundError("Staff", staff_id)
    return staff


def next_staff_code(db: Session, school_id: str, role: StaffRole) -> str:
    prefix = STAFF_CODE_PREFIXES[role]
    pattern = re.compile(rf"^{prefix}-(\d+)$")
    codes = db.execute(
        select(Staff.staff_code).where(Staff.school_id == school_id, Staff.staff_code.like(f"{prefix}-%"))
    ).scalars()
    highest = 0
    for code in codes:
        match = pattern.match(code or "")
        if match:
            highest = max(highest, int(match.group(1)))
    return f"{prefix}-{highest + 1:04d}"


def list_staff(db: Session, tenant: TenantContext, filters: StaffFilters | None = None) -> list[Staff]:
    filters = filters or StaffFilters()
    stmt = select(Staff).where(Staff.school_id == tenant.school_id)
    if filters.role is not None:
        stmt = stmt.where(Staff.role == filters.role)
    if filters.status is not None:
        stmt = stmt.where(Staff.status == filters.status)
    if filters.department:
        stmt = stmt.where(Staff.department == filters.department)
    if filters.employment_type is not None:
        stmt = stmt.where(Staff.employment_type == filters.employment_type)
    if filters.search:
        pattern = f"%{filters.search.strip()}%"
        stmt = stmt.where(
            or_(
                Staff.first_name.ilike(pattern),
                Staff.last_name.ilike(pattern),
                Staff.email.ilike(pattern),
                Staff.staff_code.ilike(pattern),
            )
        )
    return list(db.execute(stmt.order_by(Staff.created_at.desc(), Staff.last_name)).scalars())


def create_staff(db: Session, tenant: TenantContext, payload: StaffCreate) -> Staff:
    data = payload.model_dump(exclude={"availability"})
    staff = Staff(
        school_id=tenant.school_id,
        staff_code=next_staff_code(db, tenant.school_id, payload.role),
        availability=payload.availability.model_dump() if payload.availability is not None else {},
        created_by=tenant.user_id,
        **data,
    )
    db.add(staff)
    db.flush()
    log_activity(
        db,
        tenant=tenant,
        action="staff.created",
        entity_type="staff",
        entity_id=staff.id,
        details={"staff_code": staff.staff_code, "role": staff.role.value},
    )
    db.commit()
    db.refresh(staff)
    logger.info("Created staff %s (%s) for school %s", staff.id, staff.staff_code, tenant.school_id)
    return staff


def update_staff(db: Session, tenant: TenantContext, staff_id: str, payload: StaffUpdate) -> Staff:
    staff = get_staff(db, tenant, staff_id)
    data = payload.model_dump(exclude_unset=True)

    for required in ("first_name", "last_name", "email", "role", "status", "currency"):
        if required in data and data[required] is None:
            raise ValidationError(f"{required} cannot be cleared", details={"field": required})

    min_hours = data["min_weekly_hours"] if "min_weekly_hours" in data else staff.min_weekly_hours
    max_hours = data["max_weekly_hours"] if "max_weekly_hours" in data else staff.max_weekly_hours
    if min_hours is not None and max_hours is not None and min_hours > max_hours:
        raise ValidationError(
            "min_weekly_hours cannot exceed max_weekly_hours",
            details={"min_weekly_hours": min_hours, "max_weekly_hours": max_hours},
        )

    for key, value in data.items():
        setattr(staff, key, value)
    if data:
        log_activity(
            db,
            tenant=tenant,
            action="staff.updated",
            entity_type="staff",
            entity_id=staff.id,
            details={"fields": sorted(data)},
        )
    db.commit()
    db.refresh(staff)
    return staff


def delete_staff(db: Session, tenant: TenantContext, staff_id: str) -> None:
    staff = get_staff(db, tenant, staff_id)
    log_activity(
        db,
        tenant=tenant,
        action="staff.deleted",
        entity_type="staff",
        entity_id=staff.id,
        details={"staff_code": staff.staff_code},
    )
    db.delete(staff)
    db.commit()
    logger.info("Deleted staff %s for school %s", staff_id, tenant.school_id)


def update_staff_availability(
    db: Session,
    tenant: TenantContext,
    staff_id: str,
    availability: WeeklyAvailability,
) -> Staff:
    staff = get_staff(db, tenant, staff_id)
    staff.availability = availability.model_dump()
    log_activity(
        db,
        tenant=tenant,
        action="staff.availability_updated",
        entity_type="staff",
        entity_id=staff.id,
        details={"days": sorted(staff.availability)},
    )
    db.commit()
    db.refresh(staff)
    return staff


def get_staff_schedule_summary(db: Session, tenant: TenantContext, staff_id: str) -> dict:
    staff = get_staff(db, tenant, staff_id)
    summary = calculator.summarize(staff.availability or {})
    within_bounds = True
    if staff.min_weekly_hours is not None and summary.total_hours < staff.min_weekly_hours:
        within_bounds = False
    if staff.max_weekly_hours is not None and summary.total_hours > staff.max_weekly_hours:
        within_bounds = False
    return {
        "total_hours": summary.total_hours,
        "available_day_count": summary.available_day_count,
        "per_day_hours": summary.per_day_hours,
        "longest_day": (
            {"day": summary.longest_day.day, "hours": summary.longest_day.hours}
            if summary.longest_day
            else None
        ),
        "min_weekly_hours": staff.min_weekly_hours,
        "max_weekly_hours": staff.max_weekly_hours,
        "within_weekly_bounds": within_bounds,
    }


def is_staff_available(db: Session, tenant: TenantContext, staff_id: str, day: str, start: str, end: str) -> bool:
    """True only when one of the staff member's slots fully covers the request."""
    staff = get_staff(db, tenant, staff_id)
    return calculator.is_covered(staff.availability or {}, day, start, end)


def get_available_staff(db: Session, tenant: TenantContext, day: str, start: str, end: str) -> list[Staff]:
    """Active staff with any slot overlapping the request, for discovery lists."""
    roster = db.execute(
        select(Staff)
        .where(Staff.school_id == tenant.school_id, Staff.status == StaffStatus.active)
        .order_by(Staff.last_name, Staff.first_name)
    ).scalars()
    return [staff for staff in roster if calculator.overlaps_any(staff.availability or {}, day, start, end)]


def staff_stats(db: Session, tenant: TenantContext) -> dict:
    roster = list(db.execute(select(Staff).where(Staff.school_id == tenant.school_id)).scalars())
    return {
        "total": len(roster),
        "active": sum(1 for staff in roster if staff.status == StaffStatus.active),
        "by_role": dict(Counter(staff.role.value for staff in roster)),
        "by_status": dict(Counter(staff.status.value for staff in roster)),
        "by_employment_type": dict(
            Counter(staff.employment_type.value for staff in roster if staff.employment_type is not None)
        ),
    }
