from fastapi import APIRouter, Depends, status
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from classboom.api.deps import get_db, get_tenant_context, require_manager
from classboom.core.exceptions import ValidationError
from classboom.models.staff import EmploymentType, StaffRole, StaffStatus
from classboom.schemas.staff import (
    InvitationOut,
    ScheduleSummaryOut,
    SlotQuery,
    StaffAvailabilityCheckOut,
    StaffCreate,
    StaffFilters,
    StaffOut,
    StaffStats,
    StaffUpdate,
    WeeklyAvailability,
)
from classboom.services import staff as staff_service
from classboom.services.invitations import send_staff_invitation
from classboom.services.tenant import TenantContext

router = APIRouter()


def slot_query(day: str, start: str, end: str) -> SlotQuery:
    try:
        return SlotQuery(day=day, start=start, end=end)
    except PydanticValidationError as exc:
        raise ValidationError(
            "Invalid slot query", details={"errors": [error["msg"] for error in exc.errors()]}
        ) from exc


@router.get("/", response_model=list[StaffOut])
def list_staff(
    role: StaffRole | None = None,
    staff_status: StaffStatus | None = None,
    department: str | None = None,
    employment_type: EmploymentType | None = None,
    search: str | None = None,
    tenant: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db),
) -> list[StaffOut]:
    filters = StaffFilters(
        role=role,
        status=staff_status,
        department=department,
        employment_type=employment_type,
        search=search,
    )
    return staff_service.list_staff(db, tenant, filters)


@router.post("/", response_model=StaffOut, status_code=status.HTTP_201_CREATED)
def create_staff(
    payload: StaffCreate,
    tenant: TenantContext = Depends(require_manager),
    db: Session = Depends(get_db),
) -> StaffOut:
    return staff_service.create_staff(db, tenant, payload)


@router.get("/stats", response_model=StaffStats)
def staff_stats(
    tenant: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db),
) -> StaffStats:
    return StaffStats(**staff_service.staff_stats(db, tenant))


@router.get("/available", response_model=list[StaffOut])
def available_staff(
    slot: SlotQuery = Depends(slot_query),
    tenant: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db),
) -> list[StaffOut]:
    return staff_service.get_available_staff(db, tenant, slot.day, slot.start, slot.end)


@router.get("/{staff_id}", response_model=StaffOut)
def get_staff(
    staff_id: str,
    tenant: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db),
) -> StaffOut:
    return staff_service.get_staff(db, tenant, staff_id)


@router.put("/{staff_id}", response_model=StaffOut)
def update_staff(
    staff_id: str,
    payload: StaffUpdate,
    tenant: TenantContext = Depends(require_manager),
    db: Session = Depends(get_db),
) -> StaffOut:
    return staff_service.update_staff(db, tenant, staff_id, payload)


@router.delete("/{staff_id}")
def delete_staff(
    staff_id: str,
    tenant: TenantContext = Depends(require_manager),
    db: Session = Depends(get_db),
) -> dict:
    staff_service.delete_staff(db, tenant, staff_id)
    return {"success": True}


@router.put("/{staff_id}/availability", response_model=StaffOut)
def update_staff_availability(
    staff_id: str,
    payload: WeeklyAvailability,
    tenant: TenantContext = Depends(require_manager),
    db: Session = Depends(get_db),
) -> StaffOut:
    return staff_service.update_staff_availability(db, tenant, staff_id, payload)


@router.get("/{staff_id}/schedule-summary", response_model=ScheduleSummaryOut)
def schedule_summary(
    staff_id: str,
    tenant: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db),
) -> ScheduleSummaryOut:
    return ScheduleSummaryOut(**staff_service.get_staff_schedule_summary(db, tenant, staff_id))


@router.get("/{staff_id}/availability-check", response_model=StaffAvailabilityCheckOut)
def check_staff_availability(
    staff_id: str,
    slot: SlotQuery = Depends(slot_query),
    tenant: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db),
) -> StaffAvailabilityCheckOut:
    available = staff_service.is_staff_available(db, tenant, staff_id, slot.day, slot.start, slot.end)
    return StaffAvailabilityCheckOut(
        staff_id=staff_id, day=slot.day, start=slot.start, end=slot.end, is_available=available
    )


@router.post("/{staff_id}/invite", response_model=InvitationOut)
def invite_staff(
    staff_id: str,
    tenant: TenantContext = Depends(require_manager),
    db: Session = Depends(get_db),
) -> InvitationOut:
    staff = send_staff_invitation(db, tenant, staff_id)
    return InvitationOut(staff_id=staff.id, email=staff.email, invite_sent_at=staff.invite_sent_at)
