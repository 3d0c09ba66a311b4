from datetime import datetime

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from classboom.api.deps import get_db, get_tenant_context, require_manager
from classboom.models.booking import BookingStatus
from classboom.schemas.booking import (
    BookingCreate,
    BookingFilters,
    BookingOut,
    CancelRecurringResult,
    CancelRequest,
    MultiResourceCheck,
    RecurringBookingRequest,
    RecurringBookingResult,
    ResourceConflictOut,
    SessionBookingRequest,
    SmartAssignmentRequest,
    SmartAssignmentResult,
    TransferRequest,
)
from classboom.schemas.resource import ResourceOut
from classboom.services import bookings as booking_service
from classboom.services.assignment import smart_resource_assignment
from classboom.services.tenant import TenantContext

router = APIRouter()


@router.get("/", response_model=list[BookingOut])
def list_bookings(
    resource_id: str | None = None,
    session_id: str | None = None,
    booking_status: BookingStatus | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    booked_by: str | None = None,
    tenant: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db),
) -> list[BookingOut]:
    filters = BookingFilters(
        resource_id=resource_id,
        session_id=session_id,
        status=booking_status,
        date_from=date_from,
        date_to=date_to,
        booked_by=booked_by,
    )
    return booking_service.list_bookings(db, tenant, filters)


@router.post("/", response_model=BookingOut, status_code=status.HTTP_201_CREATED)
def create_booking(
    payload: BookingCreate,
    tenant: TenantContext = Depends(require_manager),
    db: Session = Depends(get_db),
) -> BookingOut:
    return booking_service.create_booking(db, tenant, payload)


@router.post("/session", response_model=list[BookingOut], status_code=status.HTTP_201_CREATED)
def book_resources_for_session(
    payload: SessionBookingRequest,
    tenant: TenantContext = Depends(require_manager),
    db: Session = Depends(get_db),
) -> list[BookingOut]:
    return booking_service.book_resources_for_session(
        db,
        tenant,
        payload.session_id,
        payload.resource_ids,
        payload.start_datetime,
        payload.end_datetime,
        payload.notes,
    )


@router.post("/recurring", response_model=RecurringBookingResult, status_code=status.HTTP_201_CREATED)
def book_recurring_resources(
    payload: RecurringBookingRequest,
    tenant: TenantContext = Depends(require_manager),
    db: Session = Depends(get_db),
) -> RecurringBookingResult:
    outcome = booking_service.book_recurring_resources(
        db, tenant, payload.resource_id, payload.pattern, payload.session_ids
    )
    return RecurringBookingResult(
        recurrence_group_id=outcome.recurrence_group_id,
        requested_count=outcome.requested_count,
        created=[BookingOut.model_validate(booking) for booking in outcome.created],
        skipped=outcome.skipped,
    )


@router.post("/recurring/{recurrence_group_id}/cancel", response_model=CancelRecurringResult)
def cancel_recurring_bookings(
    recurrence_group_id: str,
    payload: CancelRequest | None = None,
    tenant: TenantContext = Depends(require_manager),
    db: Session = Depends(get_db),
) -> CancelRecurringResult:
    cancelled = booking_service.cancel_recurring_bookings(
        db, tenant, recurrence_group_id, payload.reason if payload else None
    )
    return CancelRecurringResult(recurrence_group_id=recurrence_group_id, cancelled_count=cancelled)


@router.post("/check-conflicts", response_model=list[ResourceConflictOut])
def check_multiple_resource_conflicts(
    payload: MultiResourceCheck,
    tenant: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db),
) -> list[ResourceConflictOut]:
    return booking_service.check_multiple_resource_conflicts(
        db,
        tenant,
        payload.resource_ids,
        payload.start_datetime,
        payload.end_datetime,
        payload.exclude_booking_ids,
    )


@router.post("/smart-assignment", response_model=SmartAssignmentResult)
def smart_assignment(
    payload: SmartAssignmentRequest,
    tenant: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db),
) -> SmartAssignmentResult:
    outcome = smart_resource_assignment(db, tenant, payload)
    return SmartAssignmentResult(
        required_types=outcome.required_types,
        resources=[ResourceOut.model_validate(resource) for resource in outcome.resources],
        missing_types=outcome.missing_types,
    )


@router.get("/{booking_id}", response_model=BookingOut)
def get_booking(
    booking_id: str,
    tenant: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db),
) -> BookingOut:
    return booking_service.get_booking(db, tenant, booking_id)


@router.post("/{booking_id}/cancel", response_model=BookingOut)
def cancel_booking(
    booking_id: str,
    payload: CancelRequest | None = None,
    tenant: TenantContext = Depends(require_manager),
    db: Session = Depends(get_db),
) -> BookingOut:
    return booking_service.cancel_booking(db, tenant, booking_id, payload.reason if payload else None)


@router.post("/{booking_id}/transfer", response_model=BookingOut)
def transfer_booking(
    booking_id: str,
    payload: TransferRequest,
    tenant: TenantContext = Depends(require_manager),
    db: Session = Depends(get_db),
) -> BookingOut:
    return booking_service.transfer_booking(db, tenant, booking_id, payload.new_resource_id, payload.reason)
