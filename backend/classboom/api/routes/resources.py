from datetime import datetime

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from classboom.api.deps import get_db, get_tenant_context, require_manager
from classboom.models.resource import ResourceType
from classboom.schemas.resource import (
    AvailabilityResult,
    ResourceCreate,
    ResourceFilters,
    ResourceOut,
    ResourceStats,
    ResourceUpdate,
    ResourceWithAvailability,
)
from classboom.services import resources as resource_service
from classboom.services.conflicts import check_resource_availability
from classboom.services.tenant import TenantContext

router = APIRouter()


def resource_filters(
    resource_type: ResourceType | None = None,
    is_active: bool | None = None,
    building: str | None = None,
    capacity_min: int | None = Query(default=None, ge=1),
    capacity_max: int | None = Query(default=None, ge=1),
    features: list[str] = Query(default=[]),
    search: str | None = None,
) -> ResourceFilters:
    return ResourceFilters(
        resource_type=resource_type,
        is_active=is_active,
        building=building,
        capacity_min=capacity_min,
        capacity_max=capacity_max,
        features=features,
        search=search,
    )


@router.get("/", response_model=list[ResourceOut])
def list_resources(
    filters: ResourceFilters = Depends(resource_filters),
    tenant: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db),
) -> list[ResourceOut]:
    return resource_service.list_resources(db, tenant, filters)


@router.post("/", response_model=ResourceOut, status_code=status.HTTP_201_CREATED)
def create_resource(
    payload: ResourceCreate,
    tenant: TenantContext = Depends(require_manager),
    db: Session = Depends(get_db),
) -> ResourceOut:
    return resource_service.create_resource(db, tenant, payload)


@router.get("/stats", response_model=ResourceStats)
def resource_stats(
    tenant: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db),
) -> ResourceStats:
    return ResourceStats(**resource_service.resource_stats(db, tenant))


@router.get("/availability-now", response_model=list[ResourceWithAvailability])
def resources_with_availability(
    filters: ResourceFilters = Depends(resource_filters),
    tenant: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db),
) -> list[ResourceWithAvailability]:
    rows = resource_service.list_resources_with_availability(db, tenant, filters)
    return [
        ResourceWithAvailability(
            **ResourceOut.model_validate(resource).model_dump(),
            is_available_now=current is None,
            current_booking_id=current.id if current else None,
            next_available=current.end_datetime if current else None,
        )
        for resource, current in rows
    ]


@router.get("/by-code/{code}", response_model=ResourceOut)
def get_resource_by_code(
    code: str,
    tenant: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db),
) -> ResourceOut:
    return resource_service.get_resource_by_code(db, tenant, code)


@router.get("/{resource_id}", response_model=ResourceOut)
def get_resource(
    resource_id: str,
    tenant: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db),
) -> ResourceOut:
    return resource_service.get_resource(db, tenant, resource_id)


@router.put("/{resource_id}", response_model=ResourceOut)
def update_resource(
    resource_id: str,
    payload: ResourceUpdate,
    tenant: TenantContext = Depends(require_manager),
    db: Session = Depends(get_db),
) -> ResourceOut:
    return resource_service.update_resource(db, tenant, resource_id, payload)


@router.delete("/{resource_id}")
def delete_resource(
    resource_id: str,
    tenant: TenantContext = Depends(require_manager),
    db: Session = Depends(get_db),
) -> dict:
    resource_service.delete_resource(db, tenant, resource_id)
    return {"success": True}


@router.get("/{resource_id}/availability", response_model=AvailabilityResult)
def check_availability(
    resource_id: str,
    start_datetime: datetime,
    end_datetime: datetime,
    exclude_booking_id: str | None = None,
    tenant: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db),
) -> AvailabilityResult:
    resource = resource_service.get_resource(db, tenant, resource_id)
    report = check_resource_availability(
        db, resource, start_datetime, end_datetime, [exclude_booking_id] if exclude_booking_id else []
    )
    return AvailabilityResult(is_available=report.is_available, conflicting_bookings=report.conflicts)


@router.get("/{resource_id}/alternatives", response_model=list[ResourceOut])
def find_alternatives(
    resource_id: str,
    start_datetime: datetime,
    end_datetime: datetime,
    tenant: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db),
) -> list[ResourceOut]:
    return resource_service.find_alternatives(db, tenant, resource_id, start_datetime, end_datetime)
