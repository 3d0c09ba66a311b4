from __future__ import annotations

from collections import Counter
from datetime import datetime
import logging

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from classboom.core.exceptions import ResourceInUseError, ResourceNotFoundError, ValidationError
from classboom.models.booking import BookingStatus, ResourceBooking
from classboom.models.resource import Resource, ResourceSet, ResourceType
from classboom.schemas.resource import (
    ResourceCreate,
    ResourceFilters,
    ResourceSetCreate,
    ResourceUpdate,
    validate_feature_keys,
    validate_operating_window,
)
from classboom.services.audit import log_activity
from classboom.services.conflicts import check_resource_availability
from classboom.services.tenant import TenantContext

logger = logging.getLogger(__name__)

NON_NULLABLE_FIELDS = (
    "name",
    "resource_type",
    "capacity",
    "features",
    "is_active",
    "requires_approval",
    "min_booking_duration",
    "max_booking_duration",
    "buffer_time_before",
    "buffer_time_after",
    "advance_booking_days",
)


def _now() -> datetime:
    return datetime.now()


def get_resource(db: Session, tenant: TenantContext, resource_id: str) -> Resource:
    resource = db.execute(
        select(Resource).where(Resource.id == resource_id, Resource.school_id == tenant.school_id)
    ).scalar_one_or_none()
    if resource is None:
        raise ResourceNotFoundError("Resource", resource_id)
    return resource


def get_resource_by_code(db: Session, tenant: TenantContext, code: str) -> Resource:
    resource = db.execute(
        select(Resource).where(Resource.code == code, Resource.school_id == tenant.school_id)
    ).scalars().first()
    if resource is None:
        raise ResourceNotFoundError("Resource", code)
    return resource


def _has_features(resource: Resource, features: list[str]) -> bool:
    available = resource.features or {}
    return all(available.get(feature) for feature in features)


def list_resources(db: Session, tenant: TenantContext, filters: ResourceFilters | None = None) -> list[Resource]:
    filters = filters or ResourceFilters()
    stmt = select(Resource).where(Resource.school_id == tenant.school_id)
    if filters.resource_type is not None:
        stmt = stmt.where(Resource.resource_type == filters.resource_type)
    if filters.is_active is not None:
        stmt = stmt.where(Resource.is_active == filters.is_active)
    if filters.building:
        stmt = stmt.where(Resource.building == filters.building)
    if filters.capacity_min is not None:
        stmt = stmt.where(Resource.capacity >= filters.capacity_min)
    if filters.capacity_max is not None:
        stmt = stmt.where(Resource.capacity <= filters.capacity_max)
    if filters.search:
        pattern = f"%{filters.search.strip()}%"
        stmt = stmt.where(
            or_(
                Resource.name.ilike(pattern),
                Resource.code.ilike(pattern),
                Resource.description.ilike(pattern),
                Resource.room_number.ilike(pattern),
            )
        )
    stmt = stmt.order_by(Resource.resource_type, Resource.name)
    resources = list(db.execute(stmt).scalars())
    if filters.features:
        # JSON containment differs per dialect; filter the (small) tenant list here.
        resources = [resource for resource in resources if _has_features(resource, filters.features)]
    return resources


def create_resource(db: Session, tenant: TenantContext, payload: ResourceCreate) -> Resource:
    resource = Resource(school_id=tenant.school_id, created_by=tenant.user_id, **payload.model_dump())
    db.add(resource)
    db.flush()
    log_activity(
        db,
        tenant=tenant,
        action="resource.created",
        entity_type="resource",
        entity_id=resource.id,
        details={"name": resource.name, "resource_type": resource.resource_type.value},
    )
    db.commit()
    db.refresh(resource)
    logger.info("Created resource %s (%s) for school %s", resource.id, resource.resource_type.value, tenant.school_id)
    return resource


def update_resource(db: Session, tenant: TenantContext, resource_id: str, payload: ResourceUpdate) -> Resource:
    resource = get_resource(db, tenant, resource_id)
    data = payload.model_dump(exclude_unset=True)

    for required in NON_NULLABLE_FIELDS:
        if required in data and data[required] is None:
            raise ValidationError(f"{required} cannot be cleared", details={"field": required})

    min_duration = data.get("min_booking_duration") or resource.min_booking_duration
    max_duration = data.get("max_booking_duration") or resource.max_booking_duration
    if min_duration > max_duration:
        raise ValidationError(
            "min_booking_duration cannot exceed max_booking_duration",
            details={"min_booking_duration": min_duration, "max_booking_duration": max_duration},
        )

    opens = data["available_from"] if "available_from" in data else resource.available_from
    closes = data["available_until"] if "available_until" in data else resource.available_until
    try:
        validate_operating_window(opens, closes)
    except ValueError as exc:
        raise ValidationError(
            str(exc), details={"available_from": opens, "available_until": closes}
        ) from exc

    resource_type = data.get("resource_type") or resource.resource_type
    features = data["features"] if data.get("features") is not None else resource.features or {}
    try:
        validate_feature_keys(ResourceType(resource_type), features)
    except ValueError as exc:
        raise ValidationError(str(exc), details={"field": "features"}) from exc

    for key, value in data.items():
        setattr(resource, key, value)
    if data:
        log_activity(
            db,
            tenant=tenant,
            action="resource.updated",
            entity_type="resource",
            entity_id=resource.id,
            details={"fields": sorted(data)},
        )
    db.commit()
    db.refresh(resource)
    return resource


def delete_resource(db: Session, tenant: TenantContext, resource_id: str, *, now: datetime | None = None) -> None:
    resource = get_resource(db, tenant, resource_id)
    moment = now or _now()
    upcoming = db.execute(
        select(func.count(ResourceBooking.id)).where(
            ResourceBooking.resource_id == resource.id,
            ResourceBooking.status == BookingStatus.confirmed,
            ResourceBooking.start_datetime >= moment,
        )
    ).scalar_one()
    if upcoming:
        raise ResourceInUseError(resource.id, upcoming)

    log_activity(
        db,
        tenant=tenant,
        action="resource.deleted",
        entity_type="resource",
        entity_id=resource.id,
        details={"name": resource.name},
    )
    db.delete(resource)
    db.commit()
    logger.info("Deleted resource %s for school %s", resource_id, tenant.school_id)


def resource_stats(db: Session, tenant: TenantContext, *, now: datetime | None = None) -> dict:
    resources = list(db.execute(select(Resource).where(Resource.school_id == tenant.school_id)).scalars())
    moment = now or _now()
    upcoming = db.execute(
        select(func.count(ResourceBooking.id))
        .join(Resource, Resource.id == ResourceBooking.resource_id)
        .where(
            Resource.school_id == tenant.school_id,
            ResourceBooking.status == BookingStatus.confirmed,
            ResourceBooking.start_datetime >= moment,
        )
    ).scalar_one()
    by_type = Counter(resource.resource_type.value for resource in resources)
    return {
        "total_resources": len(resources),
        "by_type": dict(by_type),
        "active_resources": sum(1 for resource in resources if resource.is_active),
        "total_capacity": sum(resource.capacity for resource in resources),
        "upcoming_bookings": upcoming,
    }


def list_resources_with_availability(
    db: Session,
    tenant: TenantContext,
    filters: ResourceFilters | None = None,
    *,
    now: datetime | None = None,
) -> list[tuple[Resource, ResourceBooking | None]]:
    moment = now or _now()
    results: list[tuple[Resource, ResourceBooking | None]] = []
    for resource in list_resources(db, tenant, filters):
        current = db.execute(
            select(ResourceBooking)
            .where(
                ResourceBooking.resource_id == resource.id,
                ResourceBooking.status == BookingStatus.confirmed,
                ResourceBooking.start_datetime <= moment,
                ResourceBooking.end_datetime > moment,
            )
            .order_by(ResourceBooking.end_datetime.desc())
        ).scalars().first()
        results.append((resource, current))
    return results


def find_alternatives(
    db: Session,
    tenant: TenantContext,
    resource_id: str,
    start: datetime,
    end: datetime,
) -> list[Resource]:
    original = get_resource(db, tenant, resource_id)
    candidates = db.execute(
        select(Resource)
        .where(
            Resource.school_id == tenant.school_id,
            Resource.id != original.id,
            Resource.resource_type == original.resource_type,
            Resource.is_active.is_(True),
            Resource.capacity >= original.capacity,
        )
        .order_by(Resource.name)
    ).scalars()
    return [
        candidate
        for candidate in candidates
        if check_resource_availability(db, candidate, start, end).is_available
    ]


def create_resource_set(db: Session, tenant: TenantContext, payload: ResourceSetCreate) -> ResourceSet:
    known = set(
        db.execute(
            select(Resource.id).where(
                Resource.school_id == tenant.school_id,
                Resource.id.in_(payload.resource_ids),
            )
        ).scalars()
    )
    missing = [item for item in payload.resource_ids if item not in known]
    if missing:
        raise ResourceNotFoundError("Resource", ", ".join(missing))

    resource_set = ResourceSet(
        school_id=tenant.school_id,
        name=payload.name.strip(),
        description=payload.description or None,
        resource_ids=list(payload.resource_ids),
    )
    db.add(resource_set)
    db.flush()
    log_activity(
        db,
        tenant=tenant,
        action="resource_set.created",
        entity_type="resource_set",
        entity_id=resource_set.id,
        details={"resource_ids": resource_set.resource_ids},
    )
    db.commit()
    db.refresh(resource_set)
    return resource_set


def list_resource_sets(db: Session, tenant: TenantContext) -> list[tuple[ResourceSet, list[Resource]]]:
    sets = list(
        db.execute(
            select(ResourceSet)
            .where(ResourceSet.school_id == tenant.school_id, ResourceSet.is_active.is_(True))
            .order_by(ResourceSet.name)
        ).scalars()
    )
    wanted = {resource_id for item in sets for resource_id in item.resource_ids}
    by_id: dict[str, Resource] = {}
    if wanted:
        by_id = {
            resource.id: resource
            for resource in db.execute(
                select(Resource).where(Resource.school_id == tenant.school_id, Resource.id.in_(wanted))
            ).scalars()
        }
    return [
        (item, [by_id[resource_id] for resource_id in item.resource_ids if resource_id in by_id])
        for item in sets
    ]
