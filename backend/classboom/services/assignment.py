"""First-fit resource assignment for a session.

Each required resource type gets at most one resource: a caller-preferred one
when it is free, otherwise the first free match in name order. Types that
cannot be covered are reported back instead of raising.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from classboom.models.resource import Resource, ResourceType
from classboom.schemas.booking import ResourceRequirements, SmartAssignmentRequest
from classboom.schemas.resource import ResourceFilters
from classboom.services.conflicts import check_resource_availability
from classboom.services.resources import list_resources
from classboom.services.tenant import TenantContext

logger = logging.getLogger(__name__)

CATEGORY_RESOURCE_TYPES: dict[str, ResourceType] = {
    "music": ResourceType.instrument,
    "cooking": ResourceType.equipment,
    "fitness": ResourceType.sports_facility,
}


@dataclass
class AssignmentOutcome:
    required_types: list[ResourceType]
    resources: list[Resource] = field(default_factory=list)
    missing_types: list[ResourceType] = field(default_factory=list)


def required_resource_types(is_online: bool, course_category: str | None = None) -> list[ResourceType]:
    types = [ResourceType.online_meeting if is_online else ResourceType.physical_room]
    if course_category:
        extra = CATEGORY_RESOURCE_TYPES.get(course_category.strip().lower())
        if extra is not None and extra not in types:
            types.append(extra)
    return types


def _is_free(db: Session, resource: Resource, start: datetime, end: datetime) -> bool:
    return check_resource_availability(db, resource, start, end).is_available


def find_best_resource(db: Session, tenant: TenantContext, requirements: ResourceRequirements) -> Resource | None:
    candidates = list_resources(
        db,
        tenant,
        ResourceFilters(
            resource_type=requirements.resource_type,
            is_active=True,
            capacity_min=requirements.capacity_needed,
            building=requirements.preferred_building,
            features=requirements.features_required,
        ),
    )
    for resource in candidates:
        if _is_free(db, resource, requirements.start_datetime, requirements.end_datetime):
            return resource
    return None


def _preferred_match(
    db: Session,
    tenant: TenantContext,
    resource_type: ResourceType,
    preferred_ids: list[str],
    start: datetime,
    end: datetime,
) -> Resource | None:
    if not preferred_ids:
        return None
    found = {
        resource.id: resource
        for resource in db.execute(
            select(Resource).where(
                Resource.school_id == tenant.school_id,
                Resource.id.in_(preferred_ids),
            )
        ).scalars()
    }
    for resource_id in preferred_ids:
        resource = found.get(resource_id)
        if resource is None or resource.resource_type != resource_type or not resource.is_active:
            continue
        if _is_free(db, resource, start, end):
            return resource
    return None


def smart_resource_assignment(
    db: Session,
    tenant: TenantContext,
    request: SmartAssignmentRequest,
) -> AssignmentOutcome:
    outcome = AssignmentOutcome(required_types=required_resource_types(request.is_online, request.course_category))
    start, end = request.start_datetime, request.end_datetime

    for resource_type in outcome.required_types:
        chosen = _preferred_match(db, tenant, resource_type, request.preferred_resources, start, end)
        if chosen is None:
            chosen = find_best_resource(
                db,
                tenant,
                ResourceRequirements(
                    resource_type=resource_type,
                    capacity_needed=request.capacity,
                    features_required=request.features_required.get(resource_type.value, []),
                    start_datetime=start,
                    end_datetime=end,
                ),
            )
        if chosen is None:
            outcome.missing_types.append(resource_type)
            logger.info("No free %s for %s - %s", resource_type.value, start, end)
            continue
        outcome.resources.append(chosen)

    return outcome
