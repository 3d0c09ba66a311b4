from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from classboom.api.deps import get_db, get_tenant_context, require_manager
from classboom.schemas.resource import ResourceOut, ResourceSetCreate, ResourceSetOut
from classboom.services import resources as resource_service
from classboom.services.tenant import TenantContext

router = APIRouter()


def _set_out(resource_set, resources) -> ResourceSetOut:
    return ResourceSetOut(
        id=resource_set.id,
        name=resource_set.name,
        description=resource_set.description,
        resource_ids=resource_set.resource_ids,
        is_active=resource_set.is_active,
        resources=[ResourceOut.model_validate(resource) for resource in resources],
    )


@router.get("/", response_model=list[ResourceSetOut])
def list_resource_sets(
    tenant: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db),
) -> list[ResourceSetOut]:
    return [_set_out(item, resources) for item, resources in resource_service.list_resource_sets(db, tenant)]


@router.post("/", response_model=ResourceSetOut, status_code=status.HTTP_201_CREATED)
def create_resource_set(
    payload: ResourceSetCreate,
    tenant: TenantContext = Depends(require_manager),
    db: Session = Depends(get_db),
) -> ResourceSetOut:
    resource_set = resource_service.create_resource_set(db, tenant, payload)
    members = {resource.id: resource for resource in resource_service.list_resources(db, tenant)}
    return _set_out(resource_set, [members[item] for item in resource_set.resource_ids if item in members])
