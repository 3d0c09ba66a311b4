from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.orm import Session

from classboom.core.exceptions import NoTenantError, NotAuthenticatedError
from classboom.models.school import School
from classboom.models.user import User, UserRole


@dataclass(frozen=True)
class TenantContext:
    school_id: str
    user_id: str
    role: UserRole = UserRole.owner

    @property
    def can_manage(self) -> bool:
        return self.role in (UserRole.owner, UserRole.admin)


def resolve_tenant(db: Session, user_id: str | None) -> TenantContext:
    if not user_id:
        raise NotAuthenticatedError()
    user = db.get(User, user_id)
    if user is None or not user.is_active:
        raise NotAuthenticatedError()
    school_id = db.execute(select(School.id).where(School.owner_id == user.id)).scalar_one_or_none()
    if school_id is None:
        raise NoTenantError()
    return TenantContext(school_id=school_id, user_id=user.id, role=user.role)
