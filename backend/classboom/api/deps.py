from collections.abc import Generator

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.orm import Session

from classboom.core.exceptions import NotAuthenticatedError, PermissionDeniedError
from classboom.core.security import decode_token
from classboom.db.session import SessionLocal
from classboom.services.tenant import TenantContext, resolve_tenant

security = HTTPBearer(auto_error=False)


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_tenant_context(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: Session = Depends(get_db),
) -> TenantContext:
    if credentials is None:
        raise NotAuthenticatedError()
    try:
        payload = decode_token(credentials.credentials)
    except JWTError as exc:
        raise NotAuthenticatedError("Could not validate credentials") from exc
    return resolve_tenant(db, payload.get("sub"))


def require_manager(tenant: TenantContext = Depends(get_tenant_context)) -> TenantContext:
    if not tenant.can_manage:
        raise PermissionDeniedError()
    return tenant
