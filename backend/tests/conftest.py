import os

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from classboom.api.deps import get_db  # noqa: E402
from classboom.core.security import create_access_token  # noqa: E402
from classboom.db.base import Base  # noqa: E402
from classboom.main import app  # noqa: E402
from classboom.models.school import School  # noqa: E402
from classboom.models.user import User, UserRole  # noqa: E402
from classboom.services.locks import clear_resource_locks  # noqa: E402
from classboom.services.tenant import TenantContext  # noqa: E402


@pytest.fixture()
def session_factory():
    # One shared in-memory connection so the API and the test see the same data.
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def db_session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def client(session_factory):
    clear_resource_locks()

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
    clear_resource_locks()


def make_school_owner(db, *, email: str, school_name: str, role: UserRole = UserRole.owner) -> TenantContext:
    user = User(name=f"{school_name} Owner", email=email, role=role)
    db.add(user)
    db.flush()
    school = School(name=school_name, owner_id=user.id)
    db.add(school)
    db.commit()
    return TenantContext(school_id=school.id, user_id=user.id, role=role)


def headers_for(tenant: TenantContext) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(tenant.user_id)}"}


@pytest.fixture()
def tenant(db_session) -> TenantContext:
    return make_school_owner(db_session, email="owner@northside.example", school_name="Northside Academy")


@pytest.fixture()
def other_tenant(db_session) -> TenantContext:
    return make_school_owner(db_session, email="owner@riverside.example", school_name="Riverside School")


@pytest.fixture()
def auth_headers(tenant) -> dict[str, str]:
    return headers_for(tenant)


@pytest.fixture()
def school_owner(db_session):
    def factory(email: str, school_name: str, role: UserRole = UserRole.owner) -> TenantContext:
        return make_school_owner(db_session, email=email, school_name=school_name, role=role)

    return factory


@pytest.fixture()
def bearer():
    return headers_for
