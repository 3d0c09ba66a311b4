from classboom.core.security import create_access_token
from classboom.models.user import User


def test_missing_token_is_rejected(client):
    response = client.get("/api/resources/")
    assert response.status_code == 401
    assert response.json()["message"] == "Not authenticated"


def test_invalid_token_is_rejected(client):
    response = client.get("/api/resources/", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 401


def test_unknown_user_is_rejected(client):
    token = create_access_token("no-such-user")
    response = client.get("/api/staff/", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


def test_inactive_user_is_rejected(client, db_session, tenant, auth_headers):
    user = db_session.get(User, tenant.user_id)
    user.is_active = False
    db_session.commit()

    response = client.get("/api/resources/", headers=auth_headers)
    assert response.status_code == 401


def test_user_without_school_has_no_tenant(client, db_session):
    user = User(name="Drifter", email="drifter@example.com")
    db_session.add(user)
    db_session.commit()

    token = create_access_token(user.id)
    response = client.get("/api/bookings/", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 403
    assert response.json()["message"] == "No school found for user"
