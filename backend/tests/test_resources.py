from datetime import datetime, timedelta

from sqlalchemy import func, select

from classboom.models.booking import BookingStatus, ResourceBooking
from classboom.models.user import UserRole


def _at(days: int, hour: int, minute: int = 0) -> datetime:
    base = datetime.now().replace(hour=0, minute=0, second=0, microsecond=0) + timedelta(days=days)
    return base.replace(hour=hour, minute=minute)


def _create(client, headers, **overrides):
    payload = {"name": "Room 101", "resource_type": "physical_room"}
    payload.update(overrides)
    response = client.post("/api/resources/", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def test_create_resource_applies_defaults(client, auth_headers, tenant):
    resource = _create(client, auth_headers, name="  Science Lab  ")

    assert resource["name"] == "Science Lab"
    assert resource["school_id"] == tenant.school_id
    assert resource["capacity"] == 1
    assert resource["min_booking_duration"] == 30
    assert resource["max_booking_duration"] == 480
    assert resource["buffer_time_before"] == 0
    assert resource["buffer_time_after"] == 15
    assert resource["advance_booking_days"] == 90
    assert resource["is_active"] is True
    assert resource["features"] == {}


def test_create_resource_requires_name_and_type(client, auth_headers):
    missing_name = client.post("/api/resources/", json={"resource_type": "equipment"}, headers=auth_headers)
    assert missing_name.status_code == 422

    blank_name = client.post(
        "/api/resources/", json={"name": "   ", "resource_type": "equipment"}, headers=auth_headers
    )
    assert blank_name.status_code == 422

    missing_type = client.post("/api/resources/", json={"name": "Projector"}, headers=auth_headers)
    assert missing_type.status_code == 422


def test_create_resource_rejects_unknown_features_and_bad_durations(client, auth_headers):
    response = client.post(
        "/api/resources/",
        json={"name": "Piano", "resource_type": "instrument", "features": {"projector": True}},
        headers=auth_headers,
    )
    assert response.status_code == 422

    response = client.post(
        "/api/resources/",
        json={
            "name": "Gym",
            "resource_type": "sports_facility",
            "min_booking_duration": 120,
            "max_booking_duration": 60,
        },
        headers=auth_headers,
    )
    assert response.status_code == 422


def test_update_resource_normalizes_blank_fields(client, auth_headers):
    resource = _create(client, auth_headers, building="Main", description="Corner room")

    response = client.put(
        f"/api/resources/{resource['id']}",
        json={"building": "", "description": "   ", "capacity": 24},
        headers=auth_headers,
    )

    assert response.status_code == 200
    updated = response.json()
    assert updated["building"] is None
    assert updated["description"] is None
    assert updated["capacity"] == 24
    assert updated["name"] == "Room 101"


def test_update_resource_validates_merged_rules(client, auth_headers):
    resource = _create(client, auth_headers, max_booking_duration=120)

    too_long_minimum = client.put(
        f"/api/resources/{resource['id']}", json={"min_booking_duration": 240}, headers=auth_headers
    )
    assert too_long_minimum.status_code == 422

    cleared_name = client.put(f"/api/resources/{resource['id']}", json={"name": None}, headers=auth_headers)
    assert cleared_name.status_code == 422

    wrong_feature = client.put(
        f"/api/resources/{resource['id']}", json={"features": {"gps": True}}, headers=auth_headers
    )
    assert wrong_feature.status_code == 422
    assert "gps" in wrong_feature.json()["message"]


def test_list_resources_filters_and_ordering(client, auth_headers):
    _create(client, auth_headers, name="Zeta Room", capacity=30, building="North", features={"projector": True})
    _create(client, auth_headers, name="Alpha Room", capacity=10, building="South")
    _create(client, auth_headers, name="Bus 1", resource_type="vehicle", capacity=40, code="BUS-1")
    _create(client, auth_headers, name="Old Room", is_active=False)

    names = [item["name"] for item in client.get("/api/resources/", headers=auth_headers).json()]
    assert names == ["Alpha Room", "Old Room", "Zeta Room", "Bus 1"]

    rooms = client.get(
        "/api/resources/",
        params={"resource_type": "physical_room", "is_active": True, "capacity_min": 20},
        headers=auth_headers,
    ).json()
    assert [item["name"] for item in rooms] == ["Zeta Room"]

    with_projector = client.get("/api/resources/", params={"features": ["projector"]}, headers=auth_headers).json()
    assert [item["name"] for item in with_projector] == ["Zeta Room"]

    searched = client.get("/api/resources/", params={"search": "bus-"}, headers=auth_headers).json()
    assert [item["name"] for item in searched] == ["Bus 1"]

    by_code = client.get("/api/resources/by-code/BUS-1", headers=auth_headers)
    assert by_code.status_code == 200
    assert by_code.json()["name"] == "Bus 1"


def test_resources_are_scoped_to_the_callers_school(client, auth_headers, other_tenant, bearer):
    resource = _create(client, auth_headers)
    other_headers = bearer(other_tenant)

    assert client.get("/api/resources/", headers=other_headers).json() == []

    response = client.get(f"/api/resources/{resource['id']}", headers=other_headers)
    assert response.status_code == 404
    assert response.json()["details"] == {"entity": "Resource", "id": resource["id"]}

    assert client.delete(f"/api/resources/{resource['id']}", headers=other_headers).status_code == 404


def test_delete_resource_blocked_by_future_confirmed_booking(client, auth_headers):
    resource = _create(client, auth_headers)
    booking = client.post(
        "/api/bookings/",
        json={
            "resource_id": resource["id"],
            "start_datetime": _at(3, 9).isoformat(),
            "end_datetime": _at(3, 10).isoformat(),
        },
        headers=auth_headers,
    ).json()

    blocked = client.delete(f"/api/resources/{resource['id']}", headers=auth_headers)
    assert blocked.status_code == 409
    body = blocked.json()
    assert body["message"] == "Cannot delete resource with future bookings"
    assert body["details"]["booking_count"] == 1

    client.post(f"/api/bookings/{booking['id']}/cancel", json={"reason": "Room closed"}, headers=auth_headers)

    deleted = client.delete(f"/api/resources/{resource['id']}", headers=auth_headers)
    assert deleted.status_code == 200
    assert deleted.json() == {"success": True}
    assert client.get(f"/api/resources/{resource['id']}", headers=auth_headers).status_code == 404


def test_delete_resource_with_only_past_bookings_removes_its_history(client, auth_headers, db_session):
    resource = _create(client, auth_headers)
    db_session.add_all(
        [
            ResourceBooking(
                resource_id=resource["id"],
                start_datetime=_at(-2, 9),
                end_datetime=_at(-2, 10),
                status=BookingStatus.confirmed,
            ),
            ResourceBooking(
                resource_id=resource["id"],
                start_datetime=_at(-9, 14),
                end_datetime=_at(-9, 15),
                status=BookingStatus.completed,
            ),
        ]
    )
    db_session.commit()

    deleted = client.delete(f"/api/resources/{resource['id']}", headers=auth_headers)

    assert deleted.status_code == 200
    remaining = db_session.execute(
        select(func.count(ResourceBooking.id)).where(ResourceBooking.resource_id == resource["id"])
    ).scalar_one()
    assert remaining == 0


def test_operating_hours_must_be_in_order(client, auth_headers):
    reversed_hours = client.post(
        "/api/resources/",
        json={
            "name": "Gym",
            "resource_type": "sports_facility",
            "available_from": "18:00",
            "available_until": "08:00",
        },
        headers=auth_headers,
    )
    assert reversed_hours.status_code == 422

    gym = _create(
        client, auth_headers, name="Gym", resource_type="sports_facility", available_from="08:00", available_until="18:00"
    )
    closing_too_early = client.put(
        f"/api/resources/{gym['id']}", json={"available_until": "07:30"}, headers=auth_headers
    )
    assert closing_too_early.status_code == 422
    assert closing_too_early.json()["message"] == "available_until must be after available_from"

    open_ended = client.put(f"/api/resources/{gym['id']}", json={"available_until": None}, headers=auth_headers)
    assert open_ended.status_code == 200
    assert open_ended.json()["available_until"] is None


def test_resource_stats(client, auth_headers):
    room = _create(client, auth_headers, capacity=20)
    _create(client, auth_headers, name="Laptop cart", resource_type="equipment", capacity=5, is_active=False)
    client.post(
        "/api/bookings/",
        json={
            "resource_id": room["id"],
            "start_datetime": _at(2, 9).isoformat(),
            "end_datetime": _at(2, 10).isoformat(),
        },
        headers=auth_headers,
    )

    stats = client.get("/api/resources/stats", headers=auth_headers).json()

    assert stats == {
        "total_resources": 2,
        "by_type": {"physical_room": 1, "equipment": 1},
        "active_resources": 1,
        "total_capacity": 25,
        "upcoming_bookings": 1,
    }


def test_availability_now_and_alternatives(client, auth_headers):
    busy = _create(client, auth_headers, name="Busy Room", capacity=20)
    free = _create(client, auth_headers, name="Free Room", capacity=25)
    _create(client, auth_headers, name="Small Room", capacity=5)

    now = datetime.now().replace(second=0, microsecond=0)
    client.post(
        "/api/bookings/",
        json={
            "resource_id": busy["id"],
            "start_datetime": (now - timedelta(minutes=30)).isoformat(),
            "end_datetime": (now + timedelta(minutes=60)).isoformat(),
        },
        headers=auth_headers,
    )

    rows = {item["name"]: item for item in client.get("/api/resources/availability-now", headers=auth_headers).json()}
    assert rows["Busy Room"]["is_available_now"] is False
    assert rows["Busy Room"]["current_booking_id"] is not None
    assert rows["Free Room"]["is_available_now"] is True
    assert rows["Free Room"]["next_available"] is None

    alternatives = client.get(
        f"/api/resources/{busy['id']}/alternatives",
        params={"start_datetime": now.isoformat(), "end_datetime": (now + timedelta(minutes=30)).isoformat()},
        headers=auth_headers,
    ).json()
    assert [item["id"] for item in alternatives] == [free["id"]]


def test_resource_sets_keep_member_order(client, auth_headers):
    first = _create(client, auth_headers, name="Room A")
    second = _create(client, auth_headers, name="Projector", resource_type="equipment")

    created = client.post(
        "/api/resource-sets/",
        json={"name": "Presentation kit", "resource_ids": [second["id"], first["id"]]},
        headers=auth_headers,
    )
    assert created.status_code == 201
    assert [item["id"] for item in created.json()["resources"]] == [second["id"], first["id"]]

    unknown = client.post(
        "/api/resource-sets/", json={"name": "Broken", "resource_ids": ["missing-id"]}, headers=auth_headers
    )
    assert unknown.status_code == 404

    listed = client.get("/api/resource-sets/", headers=auth_headers).json()
    assert [item["name"] for item in listed] == ["Presentation kit"]


def test_staff_role_can_read_but_not_write(client, school_owner, bearer):
    reader = school_owner("viewer@example.com", "Viewer School", role=UserRole.staff)
    headers = bearer(reader)

    assert client.get("/api/resources/", headers=headers).status_code == 200
    denied = client.post("/api/resources/", json={"name": "Room", "resource_type": "physical_room"}, headers=headers)
    assert denied.status_code == 403
    assert denied.json()["message"] == "Insufficient permissions"
