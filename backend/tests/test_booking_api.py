from datetime import date, datetime, time, timedelta


def _next_monday() -> date:
    today = date.today()
    return today + timedelta(days=7 - today.weekday())


def _iso(day: date, clock: str) -> str:
    return datetime.combine(day, time.fromisoformat(clock)).isoformat()


def _resource(client, headers, name, resource_type="physical_room", **fields):
    response = client.post(
        "/api/resources/", json={"name": name, "resource_type": resource_type, **fields}, headers=headers
    )
    assert response.status_code == 201, response.text
    return response.json()


def test_create_and_conflicting_booking(client, auth_headers, tenant):
    room = _resource(client, auth_headers, "Room 1")
    monday = _next_monday()
    payload = {
        "resource_id": room["id"],
        "start_datetime": _iso(monday, "09:00"),
        "end_datetime": _iso(monday, "10:00"),
        "booked_for": "Grade 5 Science",
    }

    created = client.post("/api/bookings/", json=payload, headers=auth_headers)
    assert created.status_code == 201
    booking = created.json()
    assert booking["status"] == "confirmed"
    assert booking["booked_by"] == tenant.user_id

    clash = client.post("/api/bookings/", json=payload, headers=auth_headers)
    assert clash.status_code == 409
    body = clash.json()
    assert body["message"] == "Resource is not available for the selected time"
    assert body["details"]["conflicts"][0]["conflicts"][0]["id"] == booking["id"]

    fetched = client.get(f"/api/bookings/{booking['id']}", headers=auth_headers)
    assert fetched.status_code == 200
    assert fetched.json()["booked_for"] == "Grade 5 Science"


def test_booking_payload_validation(client, auth_headers):
    room = _resource(client, auth_headers, "Room 1")
    monday = _next_monday()

    reversed_interval = client.post(
        "/api/bookings/",
        json={
            "resource_id": room["id"],
            "start_datetime": _iso(monday, "10:00"),
            "end_datetime": _iso(monday, "09:00"),
        },
        headers=auth_headers,
    )
    assert reversed_interval.status_code == 422

    too_short = client.post(
        "/api/bookings/",
        json={
            "resource_id": room["id"],
            "start_datetime": _iso(monday, "10:00"),
            "end_datetime": _iso(monday, "10:10"),
        },
        headers=auth_headers,
    )
    assert too_short.status_code == 422
    assert "minimum" in too_short.json()["message"]


def test_session_booking_endpoint(client, auth_headers):
    room = _resource(client, auth_headers, "Room 1")
    laptop = _resource(client, auth_headers, "Laptop cart", "equipment")
    monday = _next_monday()
    body = {
        "session_id": "session-42",
        "resource_ids": [room["id"], laptop["id"], room["id"]],
        "start_datetime": _iso(monday, "13:00"),
        "end_datetime": _iso(monday, "14:00"),
    }

    response = client.post("/api/bookings/session", json=body, headers=auth_headers)
    assert response.status_code == 201
    assert sorted(item["resource_id"] for item in response.json()) == sorted([room["id"], laptop["id"]])

    again = client.post("/api/bookings/session", json=body, headers=auth_headers)
    assert again.status_code == 409
    assert {item["resource_id"] for item in again.json()["details"]["conflicts"]} == {room["id"], laptop["id"]}

    listed = client.get("/api/bookings/", params={"session_id": "session-42"}, headers=auth_headers).json()
    assert len(listed) == 2


def test_check_conflicts_endpoint(client, auth_headers):
    room = _resource(client, auth_headers, "Room 1")
    other = _resource(client, auth_headers, "Room 2")
    monday = _next_monday()
    booking = client.post(
        "/api/bookings/",
        json={"resource_id": room["id"], "start_datetime": _iso(monday, "09:00"), "end_datetime": _iso(monday, "10:00")},
        headers=auth_headers,
    ).json()
    window = {"start_datetime": _iso(monday, "09:30"), "end_datetime": _iso(monday, "10:30")}

    conflicts = client.post(
        "/api/bookings/check-conflicts",
        json={"resource_ids": [room["id"], other["id"]], **window},
        headers=auth_headers,
    ).json()
    assert len(conflicts) == 1
    assert conflicts[0]["resource_name"] == "Room 1"
    assert conflicts[0]["conflict_type"] == "booking"
    assert conflicts[0]["conflicts"][0]["reason"] == "Overlaps existing booking"

    excluded = client.post(
        "/api/bookings/check-conflicts",
        json={"resource_ids": [room["id"]], "exclude_booking_ids": [booking["id"]], **window},
        headers=auth_headers,
    ).json()
    assert excluded == []

    single = client.get(f"/api/resources/{room['id']}/availability", params=window, headers=auth_headers).json()
    assert single["is_available"] is False
    assert single["conflicting_bookings"][0]["id"] == booking["id"]


def test_recurring_booking_and_group_cancel(client, auth_headers):
    room = _resource(client, auth_headers, "Music Room")
    monday = _next_monday()
    client.post(
        "/api/bookings/",
        json={
            "resource_id": room["id"],
            "start_datetime": _iso(monday + timedelta(days=7), "15:30"),
            "end_datetime": _iso(monday + timedelta(days=7), "16:30"),
        },
        headers=auth_headers,
    )

    response = client.post(
        "/api/bookings/recurring",
        json={
            "resource_id": room["id"],
            "pattern": {
                "start_date": monday.isoformat(),
                "end_date": (monday + timedelta(days=13)).isoformat(),
                "days_of_week": [1],
                "start_time": "15:00",
                "end_time": "16:00",
            },
        },
        headers=auth_headers,
    )
    assert response.status_code == 201
    result = response.json()
    assert result["requested_count"] == 2
    assert len(result["created"]) == 1
    assert result["skipped"] == [
        {"date": (monday + timedelta(days=7)).isoformat(), "reason": "Overlaps existing booking"}
    ]

    group_id = result["recurrence_group_id"]
    cancel = client.post(
        f"/api/bookings/recurring/{group_id}/cancel", json={"reason": "Term over"}, headers=auth_headers
    )
    assert cancel.json() == {"recurrence_group_id": group_id, "cancelled_count": 1}
    repeat = client.post(f"/api/bookings/recurring/{group_id}/cancel", headers=auth_headers)
    assert repeat.json()["cancelled_count"] == 0


def test_recurring_pattern_validation(client, auth_headers):
    room = _resource(client, auth_headers, "Room 1")
    monday = _next_monday()
    base = {
        "start_date": monday.isoformat(),
        "end_date": monday.isoformat(),
        "days_of_week": [1],
        "start_time": "09:00",
        "end_time": "10:00",
    }

    for override in ({"days_of_week": [0]}, {"start_time": "9am"}, {"end_time": "08:00"}, {"end_date": "2000-01-01"}):
        response = client.post(
            "/api/bookings/recurring",
            json={"resource_id": room["id"], "pattern": {**base, **override}},
            headers=auth_headers,
        )
        assert response.status_code == 422, override


def test_cancel_and_transfer_endpoints(client, auth_headers):
    room_a = _resource(client, auth_headers, "Room A")
    room_b = _resource(client, auth_headers, "Room B")
    monday = _next_monday()
    booking = client.post(
        "/api/bookings/",
        json={"resource_id": room_a["id"], "start_datetime": _iso(monday, "09:00"), "end_datetime": _iso(monday, "10:00")},
        headers=auth_headers,
    ).json()

    moved = client.post(
        f"/api/bookings/{booking['id']}/transfer",
        json={"new_resource_id": room_b["id"], "reason": "Heating broken"},
        headers=auth_headers,
    )
    assert moved.status_code == 200
    assert moved.json()["resource_id"] == room_b["id"]
    assert moved.json()["booking_notes"] == "Transferred from Room A. Reason: Heating broken"

    cancelled = client.post(f"/api/bookings/{booking['id']}/cancel", json={"reason": "Trip"}, headers=auth_headers)
    assert cancelled.status_code == 200
    assert cancelled.json()["status"] == "cancelled"
    assert cancelled.json()["cancellation_reason"] == "Trip"

    blocked = client.post(
        f"/api/bookings/{booking['id']}/transfer", json={"new_resource_id": room_a["id"]}, headers=auth_headers
    )
    assert blocked.status_code == 422

    missing = client.post("/api/bookings/unknown/cancel", headers=auth_headers)
    assert missing.status_code == 404


def test_smart_assignment_endpoint(client, auth_headers):
    room = _resource(client, auth_headers, "Studio", capacity=20)
    piano = _resource(client, auth_headers, "Piano", "instrument", capacity=15, features={"tuned": True})
    monday = _next_monday()

    response = client.post(
        "/api/bookings/smart-assignment",
        json={
            "capacity": 12,
            "course_category": "music",
            "start_datetime": _iso(monday, "10:00"),
            "end_datetime": _iso(monday, "11:00"),
            "features_required": {"instrument": ["tuned"]},
        },
        headers=auth_headers,
    )

    assert response.status_code == 200
    result = response.json()
    assert result["required_types"] == ["physical_room", "instrument"]
    assert [item["id"] for item in result["resources"]] == [room["id"], piano["id"]]
    assert result["missing_types"] == []
