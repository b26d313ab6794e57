from collections.abc import Callable

from fastapi.testclient import TestClient

RegisterUser = Callable[[str], tuple[str, dict[str, str]]]


def _create_service(client: TestClient, headers: dict[str, str], name: str = "Haircut") -> dict:
    response = client.post(
        "/api/services",
        json={"name": name, "duration_minutes": 30, "description": "Short and sweet"},
        headers=headers,
    )
    assert response.status_code == 201
    return response.json()


def _create_provider(client: TestClient, headers: dict[str, str], service_id: str, timezone: str = "UTC") -> dict:
    response = client.post(
        "/api/providers",
        json={"name": "Jonas", "service_id": service_id, "timezone": timezone},
        headers=headers,
    )
    assert response.status_code == 201
    return response.json()


def test_services_crud_flow(client: TestClient, admin_headers: dict[str, str]) -> None:
    created = _create_service(client, admin_headers)
    assert created["duration_minutes"] == 30

    list_response = client.get("/api/services")
    assert list_response.status_code == 200
    assert list_response.json()["pagination"] == {"total": 1, "perPage": 10, "currentPage": 1, "lastPage": 1}

    update_response = client.put(
        f"/api/v1/services/{created['id']}",
        json={"name": "Beard trim", "duration_minutes": 15},
        headers=admin_headers,
    )
    assert update_response.status_code == 200
    assert update_response.json()["name"] == "Beard trim"
    assert update_response.json()["description"] is None

    delete_response = client.delete(f"/api/services/{created['id']}", headers=admin_headers)
    assert delete_response.status_code == 204
    assert client.get(f"/api/services/{created['id']}").status_code == 404


def test_service_writes_require_authentication_and_positive_duration(
    client: TestClient,
    admin_headers: dict[str, str],
) -> None:
    payload = {"name": "Haircut", "duration_minutes": 0}

    assert client.post("/api/services", json=payload).status_code == 401
    response = client.post("/api/services", json=payload, headers=admin_headers)
    assert response.status_code == 422


def test_services_are_listed_per_owner(
    client: TestClient,
    admin_headers: dict[str, str],
    register_user: RegisterUser,
) -> None:
    user_id, user_headers = register_user("owner@example.com")
    _create_service(client, user_headers, name="Yoga")
    _create_service(client, admin_headers, name="Pilates")

    response = client.get(f"/api/services/users/{user_id}")

    assert response.status_code == 200
    assert [service["name"] for service in response.json()["data"]] == ["Yoga"]


def test_service_owned_by_someone_else_cannot_be_changed(
    client: TestClient,
    admin_headers: dict[str, str],
    register_user: RegisterUser,
) -> None:
    service = _create_service(client, admin_headers)
    _, user_headers = register_user("intruder@example.com")

    response = client.delete(f"/api/services/{service['id']}", headers=user_headers)

    assert response.status_code == 403


def test_provider_writes_are_admin_only(
    client: TestClient,
    admin_headers: dict[str, str],
    register_user: RegisterUser,
) -> None:
    service = _create_service(client, admin_headers)
    _, user_headers = register_user("customer@example.com")

    response = client.post(
        "/api/providers",
        json={"name": "Jonas", "service_id": service["id"]},
        headers=user_headers,
    )

    assert response.status_code == 403
    assert response.json()["detail"] == "Unauthorized"


def test_provider_rejects_unknown_timezone(client: TestClient, admin_headers: dict[str, str]) -> None:
    service = _create_service(client, admin_headers)

    response = client.post(
        "/api/providers",
        json={"name": "Jonas", "service_id": service["id"], "timezone": "Nowhere/Land"},
        headers=admin_headers,
    )

    assert response.status_code == 422


def test_provider_details_include_working_hours(client: TestClient, admin_headers: dict[str, str]) -> None:
    service = _create_service(client, admin_headers)
    provider = _create_provider(client, admin_headers, service["id"], timezone="Europe/Copenhagen")
    assert provider["timezone"] == "Europe/Copenhagen"

    window_response = client.post(
        "/api/provider-working-hours",
        json={"provider_id": provider["id"], "day_of_week": 1, "start_time": "09:00", "end_time": "12:30"},
        headers=admin_headers,
    )
    assert window_response.status_code == 201

    detail = client.get(f"/api/providers/{provider['id']}").json()
    assert detail["working_hours"] == [
        {
            "id": window_response.json()["id"],
            "provider_id": provider["id"],
            "day_of_week": 1,
            "start_time": "09:00",
            "end_time": "12:30",
        },
    ]

    by_service = client.get(f"/api/providers/services/{service['id']}").json()
    assert [item["id"] for item in by_service["data"]] == [provider["id"]]


def test_working_hours_validation(client: TestClient, admin_headers: dict[str, str]) -> None:
    service = _create_service(client, admin_headers)
    provider = _create_provider(client, admin_headers, service["id"])
    base = {"provider_id": provider["id"], "day_of_week": 2}

    bad_day = client.post(
        "/api/provider-working-hours",
        json={**base, "day_of_week": 7, "start_time": "09:00", "end_time": "10:00"},
        headers=admin_headers,
    )
    bad_format = client.post(
        "/api/provider-working-hours",
        json={**base, "start_time": "9am", "end_time": "10:00"},
        headers=admin_headers,
    )
    reversed_window = client.post(
        "/api/provider-working-hours",
        json={**base, "start_time": "10:00", "end_time": "09:00"},
        headers=admin_headers,
    )

    assert bad_day.status_code == 422
    assert bad_format.status_code == 422
    assert reversed_window.status_code == 422


def test_overlapping_working_hours_are_rejected(client: TestClient, admin_headers: dict[str, str]) -> None:
    service = _create_service(client, admin_headers)
    provider = _create_provider(client, admin_headers, service["id"])
    base = {"provider_id": provider["id"], "day_of_week": 3}

    first = client.post(
        "/api/provider-working-hours",
        json={**base, "start_time": "09:00", "end_time": "12:00"},
        headers=admin_headers,
    )
    overlapping = client.post(
        "/api/provider-working-hours",
        json={**base, "start_time": "11:00", "end_time": "13:00"},
        headers=admin_headers,
    )
    adjacent = client.post(
        "/api/provider-working-hours",
        json={**base, "start_time": "12:00", "end_time": "13:00"},
        headers=admin_headers,
    )
    moved = client.put(
        f"/api/provider-working-hours/{first.json()['id']}",
        json={**base, "start_time": "08:00", "end_time": "11:00"},
        headers=admin_headers,
    )

    assert first.status_code == 201
    assert overlapping.status_code == 409
    assert adjacent.status_code == 201
    assert moved.status_code == 200
    assert moved.json()["start_time"] == "08:00"


def test_deleting_provider_removes_its_working_hours(client: TestClient, admin_headers: dict[str, str]) -> None:
    service = _create_service(client, admin_headers)
    provider = _create_provider(client, admin_headers, service["id"])
    client.post(
        "/api/provider-working-hours",
        json={"provider_id": provider["id"], "day_of_week": 1, "start_time": "09:00", "end_time": "10:00"},
        headers=admin_headers,
    )

    response = client.delete(f"/api/providers/{provider['id']}", headers=admin_headers)

    assert response.status_code == 204
    listing = client.get("/api/provider-working-hours", params={"provider_id": provider["id"]}).json()
    assert listing["data"] == []


def test_users_endpoints_enforce_roles(
    client: TestClient,
    admin_headers: dict[str, str],
    register_user: RegisterUser,
) -> None:
    user_id, user_headers = register_user("member@example.com")
    other_id, _ = register_user("other@example.com")

    assert client.get("/api/users", headers=user_headers).status_code == 403
    assert client.get("/api/users", headers=admin_headers).json()["pagination"]["total"] == 3
    assert client.get(f"/api/users/{other_id}", headers=user_headers).status_code == 403

    renamed = client.patch(f"/api/users/{user_id}", json={"full_name": "New Name"}, headers=user_headers)
    assert renamed.status_code == 200
    assert renamed.json()["full_name"] == "New Name"

    promote = client.patch(f"/api/users/{user_id}", json={"role": "admin"}, headers=user_headers)
    assert promote.status_code == 403

    assert client.delete(f"/api/users/{other_id}", headers=admin_headers).status_code == 204
    assert client.get(f"/api/users/{other_id}", headers=admin_headers).status_code == 404
