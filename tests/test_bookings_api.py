from collections.abc import Callable
from datetime import UTC, date, datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from app.core.config import get_settings

RegisterUser = Callable[[str], tuple[str, dict[str, str]]]


def _upcoming_monday() -> date:
    candidate = datetime.now(UTC).date() + timedelta(days=7)
    return candidate + timedelta(days=(7 - candidate.weekday()) % 7)


def _at(day: date, hour: int, minute: int = 0) -> str:
    return datetime(day.year, day.month, day.day, hour, minute, tzinfo=UTC).isoformat()


@pytest.fixture
def catalog(client: TestClient, admin_headers: dict[str, str]) -> dict[str, str]:
    service = client.post(
        "/api/services",
        json={"name": "Physiotherapy", "duration_minutes": 60},
        headers=admin_headers,
    ).json()
    provider = client.post(
        "/api/providers",
        json={"name": "Sofie", "service_id": service["id"], "timezone": "UTC"},
        headers=admin_headers,
    ).json()
    window = client.post(
        "/api/provider-working-hours",
        json={"provider_id": provider["id"], "day_of_week": 1, "start_time": "09:00", "end_time": "12:00"},
        headers=admin_headers,
    )
    assert window.status_code == 201
    return {"service_id": service["id"], "provider_id": provider["id"]}


def _slot_params(**overrides: object) -> dict[str, object]:
    return {"daysAhead": 21, "slotMinutes": 60, "perPage": 100, **overrides}


def test_available_slots_shape_and_booking_removal(
    client: TestClient,
    catalog: dict[str, str],
    register_user: RegisterUser,
) -> None:
    monday = _upcoming_monday()
    _, headers = register_user("patient@example.com")
    url = f"/api/bookings/{catalog['provider_id']}/available-slots"

    before = client.get(url, params=_slot_params())
    assert before.status_code == 200
    monday_slots = [slot for slot in before.json()["data"] if slot["date"] == monday.isoformat()]
    assert monday_slots == [
        {"date": monday.isoformat(), "start": "09:00", "end": "10:00"},
        {"date": monday.isoformat(), "start": "10:00", "end": "11:00"},
        {"date": monday.isoformat(), "start": "11:00", "end": "12:00"},
    ]

    booking = client.post(
        "/api/bookings",
        json={
            "provider_id": catalog["provider_id"],
            "service_id": catalog["service_id"],
            "start_at": _at(monday, 10),
            "end_at": _at(monday, 11),
        },
        headers=headers,
    )
    assert booking.status_code == 201

    after = client.get(url, params=_slot_params())
    assert [slot["start"] for slot in after.json()["data"] if slot["date"] == monday.isoformat()] == [
        "09:00",
        "11:00",
    ]
    assert after.json()["total"] == before.json()["total"] - 1


def test_available_slots_pagination_and_query_bounds(client: TestClient, catalog: dict[str, str]) -> None:
    url = f"/api/v1/bookings/{catalog['provider_id']}/available-slots"

    response = client.get(url, params=_slot_params(perPage=2, page=2))
    assert response.status_code == 200
    payload = response.json()
    assert len(payload["data"]) == 2
    assert payload["pagination"]["perPage"] == 2
    assert payload["pagination"]["currentPage"] == 2
    assert payload["pagination"]["lastPage"] == -(-payload["total"] // 2)

    assert client.get(url, params={"daysAhead": 0}).status_code == 422
    assert client.get(url, params={"slotMinutes": 481}).status_code == 422
    assert client.get(url, params={"perPage": 101}).status_code == 422
    assert client.get("/api/bookings/missing/available-slots").status_code == 404


def test_available_slots_use_service_duration(client: TestClient, catalog: dict[str, str]) -> None:
    url = f"/api/bookings/{catalog['provider_id']}/available-slots"

    response = client.get(url, params=_slot_params(slotMinutes=15, service_id=catalog["service_id"]))

    assert response.status_code == 200
    assert {slot["start"] for slot in response.json()["data"]} == {"09:00", "10:00", "11:00"}
    assert client.get(url, params={"service_id": "missing"}).status_code == 404


def test_double_booking_is_rejected_over_http(
    client: TestClient,
    catalog: dict[str, str],
    register_user: RegisterUser,
) -> None:
    monday = _upcoming_monday()
    _, first_headers = register_user("first@example.com")
    _, second_headers = register_user("second@example.com")
    payload = {
        "provider_id": catalog["provider_id"],
        "service_id": catalog["service_id"],
        "start_at": _at(monday, 10),
        "end_at": _at(monday, 11),
    }

    assert client.post("/api/bookings", json=payload, headers=first_headers).status_code == 201
    conflict = client.post("/api/bookings", json=payload, headers=second_headers)

    assert conflict.status_code == 409
    assert conflict.json() == {"detail": "This time slot is already booked."}

    adjacent = client.post(
        "/api/bookings",
        json={**payload, "start_at": _at(monday, 11), "end_at": _at(monday, 12)},
        headers=second_headers,
    )
    assert adjacent.status_code == 201


def test_booking_lifecycle_for_owner(
    client: TestClient,
    catalog: dict[str, str],
    admin_headers: dict[str, str],
    register_user: RegisterUser,
) -> None:
    monday = _upcoming_monday()
    user_id, headers = register_user("lifecycle@example.com")
    _, stranger_headers = register_user("stranger@example.com")
    created = client.post(
        "/api/bookings",
        json={
            "provider_id": catalog["provider_id"],
            "service_id": catalog["service_id"],
            "start_at": _at(monday, 9),
            "end_at": _at(monday, 10),
        },
        headers=headers,
    ).json()

    assert client.get(f"/api/bookings/{created['id']}", headers=stranger_headers).status_code == 403
    assert client.get("/api/bookings", headers=stranger_headers).json()["data"] == []
    assert client.get(f"/api/bookings/users/{user_id}", headers=headers).json()["pagination"]["total"] == 1
    assert client.get(f"/api/bookings/users/{user_id}", headers=stranger_headers).status_code == 403

    moved = client.put(
        f"/api/bookings/{created['id']}",
        json={
            "provider_id": catalog["provider_id"],
            "service_id": catalog["service_id"],
            "start_at": _at(monday, 9, 30),
            "end_at": _at(monday, 10, 30),
        },
        headers=headers,
    )
    assert moved.status_code == 200
    assert moved.json()["user_id"] == user_id

    cancelled = client.delete(f"/api/bookings/{created['id']}", headers=headers)
    assert cancelled.status_code == 200
    assert cancelled.json()["status"] == "cancelled"
    assert cancelled.json()["cancelled_at"] is not None

    all_bookings = client.get("/api/bookings", headers=admin_headers).json()
    assert [item["id"] for item in all_bookings["data"]] == [created["id"]]


def test_bookings_require_authentication(client: TestClient, catalog: dict[str, str]) -> None:
    assert client.get("/api/bookings").status_code == 401
    assert client.post("/api/bookings", json={}).status_code == 401


def test_past_bookings_are_rejected(
    client: TestClient,
    catalog: dict[str, str],
    register_user: RegisterUser,
) -> None:
    _, headers = register_user("late@example.com")
    yesterday = datetime.now(UTC) - timedelta(days=1)

    response = client.post(
        "/api/bookings",
        json={
            "provider_id": catalog["provider_id"],
            "service_id": catalog["service_id"],
            "start_at": yesterday.isoformat(),
            "end_at": (yesterday + timedelta(hours=1)).isoformat(),
        },
        headers=headers,
    )

    assert response.status_code == 422
    assert response.json()["detail"] == "start_at must be in the future."


def test_provider_with_bookings_cannot_be_deleted(
    client: TestClient,
    catalog: dict[str, str],
    admin_headers: dict[str, str],
) -> None:
    monday = _upcoming_monday()
    client.post(
        "/api/bookings",
        json={
            "provider_id": catalog["provider_id"],
            "service_id": catalog["service_id"],
            "start_at": _at(monday, 9),
            "end_at": _at(monday, 10),
        },
        headers=admin_headers,
    )

    provider_response = client.delete(f"/api/providers/{catalog['provider_id']}", headers=admin_headers)
    service_response = client.delete(f"/api/services/{catalog['service_id']}", headers=admin_headers)

    assert provider_response.status_code == 400
    assert provider_response.json()["detail"] == "Cannot delete provider with existing bookings"
    assert service_response.status_code == 400
    assert service_response.json()["detail"] == "Cannot delete service with existing bookings"


def test_available_slots_fall_back_to_configured_defaults(
    client: TestClient,
    catalog: dict[str, str],
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("SLOTS_PER_PAGE", "2")
    monkeypatch.setenv("AVAILABILITY_SLOT_MINUTES", "60")
    monkeypatch.setenv("AVAILABILITY_DAYS_AHEAD", "14")
    get_settings.cache_clear()
    url = f"/api/bookings/{catalog['provider_id']}/available-slots"

    response = client.get(url)

    assert response.status_code == 200
    payload = response.json()
    assert payload["pagination"]["perPage"] == 2
    assert 0 < len(payload["data"]) <= 2
    latest_day = datetime.now(UTC).date() + timedelta(days=15)
    for slot in payload["data"]:
        assert date.fromisoformat(slot["date"]) <= latest_day
        start_hour, start_minute = map(int, slot["start"].split(":"))
        end_hour, end_minute = map(int, slot["end"].split(":"))
        assert (end_hour * 60 + end_minute) - (start_hour * 60 + start_minute) == 60

    overridden = client.get(url, params={"perPage": 1, "slotMinutes": 30})
    assert overridden.json()["pagination"]["perPage"] == 1
    assert overridden.json()["data"][0]["start"] in {"09:00", "09:30", "10:00", "10:30", "11:00", "11:30"}
