from collections.abc import Callable, Iterator

import pytest
from fastapi.testclient import TestClient

from app.core.config import get_settings
from app.main import app
from app.services.booking_store import clear_booking_store_cache
from app.services.provider_store import clear_provider_store_cache
from app.services.service_catalog_store import clear_service_catalog_store_cache
from app.services.user_store import clear_user_store_cache
from app.services.working_hour_store import clear_working_hour_store_cache

RegisterUser = Callable[[str], tuple[str, dict[str, str]]]


def _clear_caches() -> None:
    clear_user_store_cache()
    clear_service_catalog_store_cache()
    clear_provider_store_cache()
    clear_working_hour_store_cache()
    clear_booking_store_cache()
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def reset_stores(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    monkeypatch.setenv("DATA_STORE", "memory")

    _clear_caches()
    yield
    _clear_caches()


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


@pytest.fixture
def admin_headers(client: TestClient) -> dict[str, str]:
    response = client.post("/api/auth/login", json={"email": "admin", "password": "admin"})
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest.fixture
def register_user(client: TestClient) -> RegisterUser:
    def _register(email: str) -> tuple[str, dict[str, str]]:
        response = client.post(
            "/api/auth/register",
            json={"full_name": "Booking Customer", "email": email, "password": "password123"},
        )
        assert response.status_code == 200
        payload = response.json()
        return payload["user"]["id"], {"Authorization": f"Bearer {payload['access_token']}"}

    return _register
