from fastapi.testclient import TestClient


def test_health_endpoint_returns_expected_shape(client: TestClient) -> None:
    response = client.get("/api/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["service"] == "Booking Platform API"
    assert data["data_store"] == "memory"
    assert "version" in data
    assert "timestamp" in data


def test_health_endpoint_is_not_versioned(client: TestClient) -> None:
    assert client.get("/api/health").status_code == 200
    assert client.get("/api/v1/health").status_code == 404
