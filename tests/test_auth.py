from fastapi.testclient import TestClient

from app.services.security_utils import (
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)


def test_register_login_and_me_flow(client: TestClient) -> None:
    register_response = client.post(
        "/api/auth/register",
        json={
            "full_name": "Test User",
            "email": "test@example.com",
            "password": "password123",
        },
    )

    assert register_response.status_code == 200
    register_payload = register_response.json()
    assert register_payload["access_token"]
    assert register_payload["token_type"] == "bearer"
    assert register_payload["user"]["email"] == "test@example.com"

    login_response = client.post(
        "/api/auth/login",
        json={"email": "TEST@example.com", "password": "password123"},
    )
    assert login_response.status_code == 200
    token = login_response.json()["access_token"]

    me_response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me_response.status_code == 200
    me_payload = me_response.json()
    assert me_payload["email"] == "test@example.com"
    assert me_payload["role"] == "user"


def test_register_rejects_duplicate_email(client: TestClient) -> None:
    payload = {"full_name": "Test User", "email": "dup@example.com", "password": "password123"}
    assert client.post("/api/auth/register", json=payload).status_code == 200

    response = client.post("/api/auth/register", json=payload)
    assert response.status_code == 409


def test_login_fails_with_invalid_credentials(client: TestClient) -> None:
    response = client.post(
        "/api/auth/login",
        json={"email": "admin", "password": "wrong-password"},
    )
    assert response.status_code == 401


def test_me_requires_authentication(client: TestClient) -> None:
    response = client.get("/api/auth/me")
    assert response.status_code == 401


def test_me_rejects_tampered_token(client: TestClient, admin_headers: dict[str, str]) -> None:
    token = admin_headers["Authorization"].removeprefix("Bearer ")
    tampered = f"{token[:-2]}xx"

    response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {tampered}"})
    assert response.status_code == 401


def test_refresh_issues_new_token_for_current_user(
    client: TestClient,
    admin_headers: dict[str, str],
) -> None:
    response = client.post("/api/v1/auth/refresh", headers=admin_headers)

    assert response.status_code == 200
    payload = response.json()
    assert payload["user"]["role"] == "admin"
    me_response = client.get(
        "/api/auth/me",
        headers={"Authorization": f"Bearer {payload['access_token']}"},
    )
    assert me_response.status_code == 200


def test_password_hash_round_trip() -> None:
    stored_hash = hash_password("s3cret")

    assert stored_hash.startswith("pbkdf2_sha256$")
    assert verify_password("s3cret", stored_hash)
    assert not verify_password("other", stored_hash)
    assert not verify_password("s3cret", "not-a-hash")


def test_expired_token_is_rejected() -> None:
    token, expires_in_seconds = create_access_token(
        subject="1",
        claims={"role": "user"},
        secret_key="secret",
        ttl_minutes=-1,
    )

    assert expires_in_seconds == 0
    assert decode_access_token(token, "secret") is None


def test_token_signed_with_other_key_is_rejected() -> None:
    token, _ = create_access_token(subject="1", claims={}, secret_key="secret", ttl_minutes=5)

    assert decode_access_token(token, "secret")["sub"] == "1"
    assert decode_access_token(token, "another-secret") is None
