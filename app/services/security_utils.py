from __future__ import annotations

import base64
import hashlib
import hmac
import json
import os
from datetime import UTC, datetime, timedelta
from typing import Any

PASSWORD_SCHEME = "pbkdf2_sha256"
PBKDF2_ALGORITHM = "sha256"
PBKDF2_ITERATIONS = 390_000
PBKDF2_SALT_BYTES = 16
ACCESS_TOKEN_TYPE = "access"


def hash_password(password: str) -> str:
    salt = os.urandom(PBKDF2_SALT_BYTES)
    digest = _derive_password_digest(password, salt, PBKDF2_ITERATIONS)
    return "$".join(
        (
            PASSWORD_SCHEME,
            str(PBKDF2_ITERATIONS),
            _b64url_encode(salt),
            _b64url_encode(digest),
        ),
    )


def verify_password(password: str, stored_hash: str) -> bool:
    parts = stored_hash.split("$", maxsplit=3)
    if len(parts) != 4 or parts[0] != PASSWORD_SCHEME:
        return False

    _, raw_iterations, raw_salt, raw_digest = parts
    try:
        iterations = int(raw_iterations)
        salt = _b64url_decode(raw_salt)
        expected_digest = _b64url_decode(raw_digest)
    except (ValueError, TypeError):
        return False

    actual_digest = _derive_password_digest(password, salt, iterations)
    return hmac.compare_digest(actual_digest, expected_digest)


def create_access_token(
    *,
    subject: str,
    claims: dict[str, Any],
    secret_key: str,
    ttl_minutes: int,
) -> tuple[str, int]:
    """Return a signed ``payload.signature`` token and its lifetime in seconds."""
    issued_at = datetime.now(UTC)
    expires_at = issued_at + timedelta(minutes=ttl_minutes)
    payload = {
        **claims,
        "sub": subject,
        "typ": ACCESS_TOKEN_TYPE,
        "iat": int(issued_at.timestamp()),
        "exp": int(expires_at.timestamp()),
    }
    payload_segment = _b64url_encode(
        json.dumps(payload, separators=(",", ":"), sort_keys=True).encode("utf-8"),
    )
    signature_segment = _b64url_encode(_sign(payload_segment, secret_key))
    expires_in_seconds = max(int((expires_at - issued_at).total_seconds()), 0)
    return f"{payload_segment}.{signature_segment}", expires_in_seconds


def decode_access_token(token: str, secret_key: str) -> dict[str, Any] | None:
    payload_segment, separator, signature_segment = token.partition(".")
    if not separator or not payload_segment or not signature_segment:
        return None

    try:
        provided_signature = _b64url_decode(signature_segment)
        payload = json.loads(_b64url_decode(payload_segment).decode("utf-8"))
    except (ValueError, UnicodeDecodeError):
        return None

    if not hmac.compare_digest(_sign(payload_segment, secret_key), provided_signature):
        return None
    if not isinstance(payload, dict) or payload.get("typ") != ACCESS_TOKEN_TYPE:
        return None

    raw_expiration = payload.get("exp")
    if not isinstance(raw_expiration, int):
        return None
    if raw_expiration < int(datetime.now(UTC).timestamp()):
        return None

    return payload


def _derive_password_digest(password: str, salt: bytes, iterations: int) -> bytes:
    return hashlib.pbkdf2_hmac(PBKDF2_ALGORITHM, password.encode("utf-8"), salt, iterations)


def _sign(payload_segment: str, secret_key: str) -> bytes:
    return hmac.new(
        secret_key.encode("utf-8"),
        payload_segment.encode("utf-8"),
        hashlib.sha256,
    ).digest()


def _b64url_encode(value: bytes) -> str:
    return base64.urlsafe_b64encode(value).decode("ascii").rstrip("=")


def _b64url_decode(value: str) -> bytes:
    padding_size = (-len(value)) % 4
    padded = f"{value}{'=' * padding_size}"
    return base64.urlsafe_b64decode(padded.encode("ascii"))
