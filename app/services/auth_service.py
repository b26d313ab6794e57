from __future__ import annotations

import logging

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.config import Settings, get_settings
from app.schemas.auth import AuthTokenResponse, CurrentUserResponse, LoginRequest, RegisterRequest
from app.services.security_utils import (
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)
from app.services.user_store import UserStore, create_user_store

logger = logging.getLogger(__name__)

_HTTP_BEARER = HTTPBearer(auto_error=False)
ADMIN_ROLE = "admin"
USER_ROLE = "user"
_MIN_REGISTRATION_LENGTHS = {"full_name": 2, "email": 3, "password": 4}


class AuthService:
    def __init__(
        self,
        settings: Settings | None = None,
        user_store: UserStore | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.user_store = user_store or create_user_store(self.settings)
        self.ensure_default_admin_user()

    def ensure_default_admin_user(self) -> None:
        default_email = self.settings.default_admin_email.strip().lower()
        default_password = self.settings.default_admin_password.strip()
        default_full_name = self.settings.default_admin_full_name.strip() or "Administrator"
        if not default_email or not default_password:
            return

        existing_user = self.user_store.get_user_by_email(default_email)
        if existing_user:
            return

        try:
            self.user_store.create_user(
                email=default_email,
                full_name=default_full_name,
                password_hash=hash_password(default_password),
                role=ADMIN_ROLE,
            )
        except ValueError:
            return
        logger.info("Created default admin user email=%s", default_email)

    def register(self, payload: RegisterRequest) -> AuthTokenResponse:
        full_name, email, password = _validate_registration(payload)
        if self.user_store.get_user_by_email(email):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="An account with this email already exists.",
            )

        try:
            user_record = self.user_store.create_user(
                email=email,
                full_name=full_name,
                password_hash=hash_password(password),
                role=USER_ROLE,
            )
        except ValueError as exc:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="An account with this email already exists.",
            ) from exc
        logger.info("Registered user id=%s", user_record["_id"])
        return self._build_auth_token_response(user_record)

    def login(self, payload: LoginRequest) -> AuthTokenResponse:
        email = str(payload.email).strip().lower()
        password = payload.password

        user_record = self.user_store.get_user_by_email(email)
        if not user_record:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid email or password.",
            )

        stored_hash = str(user_record.get("password_hash", ""))
        if not verify_password(password, stored_hash):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid email or password.",
            )

        return self._build_auth_token_response(user_record)

    def refresh(self, current_user: CurrentUserResponse) -> AuthTokenResponse:
        user_record = self.user_store.get_user_by_id(current_user.id)
        if not user_record:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="User not found for this access token.",
            )
        return self._build_auth_token_response(user_record)

    def get_current_user_from_token(self, access_token: str) -> CurrentUserResponse:
        payload = decode_access_token(access_token, self.settings.auth_secret_key)
        if not payload:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid or expired access token.",
            )

        subject = payload.get("sub")
        if not isinstance(subject, str) or not subject.strip():
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid access token payload.",
            )

        user_record = self.user_store.get_user_by_id(subject)
        if not user_record:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="User not found for this access token.",
            )
        return to_current_user_response(user_record)

    def _build_auth_token_response(self, user_record: dict[str, object]) -> AuthTokenResponse:
        current_user = to_current_user_response(user_record)
        access_token, expires_in_seconds = create_access_token(
            subject=current_user.id,
            claims={
                "email": current_user.email,
                "role": current_user.role,
            },
            secret_key=self.settings.auth_secret_key,
            ttl_minutes=self.settings.auth_token_ttl_minutes,
        )
        return AuthTokenResponse(
            access_token=access_token,
            expires_in_seconds=expires_in_seconds,
            user=current_user,
        )


def _validate_registration(payload: RegisterRequest) -> tuple[str, str, str]:
    full_name = payload.full_name.strip()
    email = str(payload.email).strip().lower()
    password = payload.password
    for field_name, value in (("full_name", full_name), ("email", email), ("password", password)):
        minimum = _MIN_REGISTRATION_LENGTHS[field_name]
        if len(value) < minimum:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=f"{field_name} must contain at least {minimum} characters.",
            )
    return full_name, email, password


def to_current_user_response(user_record: dict[str, object]) -> CurrentUserResponse:
    return CurrentUserResponse(
        id=str(user_record.get("_id", "")),
        email=str(user_record.get("email", "")),
        full_name=str(user_record.get("full_name", "")),
        role=str(user_record.get("role", USER_ROLE)),
    )


def require_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(_HTTP_BEARER),
) -> CurrentUserResponse:
    if not credentials or credentials.scheme.lower() != "bearer":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required.",
        )
    service = AuthService()
    return service.get_current_user_from_token(credentials.credentials)


def require_admin_user(
    current_user: CurrentUserResponse = Depends(require_current_user),
) -> CurrentUserResponse:
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Unauthorized",
        )
    return current_user
