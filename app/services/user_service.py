from __future__ import annotations

import logging

from fastapi import HTTPException, status

from app.core.config import Settings, get_settings
from app.schemas.auth import CurrentUserResponse
from app.schemas.user import UserListResponse, UserUpdateRequest
from app.services.auth_service import ADMIN_ROLE, USER_ROLE, to_current_user_response
from app.services.pagination import paginate
from app.services.security_utils import hash_password
from app.services.user_store import UserStore, create_user_store

logger = logging.getLogger(__name__)

_KNOWN_ROLES = frozenset({ADMIN_ROLE, USER_ROLE})


class UserService:
    def __init__(
        self,
        settings: Settings | None = None,
        *,
        user_store: UserStore | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.user_store = user_store or create_user_store(self.settings)

    def list_users(self, *, page: int = 1, per_page: int | None = None) -> UserListResponse:
        users = [to_current_user_response(user) for user in self.user_store.list_users()]
        page_items, pagination = paginate(
            users,
            page=page,
            per_page=per_page or self.settings.resources_per_page,
        )
        return UserListResponse(data=page_items, pagination=pagination)

    def get_user(self, current_user: CurrentUserResponse, user_id: str) -> CurrentUserResponse:
        self._assert_self_or_admin(current_user, user_id)
        return to_current_user_response(self._require_user(user_id))

    def update_user(
        self,
        current_user: CurrentUserResponse,
        user_id: str,
        payload: UserUpdateRequest,
    ) -> CurrentUserResponse:
        self._assert_self_or_admin(current_user, user_id)
        existing = self._require_user(user_id)

        updates: dict[str, object] = {}
        if payload.full_name is not None:
            full_name = payload.full_name.strip()
            if len(full_name) < 2:
                raise HTTPException(
                    status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                    detail="full_name must contain at least 2 characters.",
                )
            updates["full_name"] = full_name
        if payload.email is not None:
            updates["email"] = payload.email
        if payload.password is not None:
            if len(payload.password) < 4:
                raise HTTPException(
                    status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                    detail="password must contain at least 4 characters.",
                )
            updates["password_hash"] = hash_password(payload.password)
        if payload.role is not None:
            role = payload.role.strip().lower()
            if not current_user.is_admin:
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail="Unauthorized",
                )
            if role not in _KNOWN_ROLES:
                raise HTTPException(
                    status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                    detail=f"role must be one of: {', '.join(sorted(_KNOWN_ROLES))}.",
                )
            updates["role"] = role

        try:
            updated = self.user_store.update_user(str(existing["_id"]), updates)
        except ValueError as exc:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="An account with this email already exists.",
            ) from exc
        if not updated:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="User not found.",
            )
        return to_current_user_response(updated)

    def delete_user(self, user_id: str) -> None:
        existing = self._require_user(user_id)
        self.user_store.delete_user(str(existing["_id"]))
        logger.info("Deleted user id=%s", existing["_id"])

    def _require_user(self, user_id: str) -> dict[str, object]:
        user = self.user_store.get_user_by_id(user_id.strip())
        if not user:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="User not found.",
            )
        return user

    @staticmethod
    def _assert_self_or_admin(current_user: CurrentUserResponse, user_id: str) -> None:
        if user_id.strip() != current_user.id and not current_user.is_admin:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Unauthorized",
            )
