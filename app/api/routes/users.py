from fastapi import APIRouter, Depends, Query, Response, status

from app.schemas.auth import CurrentUserResponse
from app.schemas.user import UserListResponse, UserUpdateRequest
from app.services.auth_service import require_admin_user, require_current_user
from app.services.user_service import UserService

router = APIRouter(prefix="/users", tags=["users"])


@router.get("", response_model=UserListResponse)
def list_users(
    page: int = Query(1, ge=1),
    per_page: int | None = Query(None, alias="perPage", ge=1, le=100),
    _: CurrentUserResponse = Depends(require_admin_user),
) -> UserListResponse:
    service = UserService()
    return service.list_users(page=page, per_page=per_page)


@router.get("/{user_id}", response_model=CurrentUserResponse)
def get_user(
    user_id: str,
    current_user: CurrentUserResponse = Depends(require_current_user),
) -> CurrentUserResponse:
    service = UserService()
    return service.get_user(current_user, user_id)


@router.patch("/{user_id}", response_model=CurrentUserResponse)
def update_user(
    user_id: str,
    payload: UserUpdateRequest,
    current_user: CurrentUserResponse = Depends(require_current_user),
) -> CurrentUserResponse:
    service = UserService()
    return service.update_user(current_user, user_id, payload)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    user_id: str,
    _: CurrentUserResponse = Depends(require_admin_user),
) -> Response:
    service = UserService()
    service.delete_user(user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
