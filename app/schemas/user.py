from pydantic import BaseModel

from app.schemas.auth import CurrentUserResponse
from app.schemas.common import Pagination


class UserUpdateRequest(BaseModel):
    full_name: str | None = None
    email: str | None = None
    password: str | None = None
    role: str | None = None


class UserListResponse(BaseModel):
    data: list[CurrentUserResponse]
    pagination: Pagination
