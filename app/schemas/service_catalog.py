from datetime import datetime

from pydantic import BaseModel

from app.schemas.common import Pagination


class ServiceRequest(BaseModel):
    name: str
    duration_minutes: int
    description: str | None = None
    user_id: str | None = None


class ServiceResponse(BaseModel):
    id: str
    user_id: str
    name: str
    duration_minutes: int
    description: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ServiceListResponse(BaseModel):
    data: list[ServiceResponse]
    pagination: Pagination
