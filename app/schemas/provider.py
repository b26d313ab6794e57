from datetime import datetime

from pydantic import BaseModel, Field

from app.schemas.common import Pagination
from app.schemas.working_hour import WorkingHourResponse


class ProviderRequest(BaseModel):
    name: str
    service_id: str
    timezone: str | None = None


class ProviderResponse(BaseModel):
    id: str
    service_id: str
    name: str
    timezone: str
    working_hours: list[WorkingHourResponse] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ProviderListResponse(BaseModel):
    data: list[ProviderResponse]
    pagination: Pagination
