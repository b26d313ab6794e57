from pydantic import BaseModel

from app.schemas.common import Pagination


class WorkingHourRequest(BaseModel):
    provider_id: str
    day_of_week: int
    start_time: str
    end_time: str


class WorkingHourResponse(BaseModel):
    id: str
    provider_id: str
    day_of_week: int
    start_time: str
    end_time: str


class WorkingHourListResponse(BaseModel):
    data: list[WorkingHourResponse]
    pagination: Pagination
