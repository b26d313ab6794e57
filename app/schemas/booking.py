from datetime import datetime

from pydantic import BaseModel

from app.schemas.common import Pagination


class SlotResponse(BaseModel):
    date: str
    start: str
    end: str


class AvailableSlotsResponse(BaseModel):
    data: list[SlotResponse]
    total: int
    pagination: Pagination


class BookingRequest(BaseModel):
    provider_id: str
    service_id: str
    start_at: datetime
    end_at: datetime
    user_id: str | None = None


class BookingResponse(BaseModel):
    id: str
    user_id: str
    provider_id: str
    service_id: str
    start_at: datetime
    end_at: datetime
    status: str
    cancelled_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class BookingListResponse(BaseModel):
    data: list[BookingResponse]
    pagination: Pagination
