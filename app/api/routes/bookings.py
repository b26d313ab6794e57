from fastapi import APIRouter, Depends, Query, status

from app.schemas.auth import CurrentUserResponse
from app.schemas.booking import (
    AvailableSlotsResponse,
    BookingListResponse,
    BookingRequest,
    BookingResponse,
)
from app.services.auth_service import require_current_user
from app.services.booking_service import BookingService

router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.get("/{provider_id}/available-slots", response_model=AvailableSlotsResponse)
def get_available_slots(
    provider_id: str,
    service_id: str | None = Query(None),
    page: int = Query(1, ge=1),
    per_page: int | None = Query(None, alias="perPage", ge=1, le=100),
    days_ahead: int | None = Query(None, alias="daysAhead", ge=1, le=365),
    slot_minutes: int | None = Query(None, alias="slotMinutes", ge=1, le=480),
) -> AvailableSlotsResponse:
    service = BookingService()
    return service.get_available_slots(
        provider_id,
        days_ahead=days_ahead,
        slot_minutes=slot_minutes,
        service_id=service_id,
        page=page,
        per_page=per_page,
    )


@router.get("/users/{user_id}", response_model=BookingListResponse)
def list_bookings_for_user(
    user_id: str,
    page: int = Query(1, ge=1),
    per_page: int | None = Query(None, alias="perPage", ge=1, le=100),
    current_user: CurrentUserResponse = Depends(require_current_user),
) -> BookingListResponse:
    service = BookingService()
    return service.list_bookings_for_user(current_user, user_id, page=page, per_page=per_page)


@router.get("", response_model=BookingListResponse)
def list_bookings(
    page: int = Query(1, ge=1),
    per_page: int | None = Query(None, alias="perPage", ge=1, le=100),
    current_user: CurrentUserResponse = Depends(require_current_user),
) -> BookingListResponse:
    service = BookingService()
    return service.list_bookings(current_user, page=page, per_page=per_page)


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
def create_booking(
    payload: BookingRequest,
    current_user: CurrentUserResponse = Depends(require_current_user),
) -> BookingResponse:
    service = BookingService()
    return service.create_booking(current_user, payload)


@router.get("/{booking_id}", response_model=BookingResponse)
def get_booking(
    booking_id: str,
    current_user: CurrentUserResponse = Depends(require_current_user),
) -> BookingResponse:
    service = BookingService()
    return service.get_booking(current_user, booking_id)


@router.put("/{booking_id}", response_model=BookingResponse)
def update_booking(
    booking_id: str,
    payload: BookingRequest,
    current_user: CurrentUserResponse = Depends(require_current_user),
) -> BookingResponse:
    service = BookingService()
    return service.update_booking(current_user, booking_id, payload)


@router.delete("/{booking_id}", response_model=BookingResponse)
def cancel_booking(
    booking_id: str,
    current_user: CurrentUserResponse = Depends(require_current_user),
) -> BookingResponse:
    service = BookingService()
    return service.cancel_booking(current_user, booking_id)
