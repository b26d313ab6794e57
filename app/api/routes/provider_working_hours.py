from fastapi import APIRouter, Depends, Query, Response, status

from app.schemas.auth import CurrentUserResponse
from app.schemas.working_hour import (
    WorkingHourListResponse,
    WorkingHourRequest,
    WorkingHourResponse,
)
from app.services.auth_service import require_admin_user
from app.services.working_hour_service import WorkingHourService

router = APIRouter(prefix="/provider-working-hours", tags=["provider-working-hours"])


@router.get("", response_model=WorkingHourListResponse)
def list_working_hours(
    provider_id: str | None = Query(None),
    page: int = Query(1, ge=1),
    per_page: int | None = Query(None, alias="perPage", ge=1, le=100),
) -> WorkingHourListResponse:
    service = WorkingHourService()
    return service.list_windows(provider_id=provider_id, page=page, per_page=per_page)


@router.post("", response_model=WorkingHourResponse, status_code=status.HTTP_201_CREATED)
def create_working_hours(
    payload: WorkingHourRequest,
    _: CurrentUserResponse = Depends(require_admin_user),
) -> WorkingHourResponse:
    service = WorkingHourService()
    return service.create_window(payload)


@router.get("/{window_id}", response_model=WorkingHourResponse)
def get_working_hours(window_id: str) -> WorkingHourResponse:
    service = WorkingHourService()
    return service.get_window(window_id)


@router.put("/{window_id}", response_model=WorkingHourResponse)
def update_working_hours(
    window_id: str,
    payload: WorkingHourRequest,
    _: CurrentUserResponse = Depends(require_admin_user),
) -> WorkingHourResponse:
    service = WorkingHourService()
    return service.update_window(window_id, payload)


@router.delete("/{window_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_working_hours(
    window_id: str,
    _: CurrentUserResponse = Depends(require_admin_user),
) -> Response:
    service = WorkingHourService()
    service.delete_window(window_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
