from __future__ import annotations

import logging

from fastapi import HTTPException, status

from app.core.config import Settings, get_settings
from app.schemas.working_hour import WorkingHourListResponse, WorkingHourRequest, WorkingHourResponse
from app.services.booking_models import WorkingHourWindow
from app.services.booking_service import ProviderLockRegistry
from app.services.pagination import paginate
from app.services.provider_store import ProviderStore, create_provider_store
from app.services.time_window import DayOfWeek, TimeOfDay
from app.services.working_hour_store import WorkingHourStore, create_working_hour_store

logger = logging.getLogger(__name__)

_window_write_locks = ProviderLockRegistry()


class WorkingHourService:
    def __init__(
        self,
        settings: Settings | None = None,
        *,
        working_hour_store: WorkingHourStore | None = None,
        provider_store: ProviderStore | None = None,
        lock_registry: ProviderLockRegistry | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.working_hour_store = working_hour_store or create_working_hour_store(self.settings)
        self.provider_store = provider_store or create_provider_store(self.settings)
        self.lock_registry = lock_registry or _window_write_locks

    def list_windows(
        self,
        *,
        provider_id: str | None = None,
        page: int = 1,
        per_page: int | None = None,
    ) -> WorkingHourListResponse:
        normalized_provider_id = provider_id.strip() if provider_id else None
        windows = self.working_hour_store.list_windows(provider_id=normalized_provider_id)
        page_items, pagination = paginate(
            windows,
            page=page,
            per_page=per_page or self.settings.resources_per_page,
        )
        return WorkingHourListResponse(
            data=[_to_window_response(window) for window in page_items],
            pagination=pagination,
        )

    def get_window(self, window_id: str) -> WorkingHourResponse:
        return _to_window_response(self._require_window(window_id))

    def create_window(self, payload: WorkingHourRequest) -> WorkingHourResponse:
        provider_id, day_of_week, start, end = self._validate_payload(payload)
        with self.lock_registry.hold(provider_id):
            self._assert_no_overlap(provider_id, day_of_week, start, end, exclude_window_id=None)
            window = self.working_hour_store.create_window(
                provider_id=provider_id,
                day_of_week=day_of_week,
                start=start,
                end=end,
            )
        logger.info(
            "Created working hours id=%s provider_id=%s day=%s %s-%s",
            window.id,
            window.provider_id,
            int(window.day_of_week),
            window.start,
            window.end,
        )
        return _to_window_response(window)

    def update_window(self, window_id: str, payload: WorkingHourRequest) -> WorkingHourResponse:
        existing = self._require_window(window_id)
        provider_id, day_of_week, start, end = self._validate_payload(payload)
        with self.lock_registry.hold(existing.provider_id, provider_id):
            self._assert_no_overlap(provider_id, day_of_week, start, end, exclude_window_id=existing.id)
            updated = self.working_hour_store.update_window(
                existing.id,
                provider_id=provider_id,
                day_of_week=day_of_week,
                start=start,
                end=end,
            )
        if not updated:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Working hours not found.",
            )
        return _to_window_response(updated)

    def delete_window(self, window_id: str) -> None:
        existing = self._require_window(window_id)
        self.working_hour_store.delete_window(existing.id)
        logger.info("Deleted working hours id=%s provider_id=%s", existing.id, existing.provider_id)

    def _require_window(self, window_id: str) -> WorkingHourWindow:
        window = self.working_hour_store.get_window(window_id.strip())
        if not window:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Working hours not found.",
            )
        return window

    def _validate_payload(
        self,
        payload: WorkingHourRequest,
    ) -> tuple[str, DayOfWeek, TimeOfDay, TimeOfDay]:
        provider_id = payload.provider_id.strip()
        if not self.provider_store.get_provider(provider_id):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Provider not found.",
            )
        try:
            day_of_week = DayOfWeek.parse(payload.day_of_week)
            start = TimeOfDay.parse(payload.start_time)
            end = TimeOfDay.parse(payload.end_time)
        except ValueError as exc:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=str(exc),
            ) from exc
        if not start < end:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="end_time must be after start_time.",
            )
        return provider_id, day_of_week, start, end

    def _assert_no_overlap(
        self,
        provider_id: str,
        day_of_week: DayOfWeek,
        start: TimeOfDay,
        end: TimeOfDay,
        *,
        exclude_window_id: str | None,
    ) -> None:
        siblings = self.working_hour_store.list_windows(provider_id=provider_id, day_of_week=day_of_week)
        for sibling in siblings:
            if sibling.id == exclude_window_id:
                continue
            if sibling.start < end and start < sibling.end:
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail=(
                        "Working hours overlap an existing window "
                        f"({sibling.start}-{sibling.end}) on the same day."
                    ),
                )


def _to_window_response(window: WorkingHourWindow) -> WorkingHourResponse:
    return WorkingHourResponse(**window.to_dict())
