from __future__ import annotations

import logging

from fastapi import HTTPException, status

from app.core.config import Settings, get_settings
from app.schemas.provider import ProviderListResponse, ProviderRequest, ProviderResponse
from app.schemas.working_hour import WorkingHourResponse
from app.services.booking_models import Provider
from app.services.booking_store import BookingStore, create_booking_store
from app.services.pagination import paginate
from app.services.provider_store import ProviderStore, create_provider_store
from app.services.service_catalog_store import ServiceCatalogStore, create_service_catalog_store
from app.services.time_window import DEFAULT_TIMEZONE, is_valid_timezone
from app.services.working_hour_store import WorkingHourStore, create_working_hour_store

logger = logging.getLogger(__name__)


class ProviderService:
    def __init__(
        self,
        settings: Settings | None = None,
        *,
        provider_store: ProviderStore | None = None,
        service_store: ServiceCatalogStore | None = None,
        working_hour_store: WorkingHourStore | None = None,
        booking_store: BookingStore | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.provider_store = provider_store or create_provider_store(self.settings)
        self.service_store = service_store or create_service_catalog_store(self.settings)
        self.working_hour_store = working_hour_store or create_working_hour_store(self.settings)
        self.booking_store = booking_store or create_booking_store(self.settings)

    def list_providers(self, *, page: int = 1, per_page: int | None = None) -> ProviderListResponse:
        return self._build_list(self.provider_store.list_providers(), page=page, per_page=per_page)

    def list_providers_for_service(
        self,
        service_id: str,
        *,
        page: int = 1,
        per_page: int | None = None,
    ) -> ProviderListResponse:
        normalized_service_id = service_id.strip()
        if not self.service_store.get_service(normalized_service_id):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Service not found.",
            )
        providers = self.provider_store.list_providers(service_id=normalized_service_id)
        return self._build_list(providers, page=page, per_page=per_page)

    def get_provider(self, provider_id: str) -> ProviderResponse:
        return self._to_provider_response(self._require_provider(provider_id))

    def create_provider(self, payload: ProviderRequest) -> ProviderResponse:
        name, service_id, timezone = self._validate_payload(payload)
        provider = self.provider_store.create_provider(
            service_id=service_id,
            name=name,
            timezone=timezone,
        )
        logger.info("Created provider id=%s service_id=%s", provider.id, provider.service_id)
        return self._to_provider_response(provider)

    def update_provider(self, provider_id: str, payload: ProviderRequest) -> ProviderResponse:
        existing = self._require_provider(provider_id)
        name, service_id, timezone = self._validate_payload(payload)
        updated = self.provider_store.update_provider(
            existing.id,
            {
                "name": name,
                "service_id": service_id,
                "timezone": timezone,
            },
        )
        if not updated:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Provider not found.",
            )
        return self._to_provider_response(updated)

    def delete_provider(self, provider_id: str) -> None:
        existing = self._require_provider(provider_id)
        if self.booking_store.count_bookings(provider_id=existing.id) > 0:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Cannot delete provider with existing bookings",
            )
        removed_windows = self.working_hour_store.delete_windows_for_provider(existing.id)
        self.provider_store.delete_provider(existing.id)
        logger.info("Deleted provider id=%s working_hours=%s", existing.id, removed_windows)

    def _require_provider(self, provider_id: str) -> Provider:
        provider = self.provider_store.get_provider(provider_id.strip())
        if not provider:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Provider not found.",
            )
        return provider

    def _validate_payload(self, payload: ProviderRequest) -> tuple[str, str, str]:
        name = payload.name.strip()
        if not name:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="Provider name is required.",
            )
        service_id = payload.service_id.strip()
        if not self.service_store.get_service(service_id):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Service not found.",
            )
        timezone = (payload.timezone or "").strip() or DEFAULT_TIMEZONE
        if not is_valid_timezone(timezone):
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=f"Unknown timezone: {timezone}.",
            )
        return name, service_id, timezone

    def _to_provider_response(self, provider: Provider) -> ProviderResponse:
        windows = self.working_hour_store.list_windows(provider_id=provider.id)
        return ProviderResponse(
            **provider.to_dict(),
            working_hours=[WorkingHourResponse(**window.to_dict()) for window in windows],
        )

    def _build_list(
        self,
        providers: list[Provider],
        *,
        page: int,
        per_page: int | None,
    ) -> ProviderListResponse:
        page_items, pagination = paginate(
            providers,
            page=page,
            per_page=per_page or self.settings.resources_per_page,
        )
        return ProviderListResponse(
            data=[self._to_provider_response(provider) for provider in page_items],
            pagination=pagination,
        )
