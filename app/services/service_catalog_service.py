from __future__ import annotations

import logging

from fastapi import HTTPException, status

from app.core.config import Settings, get_settings
from app.schemas.auth import CurrentUserResponse
from app.schemas.service_catalog import ServiceListResponse, ServiceRequest, ServiceResponse
from app.services.booking_models import ServiceOffering
from app.services.booking_store import BookingStore, create_booking_store
from app.services.pagination import paginate
from app.services.service_catalog_store import ServiceCatalogStore, create_service_catalog_store
from app.services.user_store import UserStore, create_user_store

logger = logging.getLogger(__name__)


class ServiceCatalogService:
    def __init__(
        self,
        settings: Settings | None = None,
        *,
        service_store: ServiceCatalogStore | None = None,
        booking_store: BookingStore | None = None,
        user_store: UserStore | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.service_store = service_store or create_service_catalog_store(self.settings)
        self.booking_store = booking_store or create_booking_store(self.settings)
        self.user_store = user_store or create_user_store(self.settings)

    def list_services(self, *, page: int = 1, per_page: int | None = None) -> ServiceListResponse:
        return self._build_list(self.service_store.list_services(), page=page, per_page=per_page)

    def list_services_for_user(
        self,
        user_id: str,
        *,
        page: int = 1,
        per_page: int | None = None,
    ) -> ServiceListResponse:
        normalized_user_id = user_id.strip()
        if not self.user_store.get_user_by_id(normalized_user_id):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="User not found.",
            )
        services = self.service_store.list_services(user_id=normalized_user_id)
        return self._build_list(services, page=page, per_page=per_page)

    def get_service(self, service_id: str) -> ServiceResponse:
        return _to_service_response(self._require_service(service_id))

    def create_service(
        self,
        current_user: CurrentUserResponse,
        payload: ServiceRequest,
    ) -> ServiceResponse:
        owner_id = self._resolve_owner(current_user, payload.user_id)
        name = self._validate_payload(payload)
        service = self.service_store.create_service(
            user_id=owner_id,
            name=name,
            duration_minutes=payload.duration_minutes,
            description=payload.description,
        )
        logger.info("Created service id=%s user_id=%s", service.id, service.user_id)
        return _to_service_response(service)

    def update_service(
        self,
        current_user: CurrentUserResponse,
        service_id: str,
        payload: ServiceRequest,
    ) -> ServiceResponse:
        existing = self._require_service(service_id)
        self._assert_can_manage(current_user, existing)
        owner_id = self._resolve_owner(current_user, payload.user_id or existing.user_id)
        name = self._validate_payload(payload)
        updated = self.service_store.update_service(
            existing.id,
            {
                "user_id": owner_id,
                "name": name,
                "duration_minutes": payload.duration_minutes,
                "description": payload.description,
            },
        )
        if not updated:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Service not found.",
            )
        return _to_service_response(updated)

    def delete_service(self, current_user: CurrentUserResponse, service_id: str) -> None:
        existing = self._require_service(service_id)
        self._assert_can_manage(current_user, existing)
        if self.booking_store.count_bookings(service_id=existing.id) > 0:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Cannot delete service with existing bookings",
            )
        self.service_store.delete_service(existing.id)
        logger.info("Deleted service id=%s", existing.id)

    def _require_service(self, service_id: str) -> ServiceOffering:
        service = self.service_store.get_service(service_id.strip())
        if not service:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Service not found.",
            )
        return service

    def _resolve_owner(self, current_user: CurrentUserResponse, requested_user_id: str | None) -> str:
        owner_id = (requested_user_id or current_user.id).strip()
        if owner_id != current_user.id and not current_user.is_admin:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Unauthorized",
            )
        if not self.user_store.get_user_by_id(owner_id):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="User not found.",
            )
        return owner_id

    @staticmethod
    def _assert_can_manage(current_user: CurrentUserResponse, service: ServiceOffering) -> None:
        if service.user_id != current_user.id and not current_user.is_admin:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Unauthorized",
            )

    @staticmethod
    def _validate_payload(payload: ServiceRequest) -> str:
        name = payload.name.strip()
        if not name:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="Service name is required.",
            )
        if payload.duration_minutes < 1:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="duration_minutes must be at least 1.",
            )
        return name

    def _build_list(
        self,
        services: list[ServiceOffering],
        *,
        page: int,
        per_page: int | None,
    ) -> ServiceListResponse:
        page_items, pagination = paginate(
            services,
            page=page,
            per_page=per_page or self.settings.resources_per_page,
        )
        return ServiceListResponse(
            data=[_to_service_response(service) for service in page_items],
            pagination=pagination,
        )


def _to_service_response(service: ServiceOffering) -> ServiceResponse:
    return ServiceResponse(**service.to_dict())
