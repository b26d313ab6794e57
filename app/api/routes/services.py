from fastapi import APIRouter, Depends, Query, Response, status

from app.schemas.auth import CurrentUserResponse
from app.schemas.service_catalog import ServiceListResponse, ServiceRequest, ServiceResponse
from app.services.auth_service import require_current_user
from app.services.service_catalog_service import ServiceCatalogService

router = APIRouter(prefix="/services", tags=["services"])


@router.get("", response_model=ServiceListResponse)
def list_services(
    page: int = Query(1, ge=1),
    per_page: int | None = Query(None, alias="perPage", ge=1, le=100),
) -> ServiceListResponse:
    service = ServiceCatalogService()
    return service.list_services(page=page, per_page=per_page)


@router.get("/users/{user_id}", response_model=ServiceListResponse)
def list_services_for_user(
    user_id: str,
    page: int = Query(1, ge=1),
    per_page: int | None = Query(None, alias="perPage", ge=1, le=100),
) -> ServiceListResponse:
    service = ServiceCatalogService()
    return service.list_services_for_user(user_id, page=page, per_page=per_page)


@router.post("", response_model=ServiceResponse, status_code=status.HTTP_201_CREATED)
def create_service(
    payload: ServiceRequest,
    current_user: CurrentUserResponse = Depends(require_current_user),
) -> ServiceResponse:
    service = ServiceCatalogService()
    return service.create_service(current_user, payload)


@router.get("/{service_id}", response_model=ServiceResponse)
def get_service(service_id: str) -> ServiceResponse:
    service = ServiceCatalogService()
    return service.get_service(service_id)


@router.put("/{service_id}", response_model=ServiceResponse)
def update_service(
    service_id: str,
    payload: ServiceRequest,
    current_user: CurrentUserResponse = Depends(require_current_user),
) -> ServiceResponse:
    service = ServiceCatalogService()
    return service.update_service(current_user, service_id, payload)


@router.delete("/{service_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_service(
    service_id: str,
    current_user: CurrentUserResponse = Depends(require_current_user),
) -> Response:
    service = ServiceCatalogService()
    service.delete_service(current_user, service_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
