from fastapi import APIRouter, Depends, Query, Response, status

from app.schemas.auth import CurrentUserResponse
from app.schemas.provider import ProviderListResponse, ProviderRequest, ProviderResponse
from app.services.auth_service import require_admin_user
from app.services.provider_service import ProviderService

router = APIRouter(prefix="/providers", tags=["providers"])


@router.get("", response_model=ProviderListResponse)
def list_providers(
    page: int = Query(1, ge=1),
    per_page: int | None = Query(None, alias="perPage", ge=1, le=100),
) -> ProviderListResponse:
    service = ProviderService()
    return service.list_providers(page=page, per_page=per_page)


@router.get("/services/{service_id}", response_model=ProviderListResponse)
def list_providers_for_service(
    service_id: str,
    page: int = Query(1, ge=1),
    per_page: int | None = Query(None, alias="perPage", ge=1, le=100),
) -> ProviderListResponse:
    service = ProviderService()
    return service.list_providers_for_service(service_id, page=page, per_page=per_page)


@router.post("", response_model=ProviderResponse, status_code=status.HTTP_201_CREATED)
def create_provider(
    payload: ProviderRequest,
    _: CurrentUserResponse = Depends(require_admin_user),
) -> ProviderResponse:
    service = ProviderService()
    return service.create_provider(payload)


@router.get("/{provider_id}", response_model=ProviderResponse)
def get_provider(provider_id: str) -> ProviderResponse:
    service = ProviderService()
    return service.get_provider(provider_id)


@router.put("/{provider_id}", response_model=ProviderResponse)
def update_provider(
    provider_id: str,
    payload: ProviderRequest,
    _: CurrentUserResponse = Depends(require_admin_user),
) -> ProviderResponse:
    service = ProviderService()
    return service.update_provider(provider_id, payload)


@router.delete("/{provider_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_provider(
    provider_id: str,
    _: CurrentUserResponse = Depends(require_admin_user),
) -> Response:
    service = ProviderService()
    service.delete_provider(provider_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
