from fastapi import APIRouter

from app.api.routes.auth import router as auth_router
from app.api.routes.bookings import router as bookings_router
from app.api.routes.health import router as health_router
from app.api.routes.provider_working_hours import router as provider_working_hours_router
from app.api.routes.providers import router as providers_router
from app.api.routes.services import router as services_router
from app.api.routes.users import router as users_router

api_router = APIRouter()
v1_router = APIRouter(prefix="/v1")

api_router.include_router(health_router)

_resource_routers = (
    auth_router,
    users_router,
    services_router,
    providers_router,
    provider_working_hours_router,
    bookings_router,
)

# Unversioned routes kept for existing clients.
for resource_router in _resource_routers:
    api_router.include_router(resource_router)

# Versioned routes for long-term API evolution.
for resource_router in _resource_routers:
    v1_router.include_router(resource_router)
api_router.include_router(v1_router)
