from app.core.config import Settings
from app.schemas.health import HealthResponse
from app.services.clock import Clock, SystemClock


class HealthService:
    def __init__(self, settings: Settings, clock: Clock | None = None) -> None:
        self.settings = settings
        self.clock = clock or SystemClock()

    def get_status(self) -> HealthResponse:
        return HealthResponse(
            status="ok",
            service=self.settings.app_name,
            version=self.settings.app_version,
            data_store=self.settings.data_store,
            timestamp=self.clock.now(),
        )
