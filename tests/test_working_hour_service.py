import threading
import time

import pytest
from fastapi import HTTPException

from app.core.config import Settings
from app.schemas.working_hour import WorkingHourRequest
from app.services.booking_models import WorkingHourWindow
from app.services.booking_service import ProviderLockRegistry
from app.services.provider_store import InMemoryProviderStore
from app.services.time_window import DayOfWeek
from app.services.working_hour_service import WorkingHourService
from app.services.working_hour_store import InMemoryWorkingHourStore


class SlowListingWorkingHourStore(InMemoryWorkingHourStore):
    """Widens the gap between the overlap check and the insert."""

    def list_windows(
        self,
        *,
        provider_id: str | None = None,
        day_of_week: DayOfWeek | None = None,
    ) -> list[WorkingHourWindow]:
        windows = super().list_windows(provider_id=provider_id, day_of_week=day_of_week)
        time.sleep(0.02)
        return windows


@pytest.fixture
def providers() -> InMemoryProviderStore:
    store = InMemoryProviderStore()
    store.create_provider(service_id="1", name="Mette")
    return store


def _request(provider_id: str, start_time: str, end_time: str) -> WorkingHourRequest:
    return WorkingHourRequest(
        provider_id=provider_id,
        day_of_week=1,
        start_time=start_time,
        end_time=end_time,
    )


def test_overlapping_window_is_rejected(providers: InMemoryProviderStore) -> None:
    service = WorkingHourService(
        Settings(data_store="memory"),
        working_hour_store=InMemoryWorkingHourStore(),
        provider_store=providers,
        lock_registry=ProviderLockRegistry(),
    )
    provider_id = providers.list_providers()[0].id
    service.create_window(_request(provider_id, "09:00", "12:00"))

    with pytest.raises(HTTPException) as exc_info:
        service.create_window(_request(provider_id, "11:00", "13:00"))
    assert exc_info.value.status_code == 409

    touching = service.create_window(_request(provider_id, "12:00", "13:00"))
    assert touching.start_time == "12:00"


def test_concurrent_overlapping_windows_yield_a_single_write(providers: InMemoryProviderStore) -> None:
    store = SlowListingWorkingHourStore()
    provider_id = providers.list_providers()[0].id
    barrier = threading.Barrier(4)
    outcomes: list[int] = []
    outcomes_lock = threading.Lock()

    def _attempt(start_time: str, end_time: str) -> None:
        service = WorkingHourService(
            Settings(data_store="memory"),
            working_hour_store=store,
            provider_store=providers,
        )
        barrier.wait()
        try:
            service.create_window(_request(provider_id, start_time, end_time))
            status_code = 201
        except HTTPException as exc:
            status_code = exc.status_code
        with outcomes_lock:
            outcomes.append(status_code)

    threads = [
        threading.Thread(target=_attempt, args=(start_time, "15:00"))
        for start_time in ("09:00", "10:00", "11:00", "12:00")
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sorted(outcomes) == [201, 409, 409, 409]
    assert len(store.list_windows(provider_id=provider_id)) == 1
