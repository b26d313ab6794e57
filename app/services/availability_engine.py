from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date, datetime, timedelta, tzinfo

from app.services.booking_models import Booking, Provider, Slot, WorkingHourWindow
from app.services.booking_store import BookingStore
from app.services.clock import Clock, SystemClock
from app.services.conflict_guard import BookingConflictGuard, overlaps_any
from app.services.outcomes import Outcome, invalid_argument, not_found
from app.services.service_catalog_store import ServiceCatalogStore
from app.services.time_window import (
    DayOfWeek,
    ensure_utc,
    local_day_range_utc,
    local_to_utc,
    local_today,
    resolve_timezone,
    split_interval,
)
from app.services.working_hour_store import WorkingHourStore

logger = logging.getLogger(__name__)


class AvailabilityEngine:
    """Computes bookable slots from weekly working hours minus bookings and past time.

    Days are walked in the provider's local calendar starting at the provider's
    local "today"; each working-hour window is converted to UTC, cut into
    consecutive slots of the effective duration (a partial trailing slot is
    dropped), and every slot that starts at or before ``now`` or intersects an
    active booking is skipped. Output order is day, then window, then time.
    """

    def __init__(
        self,
        *,
        working_hour_store: WorkingHourStore,
        booking_store: BookingStore,
        service_store: ServiceCatalogStore,
        clock: Clock | None = None,
    ) -> None:
        self.working_hour_store = working_hour_store
        self.service_store = service_store
        self.conflict_guard = BookingConflictGuard(booking_store)
        self.clock = clock or SystemClock()

    def generate_available_slots(
        self,
        provider: Provider,
        days_ahead: int,
        slot_minutes: int,
        service_id: str | None = None,
    ) -> Outcome[list[Slot]]:
        if days_ahead <= 0:
            return invalid_argument("daysAhead must be a positive integer.")
        if slot_minutes <= 0:
            return invalid_argument("slotMinutes must be a positive integer.")

        duration_minutes = slot_minutes
        if service_id is not None:
            service = self.service_store.get_service(service_id)
            if not service:
                return not_found("Service not found.")
            if service.duration_minutes <= 0:
                return invalid_argument("Service duration must be a positive number of minutes.")
            duration_minutes = service.duration_minutes

        zone = resolve_timezone(provider.timezone)
        now = ensure_utc(self.clock.now())
        today = local_today(now, zone)

        windows_by_day = self._group_windows_by_day(
            self.working_hour_store.list_windows(provider_id=provider.id),
        )
        if not windows_by_day:
            return Outcome.success([])

        horizon_start, horizon_end = local_day_range_utc(today, days_ahead, zone)
        bookings = self.conflict_guard.find_conflicts(provider.id, horizon_start, horizon_end)

        slots: list[Slot] = []
        for offset in range(days_ahead):
            day = today + timedelta(days=offset)
            windows = windows_by_day.get(DayOfWeek.from_date(day))
            if not windows:
                continue
            slots.extend(
                self._slots_for_day(
                    day_windows=windows,
                    day=day,
                    zone=zone,
                    duration_minutes=duration_minutes,
                    now=now,
                    bookings=bookings,
                ),
            )

        logger.debug(
            "Generated %s slots provider_id=%s days_ahead=%s duration_minutes=%s",
            len(slots),
            provider.id,
            days_ahead,
            duration_minutes,
        )
        return Outcome.success(slots)

    def _slots_for_day(
        self,
        *,
        day_windows: list[WorkingHourWindow],
        day: date,
        zone: tzinfo,
        duration_minutes: int,
        now: datetime,
        bookings: list[Booking],
    ) -> list[Slot]:
        slots: list[Slot] = []
        emitted_starts: set[datetime] = set()
        for window in day_windows:
            window_start = local_to_utc(day, window.start, zone)
            window_end = local_to_utc(day, window.end, zone)
            for slot_start, slot_end in split_interval(window_start, window_end, duration_minutes):
                if slot_start <= now:
                    continue
                # Overlapping windows must not yield the same slot twice.
                if slot_start in emitted_starts:
                    continue
                if overlaps_any(bookings, slot_start, slot_end):
                    continue
                emitted_starts.add(slot_start)
                slots.append(_build_slot(slot_start, slot_end, zone))
        return slots

    @staticmethod
    def _group_windows_by_day(
        windows: list[WorkingHourWindow],
    ) -> dict[DayOfWeek, list[WorkingHourWindow]]:
        grouped: dict[DayOfWeek, list[WorkingHourWindow]] = defaultdict(list)
        for window in windows:
            grouped[window.day_of_week].append(window)
        for day_windows in grouped.values():
            day_windows.sort(key=lambda window: (window.start, window.end))
        return dict(grouped)


def _build_slot(start_utc: datetime, end_utc: datetime, zone: tzinfo) -> Slot:
    local_start = start_utc.astimezone(zone)
    local_end = end_utc.astimezone(zone)
    return Slot(
        date=local_start.date().isoformat(),
        start=local_start.strftime("%H:%M"),
        end=local_end.strftime("%H:%M"),
        start_utc=start_utc,
        end_utc=end_utc,
    )
