"""Double-booking detection for provider calendars.

Two intervals ``[a1, a2)`` and ``[b1, b2)`` conflict when ``a1 < b2`` and
``b1 < a2``; a booking ending at 10:00 never blocks one starting at 10:00.
Only active bookings (status ``booked`` without a cancellation timestamp)
take part in the check.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from app.services.booking_models import Booking
from app.services.booking_store import BookingStore
from app.services.time_window import ensure_utc, intervals_overlap


def overlaps_any(bookings: Iterable[Booking], start_utc: datetime, end_utc: datetime) -> bool:
    return any(
        booking.is_active and intervals_overlap(booking.start_at, booking.end_at, start_utc, end_utc)
        for booking in bookings
    )


class BookingConflictGuard:
    def __init__(self, booking_store: BookingStore) -> None:
        self.booking_store = booking_store

    def find_conflicts(
        self,
        provider_id: str,
        start_utc: datetime,
        end_utc: datetime,
        exclude_booking_id: str | None = None,
    ) -> list[Booking]:
        start_at = ensure_utc(start_utc)
        end_at = ensure_utc(end_utc)
        candidates = self.booking_store.find_overlapping(
            provider_id,
            start_at,
            end_at,
            exclude_booking_id=exclude_booking_id,
        )
        # Re-check locally so every store honours the same half-open rule.
        return [
            booking
            for booking in candidates
            if booking.id != exclude_booking_id
            and booking.is_active
            and intervals_overlap(booking.start_at, booking.end_at, start_at, end_at)
        ]

    def has_overlap(
        self,
        provider_id: str,
        start_utc: datetime,
        end_utc: datetime,
        exclude_booking_id: str | None = None,
    ) -> bool:
        return bool(self.find_conflicts(provider_id, start_utc, end_utc, exclude_booking_id))
