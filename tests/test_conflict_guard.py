from datetime import UTC, datetime

import pytest

from app.services.booking_store import BOOKING_SLOT_TAKEN, InMemoryBookingStore
from app.services.conflict_guard import BookingConflictGuard


def _monday(hour: int, minute: int = 0) -> datetime:
    return datetime(2025, 1, 6, hour, minute, tzinfo=UTC)


@pytest.fixture
def booking_store() -> InMemoryBookingStore:
    store = InMemoryBookingStore()
    store.create_booking(
        user_id="user-1",
        provider_id="provider-1",
        service_id="service-1",
        start_at=_monday(10),
        end_at=_monday(11),
    )
    return store


def test_identical_interval_conflicts(booking_store: InMemoryBookingStore) -> None:
    guard = BookingConflictGuard(booking_store)

    assert guard.has_overlap("provider-1", _monday(10), _monday(11))


@pytest.mark.parametrize(
    ("start", "end"),
    [
        (_monday(11), _monday(12)),
        (_monday(9), _monday(10)),
    ],
)
def test_touching_boundaries_do_not_conflict(
    booking_store: InMemoryBookingStore,
    start: datetime,
    end: datetime,
) -> None:
    guard = BookingConflictGuard(booking_store)

    assert not guard.has_overlap("provider-1", start, end)


@pytest.mark.parametrize(
    ("start", "end"),
    [
        (_monday(10, 30), _monday(11, 30)),
        (_monday(9, 30), _monday(10, 30)),
        (_monday(10, 15), _monday(10, 45)),
        (_monday(9), _monday(12)),
    ],
)
def test_partial_overlaps_conflict(
    booking_store: InMemoryBookingStore,
    start: datetime,
    end: datetime,
) -> None:
    guard = BookingConflictGuard(booking_store)

    assert guard.has_overlap("provider-1", start, end)


def test_other_providers_are_ignored(booking_store: InMemoryBookingStore) -> None:
    guard = BookingConflictGuard(booking_store)

    assert not guard.has_overlap("provider-2", _monday(10), _monday(11))


def test_excluded_booking_is_ignored(booking_store: InMemoryBookingStore) -> None:
    guard = BookingConflictGuard(booking_store)
    existing = booking_store.list_bookings(provider_id="provider-1")[0]

    assert not guard.has_overlap(
        "provider-1",
        _monday(10, 30),
        _monday(11, 30),
        exclude_booking_id=existing.id,
    )


def test_cancelled_bookings_do_not_conflict(booking_store: InMemoryBookingStore) -> None:
    guard = BookingConflictGuard(booking_store)
    existing = booking_store.list_bookings(provider_id="provider-1")[0]

    booking_store.mark_cancelled(existing.id, _monday(8))

    assert not guard.has_overlap("provider-1", _monday(10), _monday(11))
    assert guard.find_conflicts("provider-1", _monday(9), _monday(12)) == []


def test_naive_datetimes_are_treated_as_utc(booking_store: InMemoryBookingStore) -> None:
    guard = BookingConflictGuard(booking_store)

    assert guard.has_overlap("provider-1", datetime(2025, 1, 6, 10, 30), datetime(2025, 1, 6, 11, 30))


def test_store_rejects_second_active_booking_with_same_start(
    booking_store: InMemoryBookingStore,
) -> None:
    with pytest.raises(ValueError, match=BOOKING_SLOT_TAKEN):
        booking_store.create_booking(
            user_id="user-2",
            provider_id="provider-1",
            service_id="service-1",
            start_at=_monday(10),
            end_at=_monday(10, 30),
        )
