from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from contextlib import ExitStack, contextmanager
from datetime import datetime

from fastapi import HTTPException, status

from app.core.config import Settings, get_settings
from app.schemas.auth import CurrentUserResponse
from app.schemas.booking import (
    AvailableSlotsResponse,
    BookingListResponse,
    BookingRequest,
    BookingResponse,
    SlotResponse,
)
from app.services.availability_engine import AvailabilityEngine
from app.services.booking_models import Booking
from app.services.booking_notifier import BookingNotifier, LoggingBookingNotifier
from app.services.booking_store import BOOKING_SLOT_TAKEN, BookingStore, create_booking_store
from app.services.clock import Clock, SystemClock
from app.services.conflict_guard import BookingConflictGuard
from app.services.outcomes import (
    Outcome,
    conflict,
    invalid_argument,
    not_found,
    unauthorized,
    unwrap_outcome,
)
from app.services.pagination import paginate
from app.services.provider_store import ProviderStore, create_provider_store
from app.services.service_catalog_store import ServiceCatalogStore, create_service_catalog_store
from app.services.time_window import ensure_utc
from app.services.user_store import UserStore, create_user_store
from app.services.working_hour_store import WorkingHourStore, create_working_hour_store

logger = logging.getLogger(__name__)


class ProviderLockRegistry:
    """One lock per provider id, serialising check-then-write sequences on a calendar."""

    def __init__(self) -> None:
        self._locks: dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def lock_for(self, provider_id: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(provider_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[provider_id] = lock
            return lock

    @contextmanager
    def hold(self, *provider_ids: str) -> Iterator[None]:
        # Sorted acquisition keeps two-provider updates deadlock free.
        with ExitStack() as stack:
            for provider_id in sorted(set(provider_ids)):
                stack.enter_context(self.lock_for(provider_id))
            yield


_shared_lock_registry = ProviderLockRegistry()


class BookingService:
    def __init__(
        self,
        settings: Settings | None = None,
        *,
        user_store: UserStore | None = None,
        provider_store: ProviderStore | None = None,
        service_store: ServiceCatalogStore | None = None,
        working_hour_store: WorkingHourStore | None = None,
        booking_store: BookingStore | None = None,
        clock: Clock | None = None,
        notifier: BookingNotifier | None = None,
        lock_registry: ProviderLockRegistry | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.user_store = user_store or create_user_store(self.settings)
        self.provider_store = provider_store or create_provider_store(self.settings)
        self.service_store = service_store or create_service_catalog_store(self.settings)
        self.working_hour_store = working_hour_store or create_working_hour_store(self.settings)
        self.booking_store = booking_store or create_booking_store(self.settings)
        self.clock = clock or SystemClock()
        self.notifier = notifier or LoggingBookingNotifier()
        self.lock_registry = lock_registry or _shared_lock_registry
        self.conflict_guard = BookingConflictGuard(self.booking_store)
        self.availability_engine = AvailabilityEngine(
            working_hour_store=self.working_hour_store,
            booking_store=self.booking_store,
            service_store=self.service_store,
            clock=self.clock,
        )

    def get_available_slots(
        self,
        provider_id: str,
        *,
        days_ahead: int | None = None,
        slot_minutes: int | None = None,
        service_id: str | None = None,
        page: int = 1,
        per_page: int | None = None,
    ) -> AvailableSlotsResponse:
        provider = self.provider_store.get_provider(provider_id.strip())
        if not provider:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Provider not found.",
            )

        slots = unwrap_outcome(
            self.availability_engine.generate_available_slots(
                provider,
                days_ahead if days_ahead is not None else self.settings.availability_days_ahead,
                slot_minutes if slot_minutes is not None else self.settings.availability_slot_minutes,
                service_id=service_id.strip() if service_id else None,
            ),
        )
        page_items, pagination = paginate(
            slots,
            page=page,
            per_page=per_page or self.settings.slots_per_page,
        )
        return AvailableSlotsResponse(
            data=[SlotResponse(**slot.to_dict()) for slot in page_items],
            total=pagination.total,
            pagination=pagination,
        )

    def list_bookings(
        self,
        current_user: CurrentUserResponse,
        *,
        page: int = 1,
        per_page: int | None = None,
    ) -> BookingListResponse:
        if current_user.is_admin:
            bookings = self.booking_store.list_bookings()
        else:
            bookings = self.booking_store.list_bookings(user_id=current_user.id)
        return self._build_booking_list(bookings, page=page, per_page=per_page)

    def list_bookings_for_user(
        self,
        current_user: CurrentUserResponse,
        user_id: str,
        *,
        page: int = 1,
        per_page: int | None = None,
    ) -> BookingListResponse:
        normalized_user_id = user_id.strip()
        if normalized_user_id != current_user.id and not current_user.is_admin:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Unauthorized",
            )
        if not self.user_store.get_user_by_id(normalized_user_id):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="User not found.",
            )
        bookings = self.booking_store.list_bookings(user_id=normalized_user_id)
        return self._build_booking_list(bookings, page=page, per_page=per_page)

    def get_booking(self, current_user: CurrentUserResponse, booking_id: str) -> BookingResponse:
        booking = unwrap_outcome(self._load_owned_booking(current_user, booking_id))
        return _to_booking_response(booking)

    def create_booking(
        self,
        current_user: CurrentUserResponse,
        payload: BookingRequest,
    ) -> BookingResponse:
        user_id = (payload.user_id or current_user.id).strip()
        if user_id != current_user.id and not current_user.is_admin:
            unwrap_outcome(unauthorized())

        booking = unwrap_outcome(
            self.reserve(
                user_id=user_id,
                provider_id=payload.provider_id,
                service_id=payload.service_id,
                start_at=payload.start_at,
                end_at=payload.end_at,
            ),
        )
        self.notifier.booking_created(booking)
        return _to_booking_response(booking)

    def update_booking(
        self,
        current_user: CurrentUserResponse,
        booking_id: str,
        payload: BookingRequest,
    ) -> BookingResponse:
        existing = unwrap_outcome(self._load_owned_booking(current_user, booking_id))
        user_id = (payload.user_id or existing.user_id).strip()
        if user_id != current_user.id and not current_user.is_admin:
            unwrap_outcome(unauthorized())

        booking = unwrap_outcome(
            self.reschedule(
                existing,
                user_id=user_id,
                provider_id=payload.provider_id,
                service_id=payload.service_id,
                start_at=payload.start_at,
                end_at=payload.end_at,
            ),
        )
        self.notifier.booking_updated(booking)
        return _to_booking_response(booking)

    def cancel_booking(self, current_user: CurrentUserResponse, booking_id: str) -> BookingResponse:
        existing = unwrap_outcome(self._load_owned_booking(current_user, booking_id))
        if not existing.is_active:
            return _to_booking_response(existing)

        with self.lock_registry.hold(existing.provider_id):
            cancelled = self.booking_store.mark_cancelled(existing.id, self.clock.now())
        if not cancelled:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Booking not found.",
            )
        self.notifier.booking_cancelled(cancelled)
        return _to_booking_response(cancelled)

    def reserve(
        self,
        *,
        user_id: str,
        provider_id: str,
        service_id: str,
        start_at: datetime,
        end_at: datetime,
    ) -> Outcome[Booking]:
        """Persist a new booking unless its interval collides with an active one."""
        start_utc = ensure_utc(start_at)
        end_utc = ensure_utc(end_at)
        validation = self._validate_request(
            user_id=user_id,
            provider_id=provider_id,
            service_id=service_id,
            start_at=start_utc,
            end_at=end_utc,
        )
        if not validation.ok:
            return validation

        normalized_provider_id = provider_id.strip()
        with self.lock_registry.hold(normalized_provider_id):
            if self.conflict_guard.has_overlap(normalized_provider_id, start_utc, end_utc):
                logger.info(
                    "Rejected overlapping booking provider_id=%s start_at=%s end_at=%s",
                    normalized_provider_id,
                    start_utc.isoformat(),
                    end_utc.isoformat(),
                )
                return conflict()
            try:
                booking = self.booking_store.create_booking(
                    user_id=user_id,
                    provider_id=normalized_provider_id,
                    service_id=service_id,
                    start_at=start_utc,
                    end_at=end_utc,
                )
            except ValueError as exc:
                if str(exc) != BOOKING_SLOT_TAKEN:
                    raise
                logger.info(
                    "Rejected duplicate booking start provider_id=%s start_at=%s",
                    normalized_provider_id,
                    start_utc.isoformat(),
                )
                return conflict()

        logger.info(
            "Created booking id=%s provider_id=%s start_at=%s",
            booking.id,
            booking.provider_id,
            booking.start_at.isoformat(),
        )
        return Outcome.success(booking)

    def reschedule(
        self,
        booking: Booking,
        *,
        user_id: str,
        provider_id: str,
        service_id: str,
        start_at: datetime,
        end_at: datetime,
    ) -> Outcome[Booking]:
        """Move an active booking, checking the new interval against every other booking."""
        if not booking.is_active:
            return conflict("Cancelled bookings cannot be modified.")

        start_utc = ensure_utc(start_at)
        end_utc = ensure_utc(end_at)
        validation = self._validate_request(
            user_id=user_id,
            provider_id=provider_id,
            service_id=service_id,
            start_at=start_utc,
            end_at=end_utc,
        )
        if not validation.ok:
            return validation

        normalized_provider_id = provider_id.strip()
        with self.lock_registry.hold(booking.provider_id, normalized_provider_id):
            current = self.booking_store.get_booking(booking.id)
            if not current:
                return not_found("Booking not found.")
            if not current.is_active:
                return conflict("Cancelled bookings cannot be modified.")
            if self.conflict_guard.has_overlap(
                normalized_provider_id,
                start_utc,
                end_utc,
                exclude_booking_id=booking.id,
            ):
                logger.info(
                    "Rejected overlapping reschedule id=%s provider_id=%s start_at=%s",
                    booking.id,
                    normalized_provider_id,
                    start_utc.isoformat(),
                )
                return conflict()
            try:
                updated = self.booking_store.update_booking(
                    booking.id,
                    user_id=user_id,
                    provider_id=normalized_provider_id,
                    service_id=service_id,
                    start_at=start_utc,
                    end_at=end_utc,
                )
            except ValueError as exc:
                if str(exc) != BOOKING_SLOT_TAKEN:
                    raise
                return conflict()

        if not updated:
            return not_found("Booking not found.")
        logger.info("Updated booking id=%s provider_id=%s", updated.id, updated.provider_id)
        return Outcome.success(updated)

    def _validate_request(
        self,
        *,
        user_id: str,
        provider_id: str,
        service_id: str,
        start_at: datetime,
        end_at: datetime,
    ) -> Outcome[None]:
        if start_at <= ensure_utc(self.clock.now()):
            return invalid_argument("start_at must be in the future.")
        if end_at <= start_at:
            return invalid_argument("end_at must be after start_at.")
        if not self.user_store.get_user_by_id(user_id.strip()):
            return not_found("User not found.")
        if not self.provider_store.get_provider(provider_id.strip()):
            return not_found("Provider not found.")
        if not self.service_store.get_service(service_id.strip()):
            return not_found("Service not found.")
        return Outcome.success(None)

    def _load_owned_booking(
        self,
        current_user: CurrentUserResponse,
        booking_id: str,
    ) -> Outcome[Booking]:
        booking = self.booking_store.get_booking(booking_id.strip())
        if not booking:
            return not_found("Booking not found.")
        if booking.user_id != current_user.id and not current_user.is_admin:
            return unauthorized()
        return Outcome.success(booking)

    def _build_booking_list(
        self,
        bookings: list[Booking],
        *,
        page: int,
        per_page: int | None,
    ) -> BookingListResponse:
        page_items, pagination = paginate(
            bookings,
            page=page,
            per_page=per_page or self.settings.bookings_per_page,
        )
        return BookingListResponse(
            data=[_to_booking_response(booking) for booking in page_items],
            pagination=pagination,
        )


def _to_booking_response(booking: Booking) -> BookingResponse:
    return BookingResponse(**booking.to_dict())
