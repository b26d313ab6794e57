from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from app.services.booking_models import Booking

logger = logging.getLogger(__name__)


class BookingNotifier(ABC):
    @abstractmethod
    def booking_created(self, booking: Booking) -> None:
        raise NotImplementedError

    @abstractmethod
    def booking_updated(self, booking: Booking) -> None:
        raise NotImplementedError

    @abstractmethod
    def booking_cancelled(self, booking: Booking) -> None:
        raise NotImplementedError


class LoggingBookingNotifier(BookingNotifier):
    def booking_created(self, booking: Booking) -> None:
        logger.info(
            "Booking confirmed id=%s user_id=%s provider_id=%s start_at=%s",
            booking.id,
            booking.user_id,
            booking.provider_id,
            booking.start_at.isoformat(),
        )

    def booking_updated(self, booking: Booking) -> None:
        logger.info(
            "Booking rescheduled id=%s provider_id=%s start_at=%s end_at=%s",
            booking.id,
            booking.provider_id,
            booking.start_at.isoformat(),
            booking.end_at.isoformat(),
        )

    def booking_cancelled(self, booking: Booking) -> None:
        logger.info("Booking cancelled id=%s user_id=%s", booking.id, booking.user_id)
