"""Typed results returned by the booking core.

Core operations report expected failures as values; the HTTP-facing services
turn them into ``HTTPException`` with ``unwrap_outcome``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Generic, TypeVar

from fastapi import HTTPException, status

T = TypeVar("T")

BOOKING_CONFLICT_MESSAGE = "This time slot is already booked."


class ErrorKind(StrEnum):
    NOT_FOUND = "not_found"
    INVALID_ARGUMENT = "invalid_argument"
    CONFLICT = "conflict"
    UNAUTHORIZED = "unauthorized"


_HTTP_STATUS_BY_KIND = {
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.INVALID_ARGUMENT: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.UNAUTHORIZED: status.HTTP_403_FORBIDDEN,
}


@dataclass(frozen=True)
class OperationError:
    kind: ErrorKind
    message: str


@dataclass(frozen=True)
class Outcome(Generic[T]):
    value: T | None = None
    error: OperationError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> Outcome[T]:
        return cls(value=value)

    @classmethod
    def failure(cls, kind: ErrorKind, message: str) -> Outcome[T]:
        return cls(error=OperationError(kind=kind, message=message))


def not_found(message: str) -> Outcome:
    return Outcome.failure(ErrorKind.NOT_FOUND, message)


def invalid_argument(message: str) -> Outcome:
    return Outcome.failure(ErrorKind.INVALID_ARGUMENT, message)


def conflict(message: str = BOOKING_CONFLICT_MESSAGE) -> Outcome:
    return Outcome.failure(ErrorKind.CONFLICT, message)


def unauthorized(message: str = "Unauthorized") -> Outcome:
    return Outcome.failure(ErrorKind.UNAUTHORIZED, message)


def unwrap_outcome(outcome: Outcome[T]) -> T:
    if outcome.error is not None:
        raise HTTPException(
            status_code=_HTTP_STATUS_BY_KIND[outcome.error.kind],
            detail=outcome.error.message,
        )
    return outcome.value  # type: ignore[return-value]
