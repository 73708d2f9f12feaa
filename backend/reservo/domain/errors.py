"""Error taxonomy and tagged outcomes returned by the admission use cases."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Generic, TypeVar, Union

T = TypeVar("T")


class ErrorKind(StrEnum):
    INVALID_REQUEST = "invalid_request"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    INTERNAL = "internal"


class ValidationErrorKind(StrEnum):
    START_IN_PAST = "start_in_past"
    BEYOND_HORIZON = "beyond_horizon"
    OUTSIDE_OPERATING_HOURS = "outside_operating_hours"
    START_NOT_ALIGNED = "start_not_aligned"
    DURATION_OUT_OF_RANGE = "duration_out_of_range"
    DURATION_NOT_ALIGNED = "duration_not_aligned"
    END_AFTER_CLOSING = "end_after_closing"


@dataclass(frozen=True)
class DomainError:
    kind: ErrorKind
    message: str


@dataclass(frozen=True)
class ValidationError:
    kind: ValidationErrorKind
    message: str

    def as_domain_error(self) -> DomainError:
        return DomainError(ErrorKind.INVALID_REQUEST, self.message)


@dataclass(frozen=True)
class Admitted(Generic[T]):
    value: T


@dataclass(frozen=True)
class Rejected:
    error: DomainError

    @classmethod
    def of(cls, kind: ErrorKind, message: str) -> "Rejected":
        return cls(DomainError(kind, message))

    @classmethod
    def invalid(cls, error: ValidationError) -> "Rejected":
        return cls(error.as_domain_error())


Outcome = Union[Admitted[T], Rejected]


class OverlapViolation(Exception):
    """Raised by a repository when a write would break the non-overlap constraint."""
