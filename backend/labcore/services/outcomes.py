"""Explicit success/failure results for booking core operations."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Generic, TypeVar, Union
from uuid import UUID

# purpose: keep expected rejections (overlap, permission, state) out of exception control flow
# status: active

T = TypeVar("T")


@dataclass(frozen=True)
class ValidationFailure:
    field: str
    code: str
    message: str


@dataclass(frozen=True)
class OverlapConflict(ValidationFailure):
    """Requested window collides with an active reservation; waitlisting is possible."""

    equipment_id: UUID
    conflicting_reservation_ids: tuple[UUID, ...]
    requested_start: datetime
    requested_end: datetime


@dataclass(frozen=True)
class IllegalStateTransition:
    """Status move the row does not allow; ``target_id`` is the reservation or waitlist entry."""

    target_id: UUID
    current_status: str
    attempted: str
    message: str


@dataclass(frozen=True)
class PermissionDenied:
    resource: str
    action: str
    message: str = "not authorized"


@dataclass(frozen=True)
class NotFound:
    kind: str
    identifier: UUID

    @property
    def message(self) -> str:
        return f"{self.kind} {self.identifier} not found"


Failure = Union[ValidationFailure, IllegalStateTransition, PermissionDenied, NotFound]


@dataclass(frozen=True)
class Outcome(Generic[T]):
    value: T | None = None
    failure: Failure | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None


def succeeded(value: T) -> Outcome[T]:
    return Outcome(value=value)


def failed(failure: Failure) -> Outcome:
    return Outcome(failure=failure)
