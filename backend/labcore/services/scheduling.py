"""Reservation conflict resolution for shared equipment."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Iterator
from uuid import UUID

from sqlalchemy.orm import Session

from .. import models

# purpose: decide whether a requested window collides with active reservations on one instrument
# status: active
# depends_on: backend.labcore.models.Reservation


@dataclass(frozen=True)
class TimeInterval:
    """Half-open ``[start, end)`` window in naive UTC."""

    start: datetime
    end: datetime

    @classmethod
    def of(cls, start: datetime, end: datetime) -> "TimeInterval":
        return cls(start=as_utc_naive(start), end=as_utc_naive(end))

    @property
    def is_valid(self) -> bool:
        return self.end > self.start

    @property
    def duration_minutes(self) -> float:
        return max(0.0, (self.end - self.start).total_seconds() / 60)


def as_utc_naive(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def intervals_overlap(a: TimeInterval, b: TimeInterval) -> bool:
    return a.start < b.end and b.start < a.end


def find_conflicts(
    equipment_id: UUID,
    candidate: TimeInterval,
    existing: Iterable[models.Reservation],
) -> list[models.Reservation]:
    """Return active reservations on ``equipment_id`` that overlap ``candidate``."""

    return [
        reservation
        for reservation in existing
        if reservation.equipment_id == equipment_id
        and reservation.status != models.ReservationStatus.CANCELLED
        and intervals_overlap(
            candidate,
            TimeInterval.of(reservation.start_time, reservation.end_time),
        )
    ]


def check_overlap(
    equipment_id: UUID,
    candidate: TimeInterval,
    existing: Iterable[models.Reservation],
) -> bool:
    return bool(find_conflicts(equipment_id, candidate, existing))


def list_reservations(
    db: Session,
    equipment_id: UUID,
    *,
    window: TimeInterval | None = None,
) -> list[models.Reservation]:
    """Read the equipment's non-cancelled reservations from the store of record."""

    query = (
        db.query(models.Reservation)
        .filter(models.Reservation.equipment_id == equipment_id)
        .filter(models.Reservation.status != models.ReservationStatus.CANCELLED)
    )
    if window is not None:
        query = query.filter(
            models.Reservation.start_time < window.end,
            models.Reservation.end_time > window.start,
        )
    return query.order_by(models.Reservation.start_time.asc()).all()


_GUARD_REGISTRY_LOCK = threading.Lock()
_EQUIPMENT_LOCKS: dict[UUID, threading.Lock] = {}


def _lock_for(equipment_id: UUID) -> threading.Lock:
    with _GUARD_REGISTRY_LOCK:
        lock = _EQUIPMENT_LOCKS.get(equipment_id)
        if lock is None:
            lock = threading.Lock()
            _EQUIPMENT_LOCKS[equipment_id] = lock
        return lock


@contextmanager
def equipment_guard(db: Session, equipment_id: UUID) -> Iterator[models.Equipment | None]:
    """Serialise read-check-write on one instrument's reservations.

    The process lock covers SQLite, which ignores ``FOR UPDATE``; the row lock
    covers multiple workers on PostgreSQL. Callers must commit or roll back
    before the block exits. Unknown ids yield ``None`` without registering a
    lock, so the registry stays bounded by the equipment table.
    """

    known = db.query(models.Equipment.id).filter(models.Equipment.id == equipment_id).first()
    if known is None:
        yield None
        return

    with _lock_for(equipment_id):
        equipment = (
            db.query(models.Equipment)
            .filter(models.Equipment.id == equipment_id)
            .with_for_update()
            .one_or_none()
        )
        yield equipment
