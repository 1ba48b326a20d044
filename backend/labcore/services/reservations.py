"""Reservation lifecycle: booking, check-in, checkout metering, cancellation."""

from __future__ import annotations

import logging
import os
from datetime import datetime, timedelta
from typing import Any
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .. import audit, models, schemas
from ..rbac import SCOPE_OWN_ONLY, PermissionResolver, Principal
from . import scheduling
from .outcomes import (
    IllegalStateTransition,
    NotFound,
    Outcome,
    OverlapConflict,
    PermissionDenied,
    ValidationFailure,
    failed,
    succeeded,
)
from .scheduling import TimeInterval

# purpose: own the reservation state machine and emit usage records at checkout
# status: active
# depends_on: backend.labcore.services.scheduling, backend.labcore.rbac.PermissionResolver

logger = logging.getLogger(__name__)

RESOURCE = "reservation"
GRACE_PERIOD = timedelta(minutes=int(os.getenv("BOOKING_GRACE_MINUTES", "5")))

_Status = models.ReservationStatus

# attempted operation -> (legal source states, target state, required action)
_TRANSITIONS: dict[str, tuple[frozenset[str], str, str]] = {
    "check_in": (frozenset({_Status.AWAITING_CHECK_IN}), _Status.CHECKED_IN, "update"),
    "check_out": (frozenset({_Status.CHECKED_IN}), _Status.COMPLETED, "update"),
    "cancel": (frozenset({_Status.AWAITING_CHECK_IN}), _Status.CANCELLED, "cancel"),
    "no_show": (frozenset({_Status.AWAITING_CHECK_IN}), _Status.NO_SHOW, "manage"),
}


def validate_window(interval: TimeInterval, *, now: datetime) -> ValidationFailure | None:
    if not interval.is_valid:
        return ValidationFailure("end_time", "INVALID_RANGE", "end time must be after start time")
    if interval.start < now - GRACE_PERIOD:
        return ValidationFailure("start_time", "PAST_DATE", "cannot create reservations in the past")
    return None


def create_reservation(
    db: Session,
    resolver: PermissionResolver,
    principal: Principal,
    payload: schemas.ReservationCreate,
    *,
    now: datetime | None = None,
) -> Outcome[models.Reservation]:
    """Book a window on an instrument, or explain why not.

    Overlap check and insert run inside the instrument guard and commit
    before it is released.
    """

    if not resolver.has_permission(principal.role, RESOURCE, "create"):
        logger.warning("Principal %s may not create reservations", principal.id)
        return failed(PermissionDenied(RESOURCE, "create"))

    now = now or models.utcnow()
    interval = TimeInterval.of(payload.start_time, payload.end_time)
    invalid = validate_window(interval, now=now)
    if invalid is not None:
        return failed(invalid)

    with scheduling.equipment_guard(db, payload.equipment_id) as equipment:
        try:
            if equipment is None:
                db.rollback()
                return failed(NotFound("equipment", payload.equipment_id))
            if not equipment.is_reservable:
                db.rollback()
                return failed(
                    ValidationFailure(
                        "equipment_id",
                        "NOT_RESERVABLE",
                        f"{equipment.name} does not take reservations",
                    )
                )

            existing = scheduling.list_reservations(db, equipment.id, window=interval)
            conflicts = scheduling.find_conflicts(equipment.id, interval, existing)
            if conflicts:
                db.rollback()
                logger.warning(
                    "Reservation request on %s for %s-%s overlaps %d booking(s)",
                    equipment.id,
                    interval.start,
                    interval.end,
                    len(conflicts),
                )
                return failed(
                    OverlapConflict(
                        field="start_time",
                        code="OVERLAP_CONFLICT",
                        message="instrument already reserved for the selected window",
                        equipment_id=equipment.id,
                        conflicting_reservation_ids=tuple(r.id for r in conflicts),
                        requested_start=interval.start,
                        requested_end=interval.end,
                    )
                )

            reservation = models.Reservation(
                equipment_id=equipment.id,
                user_id=principal.id,
                company_id=principal.company_id,
                project_id=payload.project_id,
                start_time=interval.start,
                end_time=interval.end,
                status=_Status.AWAITING_CHECK_IN,
                notes=payload.notes,
                created_at=now,
                updated_at=now,
            )
            db.add(reservation)
            db.flush()
            audit.log_action(
                db,
                principal.id,
                "create_reservation",
                "reservation",
                reservation.id,
                {"equipment_id": str(equipment.id)},
                company_id=principal.company_id,
            )
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            raise

    db.refresh(reservation)
    logger.info("Reservation %s created on %s", reservation.id, reservation.equipment_id)
    return succeeded(reservation)


def check_in(
    db: Session,
    resolver: PermissionResolver,
    principal: Principal,
    reservation_id: UUID,
    *,
    now: datetime | None = None,
) -> Outcome[models.Reservation]:
    now = now or models.utcnow()
    return _transition(
        db,
        resolver,
        principal,
        reservation_id,
        "check_in",
        values={"actual_start_time": now, "updated_at": now},
    )


def check_out(
    db: Session,
    resolver: PermissionResolver,
    principal: Principal,
    reservation_id: UUID,
    *,
    cycles: int = 0,
    now: datetime | None = None,
) -> Outcome[models.UsageRecord]:
    """Complete an in-progress reservation and meter it.

    The status change and the usage record commit together or not at all.
    """

    now = now or models.utcnow()
    reservation, rejection = _load_for(db, resolver, principal, reservation_id, "check_out")
    if rejection is not None:
        return rejection
    if reservation.actual_start_time is None:
        return failed(
            ValidationFailure("actual_start_time", "MISSING_CHECK_IN", "reservation was never checked in")
        )

    duration_minutes = max(0.0, (now - reservation.actual_start_time).total_seconds() / 60)
    usage = models.UsageRecord(
        reservation_id=reservation.id,
        equipment_id=reservation.equipment_id,
        user_id=reservation.user_id,
        company_id=reservation.company_id,
        project_id=reservation.project_id,
        duration_minutes=duration_minutes,
        cycles=cycles,
        recorded_at=now,
    )
    try:
        if not _compare_and_set(db, reservation, "check_out", {"actual_end_time": now, "updated_at": now}):
            return _stale(db, reservation, "check_out")
        db.add(usage)
        audit.log_action(
            db,
            principal.id,
            "check_out_reservation",
            "reservation",
            reservation.id,
            {"duration_minutes": duration_minutes, "cycles": cycles},
            company_id=reservation.company_id,
        )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise

    db.refresh(usage)
    logger.info("Reservation %s checked out after %.1f minutes", reservation.id, duration_minutes)
    return succeeded(usage)


def cancel(
    db: Session,
    resolver: PermissionResolver,
    principal: Principal,
    reservation_id: UUID,
    *,
    now: datetime | None = None,
) -> Outcome[models.Reservation]:
    now = now or models.utcnow()
    return _transition(db, resolver, principal, reservation_id, "cancel", values={"updated_at": now})


def mark_no_show(
    db: Session,
    resolver: PermissionResolver,
    principal: Principal,
    reservation_id: UUID,
    *,
    now: datetime | None = None,
) -> Outcome[models.Reservation]:
    """Operators and tenant managers flag a reservation nobody showed up for."""

    if resolver.resolve_scope(principal.role, RESOURCE, "manage") in (None, SCOPE_OWN_ONLY):
        return failed(PermissionDenied(RESOURCE, "manage"))
    now = now or models.utcnow()
    return _transition(db, resolver, principal, reservation_id, "no_show", values={"updated_at": now})


def get_reservation(
    db: Session,
    resolver: PermissionResolver,
    principal: Principal,
    reservation_id: UUID,
) -> Outcome[models.Reservation]:
    reservation = db.get(models.Reservation, reservation_id)
    if reservation is None:
        return failed(NotFound("reservation", reservation_id))
    if not resolver.can_access(principal, RESOURCE, "read", reservation.user_id, reservation.company_id):
        return failed(PermissionDenied(RESOURCE, "read"))
    return succeeded(reservation)


def list_visible_reservations(
    db: Session,
    resolver: PermissionResolver,
    principal: Principal,
    *,
    equipment_id: UUID | None = None,
) -> list[models.Reservation]:
    query = db.query(models.Reservation).order_by(models.Reservation.start_time.asc())
    if equipment_id:
        query = query.filter(models.Reservation.equipment_id == equipment_id)
    return resolver.filter(principal, RESOURCE, "read", query.all())


def _load_for(
    db: Session,
    resolver: PermissionResolver,
    principal: Principal,
    reservation_id: UUID,
    attempted: str,
) -> tuple[models.Reservation | None, Outcome | None]:
    sources, _, action = _TRANSITIONS[attempted]
    reservation = db.get(models.Reservation, reservation_id)
    if reservation is None:
        return None, failed(NotFound("reservation", reservation_id))
    if not resolver.can_access(principal, RESOURCE, action, reservation.user_id, reservation.company_id):
        logger.warning("Principal %s denied %s on reservation %s", principal.id, attempted, reservation_id)
        return None, failed(PermissionDenied(RESOURCE, action))
    if reservation.status not in sources:
        return None, failed(_illegal(reservation, attempted))
    return reservation, None


def _transition(
    db: Session,
    resolver: PermissionResolver,
    principal: Principal,
    reservation_id: UUID,
    attempted: str,
    *,
    values: dict[str, Any],
) -> Outcome[models.Reservation]:
    reservation, rejection = _load_for(db, resolver, principal, reservation_id, attempted)
    if rejection is not None:
        return rejection
    previous = reservation.status
    try:
        if not _compare_and_set(db, reservation, attempted, values):
            return _stale(db, reservation, attempted)
        audit.log_action(
            db,
            principal.id,
            f"{attempted}_reservation",
            "reservation",
            reservation.id,
            {"from": previous, "to": _TRANSITIONS[attempted][1]},
            company_id=reservation.company_id,
        )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise
    db.refresh(reservation)
    logger.info("Reservation %s moved %s -> %s", reservation.id, previous, reservation.status)
    return succeeded(reservation)


def _compare_and_set(
    db: Session,
    reservation: models.Reservation,
    attempted: str,
    values: dict[str, Any],
) -> bool:
    """Apply the transition only if the stored status is still a legal source."""

    sources, target, _ = _TRANSITIONS[attempted]
    updated = (
        db.query(models.Reservation)
        .filter(models.Reservation.id == reservation.id)
        .filter(models.Reservation.status.in_(sources))
        .update({**values, "status": target}, synchronize_session=False)
    )
    return updated == 1


def _stale(db: Session, reservation: models.Reservation, attempted: str) -> Outcome:
    # another request moved the reservation between our read and write
    db.rollback()
    db.refresh(reservation)
    return failed(_illegal(reservation, attempted))


def _illegal(reservation: models.Reservation, attempted: str) -> IllegalStateTransition:
    return IllegalStateTransition(
        target_id=reservation.id,
        current_status=reservation.status,
        attempted=attempted,
        message=f"cannot {attempted.replace('_', ' ')} a reservation that is {reservation.status}",
    )
