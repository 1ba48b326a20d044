"""Waitlist for contested instrument windows."""

from __future__ import annotations

import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy.orm import Session

from .. import models
from ..rbac import PermissionResolver, Principal
from .outcomes import (
    IllegalStateTransition,
    NotFound,
    Outcome,
    PermissionDenied,
    ValidationFailure,
    failed,
    succeeded,
)
from .scheduling import TimeInterval

# purpose: record demand for a window that could not be booked
# status: active
# related_docs: promotion on cancellation is deliberately absent

logger = logging.getLogger(__name__)

RESOURCE = "reservation"


def enqueue(
    db: Session,
    resolver: PermissionResolver,
    principal: Principal,
    equipment_id: UUID,
    interval: TimeInterval,
    *,
    now: datetime | None = None,
) -> Outcome[models.WaitlistEntry]:
    """Queue the principal for a window; repeated requests return the open entry."""

    if not resolver.has_permission(principal.role, RESOURCE, "create"):
        return failed(PermissionDenied(RESOURCE, "create"))
    if not interval.is_valid:
        return failed(ValidationFailure("requested_end", "INVALID_RANGE", "end time must be after start time"))
    if db.get(models.Equipment, equipment_id) is None:
        return failed(NotFound("equipment", equipment_id))

    existing = (
        db.query(models.WaitlistEntry)
        .filter(
            models.WaitlistEntry.user_id == principal.id,
            models.WaitlistEntry.equipment_id == equipment_id,
            models.WaitlistEntry.requested_start == interval.start,
            models.WaitlistEntry.requested_end == interval.end,
            models.WaitlistEntry.status == models.WaitlistStatus.PENDING,
        )
        .first()
    )
    if existing:
        return succeeded(existing)

    now = now or models.utcnow()
    entry = models.WaitlistEntry(
        equipment_id=equipment_id,
        user_id=principal.id,
        company_id=principal.company_id,
        requested_start=interval.start,
        requested_end=interval.end,
        status=models.WaitlistStatus.PENDING,
        created_at=now,
        updated_at=now,
    )
    db.add(entry)
    db.flush()
    db.refresh(entry)
    logger.info("Waitlisted %s on %s for %s-%s", principal.id, equipment_id, interval.start, interval.end)
    return succeeded(entry)


def cancel_entry(
    db: Session,
    resolver: PermissionResolver,
    principal: Principal,
    entry_id: UUID,
    *,
    now: datetime | None = None,
) -> Outcome[models.WaitlistEntry]:
    entry = db.get(models.WaitlistEntry, entry_id)
    if entry is None:
        return failed(NotFound("waitlist entry", entry_id))
    if entry.user_id != principal.id and not resolver.can_access(
        principal, RESOURCE, "cancel", entry.user_id, entry.company_id
    ):
        return failed(PermissionDenied(RESOURCE, "cancel"))
    if entry.status not in models.WaitlistStatus.OPEN:
        return failed(
            IllegalStateTransition(
                target_id=entry.id,
                current_status=entry.status,
                attempted="cancel",
                message=f"cannot cancel a waitlist entry that is {entry.status}",
            )
        )
    entry.status = models.WaitlistStatus.CANCELLED
    entry.updated_at = now or models.utcnow()
    db.flush()
    db.refresh(entry)
    return succeeded(entry)


def list_entries(
    db: Session,
    resolver: PermissionResolver,
    principal: Principal,
    *,
    equipment_id: UUID | None = None,
) -> list[models.WaitlistEntry]:
    query = db.query(models.WaitlistEntry).order_by(models.WaitlistEntry.created_at.asc())
    if equipment_id:
        query = query.filter(models.WaitlistEntry.equipment_id == equipment_id)
    return resolver.filter(principal, RESOURCE, "read", query.all())
