from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..auth import get_current_user
from .. import models, schemas
from ..http_errors import unwrap
from ..rbac import PermissionResolver, Principal, get_permission_resolver
from ..services import reservations

router = APIRouter(prefix="/api/reservations", tags=["reservations"])


@router.post("", response_model=schemas.ReservationOut)
def create_reservation(
    payload: schemas.ReservationCreate,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
    resolver: PermissionResolver = Depends(get_permission_resolver),
):
    outcome = reservations.create_reservation(db, resolver, Principal.from_user(user), payload)
    return unwrap(outcome)


@router.get("", response_model=list[schemas.ReservationOut])
def list_reservations(
    equipment_id: UUID | None = None,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
    resolver: PermissionResolver = Depends(get_permission_resolver),
):
    return reservations.list_visible_reservations(
        db, resolver, Principal.from_user(user), equipment_id=equipment_id
    )


@router.get("/{reservation_id}", response_model=schemas.ReservationOut)
def get_reservation(
    reservation_id: UUID,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
    resolver: PermissionResolver = Depends(get_permission_resolver),
):
    return unwrap(reservations.get_reservation(db, resolver, Principal.from_user(user), reservation_id))


@router.post("/{reservation_id}/check-in", response_model=schemas.ReservationOut)
def check_in(
    reservation_id: UUID,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
    resolver: PermissionResolver = Depends(get_permission_resolver),
):
    return unwrap(reservations.check_in(db, resolver, Principal.from_user(user), reservation_id))


@router.post("/{reservation_id}/check-out", response_model=schemas.UsageRecordOut)
def check_out(
    reservation_id: UUID,
    payload: schemas.CheckOutRequest | None = None,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
    resolver: PermissionResolver = Depends(get_permission_resolver),
):
    cycles = payload.cycles if payload else 0
    outcome = reservations.check_out(
        db, resolver, Principal.from_user(user), reservation_id, cycles=cycles
    )
    return unwrap(outcome)


@router.post("/{reservation_id}/cancel", response_model=schemas.ReservationOut)
def cancel_reservation(
    reservation_id: UUID,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
    resolver: PermissionResolver = Depends(get_permission_resolver),
):
    return unwrap(reservations.cancel(db, resolver, Principal.from_user(user), reservation_id))


@router.post("/{reservation_id}/no-show", response_model=schemas.ReservationOut)
def mark_no_show(
    reservation_id: UUID,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
    resolver: PermissionResolver = Depends(get_permission_resolver),
):
    return unwrap(reservations.mark_no_show(db, resolver, Principal.from_user(user), reservation_id))
