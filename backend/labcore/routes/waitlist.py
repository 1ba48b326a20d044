from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..auth import get_current_user
from .. import models, schemas
from ..http_errors import unwrap
from ..rbac import PermissionResolver, Principal, get_permission_resolver
from ..services import waitlist
from ..services.scheduling import TimeInterval

router = APIRouter(prefix="/api/waitlist", tags=["waitlist"])


@router.post("", response_model=schemas.WaitlistEntryOut)
def join_waitlist(
    payload: schemas.WaitlistCreate,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
    resolver: PermissionResolver = Depends(get_permission_resolver),
):
    interval = TimeInterval.of(payload.requested_start, payload.requested_end)
    entry = unwrap(
        waitlist.enqueue(db, resolver, Principal.from_user(user), payload.equipment_id, interval)
    )
    db.commit()
    db.refresh(entry)
    return entry


@router.get("", response_model=list[schemas.WaitlistEntryOut])
def list_waitlist(
    equipment_id: UUID | None = None,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
    resolver: PermissionResolver = Depends(get_permission_resolver),
):
    return waitlist.list_entries(db, resolver, Principal.from_user(user), equipment_id=equipment_id)


@router.post("/{entry_id}/cancel", response_model=schemas.WaitlistEntryOut)
def cancel_waitlist_entry(
    entry_id: UUID,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
    resolver: PermissionResolver = Depends(get_permission_resolver),
):
    entry = unwrap(waitlist.cancel_entry(db, resolver, Principal.from_user(user), entry_id))
    db.commit()
    db.refresh(entry)
    return entry
