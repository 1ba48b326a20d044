import logging
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from sqlalchemy.orm import Session

from ..database import get_db
from ..auth import get_current_user
from .. import models, schemas, audit, notify
from ..rbac import PermissionResolver, Principal, get_permission_resolver

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/equipment", tags=["equipment"])

MAINTENANCE = "maintenance"


def _require(resolver: PermissionResolver, user: models.User, action: str):
    if not resolver.has_permission(user.role, "equipment", action):
        raise HTTPException(status_code=403, detail="insufficient permissions")


@router.post("/devices", response_model=schemas.EquipmentOut)
def create_equipment(
    equipment: schemas.EquipmentCreate,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
    resolver: PermissionResolver = Depends(get_permission_resolver),
):
    _require(resolver, user, "create")
    db_eq = models.Equipment(**equipment.model_dump(), created_by=user.id)
    db.add(db_eq)
    db.flush()
    audit.log_action(db, user.id, "create_equipment", "equipment", db_eq.id, company_id=user.company_id)
    db.commit()
    db.refresh(db_eq)
    return db_eq


@router.get("/devices", response_model=list[schemas.EquipmentOut])
def list_equipment(
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
    resolver: PermissionResolver = Depends(get_permission_resolver),
):
    _require(resolver, user, "read")
    return db.query(models.Equipment).order_by(models.Equipment.name.asc()).all()


@router.get("/devices/{equipment_id}", response_model=schemas.EquipmentOut)
def get_equipment(
    equipment_id: UUID,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
    resolver: PermissionResolver = Depends(get_permission_resolver),
):
    _require(resolver, user, "read")
    eq = db.get(models.Equipment, equipment_id)
    if not eq:
        raise HTTPException(status_code=404)
    return eq


@router.put("/devices/{equipment_id}", response_model=schemas.EquipmentOut)
def update_equipment(
    equipment_id: UUID,
    data: schemas.EquipmentUpdate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
    resolver: PermissionResolver = Depends(get_permission_resolver),
):
    _require(resolver, user, "update")
    eq = db.get(models.Equipment, equipment_id)
    if not eq:
        raise HTTPException(status_code=404)
    previous_status = eq.status
    changes = data.model_dump(exclude_unset=True, exclude_none=True)
    for k, v in changes.items():
        setattr(eq, k, v)
    audit.log_action(
        db,
        user.id,
        "update_equipment",
        "equipment",
        eq.id,
        {k: str(v) for k, v in changes.items()},
        company_id=user.company_id,
    )
    db.commit()
    db.refresh(eq)

    if eq.status == MAINTENANCE and previous_status != MAINTENANCE:
        recipients = notify.permitted_recipients(db, resolver, "equipment", "update")
        logger.info("Equipment %s reported for maintenance, notifying %d operator(s)", eq.id, len(recipients))
        background_tasks.add_task(
            notify.dispatch,
            recipients,
            f"Equipment malfunction: {eq.name}",
            f"{eq.name} was moved to maintenance by {user.email}.",
        )
    return eq
