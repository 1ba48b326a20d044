from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..database import get_db
from ..auth import get_current_user
from .. import models, schemas, audit
from ..rbac import PermissionResolver, get_permission_resolver
from ..services import lab_settings

router = APIRouter(prefix="/api/settings", tags=["settings"])


@router.get("", response_model=schemas.LabSettingsOut)
def read_settings(
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
    resolver: PermissionResolver = Depends(get_permission_resolver),
):
    if not resolver.has_permission(user.role, "settings", "read"):
        raise HTTPException(status_code=403, detail="insufficient permissions")
    settings = lab_settings.get_lab_settings(db)
    db.commit()
    db.refresh(settings)
    return settings


@router.put("", response_model=schemas.LabSettingsOut)
def update_settings(
    payload: schemas.LabSettingsUpdate,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
    resolver: PermissionResolver = Depends(get_permission_resolver),
):
    if not resolver.has_permission(user.role, "settings", "update"):
        raise HTTPException(status_code=403, detail="insufficient permissions")
    settings = lab_settings.update_lab_settings(db, payload, actor_id=user.id)
    audit.log_action(
        db,
        user.id,
        "update_settings",
        "settings",
        None,
        payload.model_dump(exclude_unset=True, exclude_none=True),
        company_id=user.company_id,
    )
    db.commit()
    db.refresh(settings)
    return settings
