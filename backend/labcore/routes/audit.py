from uuid import UUID
from datetime import datetime
from sqlalchemy.orm import Session
from fastapi import APIRouter, Depends, HTTPException
from ..database import get_db
from ..auth import get_current_user
from ..rbac import PermissionResolver, Principal, get_permission_resolver
from .. import models, schemas, audit

router = APIRouter(prefix="/api/audit", tags=["audit"])


def _require_audit_read(resolver: PermissionResolver, user: models.User):
    if not resolver.has_permission(user.role, "audit", "read"):
        raise HTTPException(status_code=403, detail="insufficient permissions")


@router.get("/", response_model=list[schemas.AuditLogOut])
async def list_logs(
    user_id: UUID | None = None,
    target_id: UUID | None = None,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
    resolver: PermissionResolver = Depends(get_permission_resolver),
):
    _require_audit_read(resolver, current_user)
    query = db.query(models.AuditLog)
    if user_id:
        query = query.filter(models.AuditLog.user_id == user_id)
    if target_id:
        query = query.filter(models.AuditLog.target_id == target_id)
    rows = query.order_by(models.AuditLog.created_at.desc()).all()
    return resolver.filter(Principal.from_user(current_user), "audit", "read", rows)


@router.get("/report", response_model=list[schemas.AuditReportItem])
async def audit_report(
    start: datetime,
    end: datetime,
    user_id: UUID | None = None,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
    resolver: PermissionResolver = Depends(get_permission_resolver),
):
    _require_audit_read(resolver, current_user)
    return audit.generate_report(db, start, end, user_id)
