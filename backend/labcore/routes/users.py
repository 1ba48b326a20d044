from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..database import get_db
from .. import models, schemas, auth, audit
from ..rbac import (
    CATEGORY_FACILITY,
    ROLE_CATEGORIES,
    PermissionResolver,
    Principal,
    get_permission_resolver,
)

router = APIRouter(prefix="/api/users", tags=["users"])


@router.get("/me", response_model=schemas.UserOut)
async def read_profile(current_user: models.User = Depends(auth.get_current_user)):
    return current_user


@router.get("/", response_model=list[schemas.UserOut])
def list_users(
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user),
    resolver: PermissionResolver = Depends(get_permission_resolver),
):
    principal = Principal.from_user(current_user)
    users = db.query(models.User).order_by(models.User.created_at.asc()).all()
    # a user record is owned by itself
    return [
        user
        for user in users
        if resolver.can_access(principal, "users", "read", user.id, user.company_id)
    ]


@router.put("/{user_id}/role", response_model=schemas.UserOut)
def assign_role(
    user_id: UUID,
    assignment: schemas.RoleAssignment,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user),
    resolver: PermissionResolver = Depends(get_permission_resolver),
):
    principal = Principal.from_user(current_user)
    target = db.get(models.User, user_id)
    if target is None:
        raise HTTPException(status_code=404, detail="user not found")
    if not resolver.can_access(principal, "users", "update", target.id, target.company_id):
        raise HTTPException(status_code=403, detail="insufficient permissions")
    if ROLE_CATEGORIES.get(assignment.role) == CATEGORY_FACILITY and not principal.is_facility:
        raise HTTPException(status_code=403, detail="only facility staff may grant facility roles")
    previous = target.role
    target.role = assignment.role
    audit.log_action(
        db,
        principal.id,
        "assign_role",
        "user",
        target.id,
        {"from": previous, "to": assignment.role},
        company_id=target.company_id,
    )
    db.commit()
    db.refresh(target)
    return target
