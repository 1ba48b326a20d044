"""Usage metering and cost estimation API surface."""

from __future__ import annotations

from datetime import datetime
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from .. import models, schemas
from ..auth import get_current_user
from ..database import get_db
from ..http_errors import raise_for_failure
from ..rbac import PermissionResolver, Principal, get_permission_resolver
from ..services import billing, lab_settings
from ..services.outcomes import ValidationFailure
from ..services.scheduling import TimeInterval, as_utc_naive

router = APIRouter(prefix="/api/billing", tags=["billing"])


@router.get("/estimate", response_model=schemas.CostEstimateOut)
def estimate(
    equipment_id: UUID,
    start_time: datetime,
    end_time: datetime,
    db: Session = Depends(get_db),
    user=Depends(get_current_user),
    resolver: PermissionResolver = Depends(get_permission_resolver),
) -> schemas.CostEstimateOut:
    if not resolver.has_permission(user.role, "equipment", "read"):
        raise HTTPException(status_code=403, detail="insufficient permissions")
    equipment = db.get(models.Equipment, equipment_id)
    if equipment is None:
        raise HTTPException(status_code=404, detail="equipment not found")
    interval = TimeInterval.of(start_time, end_time)
    if not interval.is_valid:
        raise_for_failure(
            ValidationFailure("end_time", "INVALID_RANGE", "end time must be after start time")
        )
    pricing = lab_settings.get_pricing_settings(db)
    return schemas.CostEstimateOut(
        equipment_id=equipment.id,
        start_time=interval.start,
        end_time=interval.end,
        duration_minutes=interval.duration_minutes,
        amount=billing.estimate_cost(equipment, interval, pricing),
    )


@router.get("/usage", response_model=List[schemas.UsageChargeOut])
def list_usage(
    equipment_id: UUID | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    db: Session = Depends(get_db),
    user=Depends(get_current_user),
    resolver: PermissionResolver = Depends(get_permission_resolver),
) -> List[schemas.UsageChargeOut]:
    records = _visible_usage(db, resolver, user, start=start, end=end, equipment_id=equipment_id)
    pricing = lab_settings.get_pricing_settings(db)
    index = billing.load_equipment_index(db, (r.equipment_id for r in records))
    charges = []
    for record in records:
        equipment = index.get(record.equipment_id)
        amount = billing.calculate_cost(record, equipment, pricing) if equipment else 0.0
        charges.append(
            schemas.UsageChargeOut(
                **schemas.UsageRecordOut.model_validate(record).model_dump(), amount=amount
            )
        )
    return charges


@router.get("/summary", response_model=List[schemas.TenantChargesOut])
def tenant_summary(
    start: datetime | None = None,
    end: datetime | None = None,
    db: Session = Depends(get_db),
    user=Depends(get_current_user),
    resolver: PermissionResolver = Depends(get_permission_resolver),
) -> List[schemas.TenantChargesOut]:
    if not resolver.has_permission(user.role, "billing", "read"):
        raise HTTPException(status_code=403, detail="insufficient permissions")
    records = _visible_usage(db, resolver, user, start=start, end=end)
    pricing = lab_settings.get_pricing_settings(db)
    index = billing.load_equipment_index(db, (r.equipment_id for r in records))
    return [
        schemas.TenantChargesOut.model_validate(row)
        for row in billing.summarize_charges(records, index, pricing)
    ]


def _visible_usage(
    db: Session,
    resolver: PermissionResolver,
    user: models.User,
    *,
    start: datetime | None = None,
    end: datetime | None = None,
    equipment_id: UUID | None = None,
) -> list[models.UsageRecord]:
    query = db.query(models.UsageRecord).order_by(models.UsageRecord.recorded_at.asc())
    if start is not None:
        query = query.filter(models.UsageRecord.recorded_at >= as_utc_naive(start))
    if end is not None:
        query = query.filter(models.UsageRecord.recorded_at < as_utc_naive(end))
    if equipment_id is not None:
        query = query.filter(models.UsageRecord.equipment_id == equipment_id)
    return resolver.filter(Principal.from_user(user), "billing", "read", query.all())
