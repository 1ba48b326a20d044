"""Usage metering to monetary amounts."""

from __future__ import annotations

import math
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Mapping, Protocol
from uuid import UUID

from sqlalchemy.orm import Session

from .. import models
from .lab_settings import PricingSettings
from .scheduling import TimeInterval

# purpose: deterministic cost calculation for completed and prospective equipment usage
# status: active
# depends_on: backend.labcore.services.lab_settings.PricingSettings

ROUNDING_CEILING = "ceiling"
ROUNDING_NEAREST = "nearest"
ROUNDING_MODES = (ROUNDING_CEILING, ROUNDING_NEAREST)


class MeteredUsage(Protocol):
    duration_minutes: float
    cycles: int
    recorded_at: datetime


class RatedEquipment(Protocol):
    rate: float
    rate_unit: str
    billing_unit_minutes: int
    billing_rounding: str


@dataclass(frozen=True)
class UsageSnapshot:
    """Hypothetical usage used for pre-booking estimates."""

    duration_minutes: float
    recorded_at: datetime
    cycles: int = 0


@dataclass(frozen=True)
class TenantCharges:
    company_id: UUID | None
    usage_count: int
    total_minutes: float
    total_amount: float


def is_per_cycle(rate_unit: str | None) -> bool:
    return "cycle" in (rate_unit or "").lower()


def billable_minutes(duration_minutes: float, unit_minutes: int, rounding: str) -> float:
    """Apply the equipment's billing granularity to a raw duration."""

    minutes = max(0.0, float(duration_minutes or 0))
    if not unit_minutes or unit_minutes <= 0:
        return minutes
    units = minutes / unit_minutes
    if rounding == ROUNDING_NEAREST:
        # halves round up, not to even
        return math.floor(units + 0.5) * unit_minutes
    return math.ceil(units) * unit_minutes


def in_surge_window(hour: int, pricing: PricingSettings) -> bool:
    start = pricing.surge_start_hour
    end = pricing.surge_end_hour
    if start <= end:
        return start <= hour < end
    return hour >= start or hour < end


def calculate_cost(
    usage: MeteredUsage,
    equipment: RatedEquipment,
    pricing: PricingSettings,
) -> float:
    """Return the charge for one usage; never negative, zero for zero usage."""

    rate = float(equipment.rate or 0)
    if is_per_cycle(equipment.rate_unit):
        amount = (usage.cycles or 0) * rate
    else:
        minutes = billable_minutes(
            usage.duration_minutes,
            equipment.billing_unit_minutes or 0,
            equipment.billing_rounding or ROUNDING_CEILING,
        )
        amount = (minutes / 60) * rate

    if amount > 0 and pricing.surge_pricing_enabled and in_surge_window(
        pricing.local_hour(usage.recorded_at), pricing
    ):
        amount *= pricing.surge_multiplier
    return max(amount, 0.0)


def estimate_cost(
    equipment: RatedEquipment,
    interval: TimeInterval,
    pricing: PricingSettings,
) -> float:
    usage = UsageSnapshot(duration_minutes=interval.duration_minutes, recorded_at=interval.start)
    return calculate_cost(usage, equipment, pricing)


def load_equipment_index(
    db: Session,
    equipment_ids: Iterable[UUID],
) -> dict[UUID, models.Equipment]:
    ids = set(equipment_ids)
    if not ids:
        return {}
    rows = db.query(models.Equipment).filter(models.Equipment.id.in_(ids)).all()
    return {row.id: row for row in rows}


def summarize_charges(
    records: Iterable[models.UsageRecord],
    equipment_index: Mapping[UUID, RatedEquipment],
    pricing: PricingSettings,
) -> list[TenantCharges]:
    """Group priced usage by tenant."""

    counts: dict[UUID | None, int] = defaultdict(int)
    minutes: dict[UUID | None, float] = defaultdict(float)
    amounts: dict[UUID | None, float] = defaultdict(float)
    for record in records:
        equipment = equipment_index.get(record.equipment_id)
        if equipment is None:
            continue
        counts[record.company_id] += 1
        minutes[record.company_id] += record.duration_minutes
        amounts[record.company_id] += calculate_cost(record, equipment, pricing)
    return [
        TenantCharges(
            company_id=company_id,
            usage_count=counts[company_id],
            total_minutes=minutes[company_id],
            total_amount=amounts[company_id],
        )
        for company_id in sorted(counts, key=lambda value: str(value))
    ]
