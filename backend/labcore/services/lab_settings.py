"""Settings provider for pricing and lab hours."""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import datetime, timezone
from uuid import UUID
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session

from .. import models, schemas

# purpose: expose surge pricing and operating hours as read-only inputs to the booking core
# status: active

_SETTINGS_ROW_ID = 1


def _env_flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class PricingSettings:
    surge_pricing_enabled: bool = False
    surge_multiplier: float = 1.0
    surge_start_time: str = "18:00"
    surge_end_time: str = "22:00"
    lab_timezone: str = "UTC"

    @property
    def surge_start_hour(self) -> int:
        return parse_hour(self.surge_start_time)

    @property
    def surge_end_hour(self) -> int:
        return parse_hour(self.surge_end_time)

    def local_hour(self, moment: datetime) -> int:
        """Wall-clock hour in the lab; naive timestamps are read as UTC."""

        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=timezone.utc)
        return moment.astimezone(ZoneInfo(self.lab_timezone)).hour


def parse_hour(value: str) -> int:
    """Return the hour component of an ``HH:MM`` string."""

    hours, _, minutes = value.partition(":")
    hour, minute = int(hours), int(minutes or 0)
    if not 0 <= minute <= 59 or not (0 <= hour <= 23 or (hour == 24 and minute == 0)):
        raise ValueError(f"clock time out of range in {value!r}")
    return hour


def _defaults() -> dict[str, object]:
    return {
        "lab_opening_time": os.getenv("LAB_OPENING_TIME", "09:00"),
        "lab_closing_time": os.getenv("LAB_CLOSING_TIME", "18:00"),
        "no_show_penalty": float(os.getenv("NO_SHOW_PENALTY", "0")),
        "surge_pricing_enabled": _env_flag("SURGE_PRICING_ENABLED"),
        "surge_multiplier": float(os.getenv("SURGE_MULTIPLIER", "1.0")),
        "surge_start_time": os.getenv("SURGE_START_TIME", "18:00"),
        "surge_end_time": os.getenv("SURGE_END_TIME", "22:00"),
        "lab_timezone": os.getenv("LAB_TIMEZONE", "UTC"),
    }


def get_lab_settings(db: Session) -> models.LabSettings:
    """Return the settings row, materialising environment defaults on first use."""

    settings = db.get(models.LabSettings, _SETTINGS_ROW_ID)
    if settings is None:
        settings = models.LabSettings(id=_SETTINGS_ROW_ID, **_defaults())
        db.add(settings)
        db.flush()
    return settings


def get_pricing_settings(db: Session) -> PricingSettings:
    settings = get_lab_settings(db)
    return PricingSettings(
        surge_pricing_enabled=settings.surge_pricing_enabled,
        surge_multiplier=settings.surge_multiplier,
        surge_start_time=settings.surge_start_time,
        surge_end_time=settings.surge_end_time,
        lab_timezone=settings.lab_timezone,
    )


def update_lab_settings(
    db: Session,
    payload: schemas.LabSettingsUpdate,
    *,
    actor_id: UUID,
) -> models.LabSettings:
    settings = get_lab_settings(db)
    for key, value in payload.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(settings, key, value)
    settings.updated_by = actor_id
    settings.updated_at = models.utcnow()
    db.flush()
    db.refresh(settings)
    return settings
