from datetime import datetime
from typing import Optional, Any, Dict, Literal
from pydantic import BaseModel, EmailStr, ConfigDict, Field, field_validator
from uuid import UUID
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

RoleName = Literal["facility_director", "lab_manager", "project_manager", "researcher", "supplier"]
RoundingMode = Literal["ceiling", "nearest"]
EquipmentStatus = Literal["available", "in_use", "maintenance", "calibration"]

_CLOCK_PATTERN = r"^(([01]\d|2[0-3]):[0-5]\d|24:00)$"


class UserCreate(BaseModel):
    email: EmailStr
    password: str
    full_name: Optional[str] = None
    company_id: Optional[UUID] = None


class UserOut(BaseModel):
    id: UUID
    email: EmailStr
    full_name: Optional[str] = None
    company_id: Optional[UUID] = None
    role: str
    is_active: bool = True
    model_config = ConfigDict(from_attributes=True)


class RoleAssignment(BaseModel):
    role: RoleName


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class EquipmentCreate(BaseModel):
    name: str
    category: Optional[str] = None
    rate: float = Field(default=0.0, ge=0)
    rate_unit: str = "per hour"
    billing_unit_minutes: int = Field(default=0, ge=0)
    billing_rounding: RoundingMode = "ceiling"
    is_reservable: bool = True


class EquipmentUpdate(BaseModel):
    name: Optional[str] = None
    category: Optional[str] = None
    status: Optional[EquipmentStatus] = None
    rate: Optional[float] = Field(default=None, ge=0)
    rate_unit: Optional[str] = None
    billing_unit_minutes: Optional[int] = Field(default=None, ge=0)
    billing_rounding: Optional[RoundingMode] = None
    is_reservable: Optional[bool] = None


class EquipmentOut(BaseModel):
    id: UUID
    name: str
    category: Optional[str] = None
    status: str
    rate: float
    rate_unit: str
    billing_unit_minutes: int
    billing_rounding: str
    is_reservable: bool
    created_by: Optional[UUID] = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class ReservationCreate(BaseModel):
    equipment_id: UUID
    start_time: datetime
    end_time: datetime
    project_id: Optional[UUID] = None
    notes: Optional[str] = None


class ReservationOut(BaseModel):
    id: UUID
    equipment_id: UUID
    user_id: UUID
    company_id: Optional[UUID] = None
    project_id: Optional[UUID] = None
    start_time: datetime
    end_time: datetime
    actual_start_time: Optional[datetime] = None
    actual_end_time: Optional[datetime] = None
    status: str
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    model_config = ConfigDict(from_attributes=True)


class CheckOutRequest(BaseModel):
    cycles: int = Field(default=0, ge=0)


class UsageRecordOut(BaseModel):
    id: UUID
    reservation_id: UUID
    equipment_id: UUID
    user_id: UUID
    company_id: Optional[UUID] = None
    project_id: Optional[UUID] = None
    duration_minutes: float
    cycles: int
    recorded_at: datetime
    model_config = ConfigDict(from_attributes=True)


class UsageChargeOut(UsageRecordOut):
    amount: float


class CostEstimateOut(BaseModel):
    equipment_id: UUID
    start_time: datetime
    end_time: datetime
    duration_minutes: float
    amount: float


class TenantChargesOut(BaseModel):
    company_id: Optional[UUID] = None
    usage_count: int
    total_minutes: float
    total_amount: float
    model_config = ConfigDict(from_attributes=True)


class WaitlistCreate(BaseModel):
    equipment_id: UUID
    requested_start: datetime
    requested_end: datetime


class WaitlistEntryOut(BaseModel):
    id: UUID
    equipment_id: UUID
    user_id: UUID
    company_id: Optional[UUID] = None
    requested_start: datetime
    requested_end: datetime
    status: str
    created_at: datetime
    updated_at: datetime
    model_config = ConfigDict(from_attributes=True)


class LabSettingsOut(BaseModel):
    lab_opening_time: str
    lab_closing_time: str
    no_show_penalty: float
    surge_pricing_enabled: bool
    surge_multiplier: float
    surge_start_time: str
    surge_end_time: str
    lab_timezone: str
    updated_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class LabSettingsUpdate(BaseModel):
    lab_opening_time: Optional[str] = Field(default=None, pattern=_CLOCK_PATTERN)
    lab_closing_time: Optional[str] = Field(default=None, pattern=_CLOCK_PATTERN)
    no_show_penalty: Optional[float] = Field(default=None, ge=0)
    surge_pricing_enabled: Optional[bool] = None
    surge_multiplier: Optional[float] = Field(default=None, gt=0)
    surge_start_time: Optional[str] = Field(default=None, pattern=_CLOCK_PATTERN)
    surge_end_time: Optional[str] = Field(default=None, pattern=_CLOCK_PATTERN)
    lab_timezone: Optional[str] = None

    @field_validator("lab_timezone")
    @classmethod
    def _known_zone(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"unknown time zone {value!r}")
        return value


class AuditLogOut(BaseModel):
    id: UUID
    user_id: Optional[UUID] = None
    company_id: Optional[UUID] = None
    action: str
    target_type: Optional[str] = None
    target_id: Optional[UUID] = None
    details: Dict[str, Any] = {}
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class AuditReportItem(BaseModel):
    action: str
    count: int
