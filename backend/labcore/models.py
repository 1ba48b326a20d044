import uuid
import sqlalchemy as sa
from sqlalchemy import (
    Column,
    String,
    Boolean,
    DateTime,
    ForeignKey,
    JSON,
    Integer,
    Float,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from datetime import datetime, timezone

from .database import Base


def utcnow() -> datetime:
    """Naive UTC timestamp; every datetime column stores naive UTC."""

    return datetime.now(timezone.utc).replace(tzinfo=None)


class ReservationStatus:
    AWAITING_CHECK_IN = "awaiting_check_in"
    CHECKED_IN = "checked_in"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"

    TERMINAL = frozenset({COMPLETED, CANCELLED, NO_SHOW})


class WaitlistStatus:
    PENDING = "pending"
    NOTIFIED = "notified"
    FULFILLED = "fulfilled"
    EXPIRED = "expired"
    CANCELLED = "cancelled"

    OPEN = frozenset({PENDING, NOTIFIED})


class User(Base):
    __tablename__ = "users"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String, unique=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    full_name = Column(String)
    company_id = Column(UUID(as_uuid=True), nullable=True, index=True)
    role = Column(String, default="researcher", nullable=False)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=utcnow)

    reservations = relationship("Reservation", back_populates="user")


class Equipment(Base):
    __tablename__ = "equipment"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False)
    category = Column(String)
    status = Column(String, default="available", nullable=False)
    rate = Column(Float, default=0.0, nullable=False)
    rate_unit = Column(String, default="per hour", nullable=False)
    billing_unit_minutes = Column(Integer, default=0, nullable=False)
    billing_rounding = Column(String, default="ceiling", nullable=False)
    is_reservable = Column(Boolean, default=True, nullable=False)
    created_by = Column(UUID(as_uuid=True), ForeignKey("users.id"))
    created_at = Column(DateTime, default=utcnow)

    reservations = relationship("Reservation", back_populates="equipment")


class Reservation(Base):
    __tablename__ = "reservations"
    __table_args__ = (
        sa.Index("ix_reservations_equipment_window", "equipment_id", "start_time", "end_time"),
    )
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    equipment_id = Column(UUID(as_uuid=True), ForeignKey("equipment.id"), nullable=False)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    company_id = Column(UUID(as_uuid=True), nullable=True, index=True)
    project_id = Column(UUID(as_uuid=True), nullable=True)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    actual_start_time = Column(DateTime, nullable=True)
    actual_end_time = Column(DateTime, nullable=True)
    status = Column(String, default=ReservationStatus.AWAITING_CHECK_IN, nullable=False)
    notes = Column(String)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow)

    user = relationship("User", back_populates="reservations")
    equipment = relationship("Equipment", back_populates="reservations")
    usage_record = relationship("UsageRecord", back_populates="reservation", uselist=False)


class UsageRecord(Base):
    __tablename__ = "usage_records"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    reservation_id = Column(
        UUID(as_uuid=True), ForeignKey("reservations.id"), unique=True, nullable=False
    )
    equipment_id = Column(UUID(as_uuid=True), ForeignKey("equipment.id"), nullable=False)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    company_id = Column(UUID(as_uuid=True), nullable=True, index=True)
    project_id = Column(UUID(as_uuid=True), nullable=True)
    duration_minutes = Column(Float, nullable=False, default=0.0)
    cycles = Column(Integer, nullable=False, default=0)
    recorded_at = Column(DateTime, nullable=False, default=utcnow)

    reservation = relationship("Reservation", back_populates="usage_record")
    equipment = relationship("Equipment")


class WaitlistEntry(Base):
    __tablename__ = "waitlist_entries"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    equipment_id = Column(UUID(as_uuid=True), ForeignKey("equipment.id"), nullable=False)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    company_id = Column(UUID(as_uuid=True), nullable=True, index=True)
    requested_start = Column(DateTime, nullable=False)
    requested_end = Column(DateTime, nullable=False)
    status = Column(String, default=WaitlistStatus.PENDING, nullable=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow)


class LabSettings(Base):
    __tablename__ = "lab_settings"
    id = Column(Integer, primary_key=True, default=1)
    lab_opening_time = Column(String, default="09:00", nullable=False)
    lab_closing_time = Column(String, default="18:00", nullable=False)
    no_show_penalty = Column(Float, default=0.0, nullable=False)
    surge_pricing_enabled = Column(Boolean, default=False, nullable=False)
    surge_multiplier = Column(Float, default=1.0, nullable=False)
    surge_start_time = Column(String, default="18:00", nullable=False)
    surge_end_time = Column(String, default="22:00", nullable=False)
    lab_timezone = Column(String, default="UTC", nullable=False)
    updated_by = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)
    updated_at = Column(DateTime, default=utcnow)


class AuditLog(Base):
    __tablename__ = "audit_logs"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"))
    company_id = Column(UUID(as_uuid=True), nullable=True)
    action = Column(String, nullable=False)
    target_type = Column(String)
    target_id = Column(UUID(as_uuid=True))
    details = Column(JSON, default=dict)
    created_at = Column(DateTime, default=utcnow)
