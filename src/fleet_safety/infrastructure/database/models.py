"""SQLAlchemy database models."""

from datetime import datetime
from uuid import uuid4

from sqlalchemy import JSON, Boolean, Column, DateTime, Enum as SQLEnum, Float, ForeignKey, Integer, String, Text
from sqlalchemy.dialects.postgresql import UUID as PostgresUUID
from sqlalchemy.orm import declarative_base, relationship

from src.fleet_safety.domain.entities.trip import TripStatus
from src.fleet_safety.domain.entities.trip_module import ModuleStatus
from src.fleet_safety.domain.value_objects.checklist import FieldType, ItemCategory, Phase
from src.fleet_safety.domain.value_objects.risk import RiskLevel

Base = declarative_base()


def _enum(enum_cls, name: str) -> SQLEnum:
    """Store enums by value, matching the strings used by API consumers."""
    return SQLEnum(enum_cls, name=name, values_callable=lambda obj: [e.value for e in obj])


class TripModel(Base):
    """SQLAlchemy model for trips."""

    __tablename__ = "trips"

    id = Column(PostgresUUID(as_uuid=True), primary_key=True, default=uuid4)
    driver_id = Column(PostgresUUID(as_uuid=True), nullable=False, index=True)
    vehicle_id = Column(PostgresUUID(as_uuid=True), nullable=True, index=True)
    trip_date = Column(DateTime, nullable=False, index=True)
    status = Column(_enum(TripStatus, "trip_status"), nullable=False, default=TripStatus.DRAFT)

    # Risk snapshot, refreshed only by explicit recalculation
    aggregate_score = Column(Integer, nullable=True)
    risk_level = Column(_enum(RiskLevel, "risk_level"), nullable=True)
    snapshot_at = Column(DateTime, nullable=True)
    version = Column(Integer, nullable=False, default=0)
    critical_override = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    modules = relationship("TripModuleModel", back_populates="trip", cascade="all, delete-orphan")

    def __repr__(self) -> str:
        return f"<TripModel(id={self.id}, status='{self.status}', aggregate_score={self.aggregate_score})>"


class TripModuleModel(Base):
    """SQLAlchemy model for checklist module instances of a trip."""

    __tablename__ = "trip_modules"

    id = Column(PostgresUUID(as_uuid=True), primary_key=True, default=uuid4)
    trip_id = Column(PostgresUUID(as_uuid=True), ForeignKey("trips.id", ondelete="CASCADE"), nullable=False, index=True)
    module_key = Column(String(50), nullable=False)
    name = Column(String(100), nullable=False)
    step = Column(Integer, nullable=False)
    phase = Column(_enum(Phase, "trip_phase"), nullable=False, default=Phase.PRE_TRIP)
    status = Column(_enum(ModuleStatus, "module_status"), nullable=False, default=ModuleStatus.INCOMPLETE)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    trip = relationship("TripModel", back_populates="modules")
    items = relationship(
        "ModuleItemModel",
        back_populates="module",
        cascade="all, delete-orphan",
        order_by="ModuleItemModel.answered_at",
    )

    def __repr__(self) -> str:
        return f"<TripModuleModel(id={self.id}, module_key='{self.module_key}', step={self.step})>"


class ModuleItemModel(Base):
    """SQLAlchemy model for answers given to checklist items.

    Rows are append-only. A revised answer is a new row pointing at the row
    it supersedes.
    """

    __tablename__ = "module_items"

    id = Column(PostgresUUID(as_uuid=True), primary_key=True, default=uuid4)
    module_id = Column(
        PostgresUUID(as_uuid=True), ForeignKey("trip_modules.id", ondelete="CASCADE"), nullable=False, index=True
    )
    label = Column(String(255), nullable=False)
    field_type = Column(_enum(FieldType, "field_type"), nullable=False)
    critical = Column(Boolean, nullable=False, default=False)
    points = Column(Integer, nullable=False, default=0)
    category = Column(_enum(ItemCategory, "item_category"), nullable=True)
    value = Column(JSON, nullable=True)
    answered_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    supersedes_id = Column(PostgresUUID(as_uuid=True), nullable=True)

    module = relationship("TripModuleModel", back_populates="items")

    def __repr__(self) -> str:
        return f"<ModuleItemModel(id={self.id}, label='{self.label}', value={self.value!r})>"


class CriticalFailureModel(Base):
    """SQLAlchemy model for critical failures."""

    __tablename__ = "critical_failures"

    id = Column(PostgresUUID(as_uuid=True), primary_key=True, default=uuid4)
    trip_id = Column(PostgresUUID(as_uuid=True), ForeignKey("trips.id", ondelete="CASCADE"), nullable=False, index=True)
    module_item_label = Column(String(255), nullable=True)
    category = Column(_enum(ItemCategory, "failure_category"), nullable=True)
    description = Column(Text, nullable=False)
    points = Column(Float, nullable=False, default=1)
    resolved = Column(Boolean, nullable=False, default=False, index=True)
    resolved_by = Column(PostgresUUID(as_uuid=True), nullable=True)
    resolved_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    def __repr__(self) -> str:
        return f"<CriticalFailureModel(id={self.id}, points={self.points}, resolved={self.resolved})>"


class SpeedViolationModel(Base):
    """SQLAlchemy model for speed violations."""

    __tablename__ = "speed_violations"

    id = Column(PostgresUUID(as_uuid=True), primary_key=True, default=uuid4)
    trip_id = Column(PostgresUUID(as_uuid=True), ForeignKey("trips.id", ondelete="CASCADE"), nullable=False, index=True)
    points_deducted = Column(Integer, nullable=False, default=0)
    severity = Column(String(20), nullable=False, default="minor")
    violation_type = Column(String(50), nullable=True)
    recorded_speed = Column(Float, nullable=True)
    speed_limit = Column(Float, nullable=True)
    occurred_at = Column(DateTime, nullable=False, default=datetime.utcnow)


class FatigueMonitoringModel(Base):
    """SQLAlchemy model for fatigue readings."""

    __tablename__ = "fatigue_monitoring"

    id = Column(PostgresUUID(as_uuid=True), primary_key=True, default=uuid4)
    trip_id = Column(PostgresUUID(as_uuid=True), ForeignKey("trips.id", ondelete="CASCADE"), nullable=False, index=True)
    alert_level = Column(String(20), nullable=False, default="normal")
    hours_driven = Column(Float, nullable=False, default=0)
    fatigue_score = Column(Float, nullable=True)
    recorded_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)


class InTripIncidentModel(Base):
    """SQLAlchemy model for in-trip incidents."""

    __tablename__ = "in_trip_incidents"

    id = Column(PostgresUUID(as_uuid=True), primary_key=True, default=uuid4)
    trip_id = Column(PostgresUUID(as_uuid=True), ForeignKey("trips.id", ondelete="CASCADE"), nullable=False, index=True)
    severity = Column(String(20), nullable=False)
    incident_type = Column(String(50), nullable=False)
    description = Column(Text, nullable=True)
    occurred_at = Column(DateTime, nullable=False, default=datetime.utcnow)


class RealTimeAlertModel(Base):
    """SQLAlchemy model for real-time alerts."""

    __tablename__ = "real_time_alerts"

    id = Column(PostgresUUID(as_uuid=True), primary_key=True, default=uuid4)
    trip_id = Column(PostgresUUID(as_uuid=True), ForeignKey("trips.id", ondelete="CASCADE"), nullable=False, index=True)
    severity = Column(String(20), nullable=False)
    acknowledged = Column(Boolean, nullable=False, default=False)
    title = Column(String(255), nullable=False, default="")
    alert_type = Column(String(50), nullable=True)
    raised_at = Column(DateTime, nullable=False, default=datetime.utcnow)


class PostTripInspectionModel(Base):
    """SQLAlchemy model for post-trip inspections."""

    __tablename__ = "post_trip_inspections"

    id = Column(PostgresUUID(as_uuid=True), primary_key=True, default=uuid4)
    trip_id = Column(
        PostgresUUID(as_uuid=True), ForeignKey("trips.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    status = Column(String(20), nullable=False, default="pending")
    total_score = Column(Float, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    items = relationship("PostTripInspectionItemModel", cascade="all, delete-orphan", lazy="selectin")


class PostTripInspectionItemModel(Base):
    """SQLAlchemy model for post-trip inspection findings."""

    __tablename__ = "post_trip_inspection_items"

    id = Column(PostgresUUID(as_uuid=True), primary_key=True, default=uuid4)
    inspection_id = Column(
        PostgresUUID(as_uuid=True),
        ForeignKey("post_trip_inspections.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    category = Column(String(50), nullable=False)
    condition_status = Column(String(20), nullable=False)
    requires_maintenance = Column(Boolean, nullable=False, default=False)
    maintenance_priority = Column(String(20), nullable=True)
    points_deducted = Column(Integer, nullable=False, default=0)
    critical = Column(Boolean, nullable=False, default=False)


class FuelTrackingModel(Base):
    """SQLAlchemy model for fuel tracking."""

    __tablename__ = "fuel_tracking"

    id = Column(PostgresUUID(as_uuid=True), primary_key=True, default=uuid4)
    trip_id = Column(
        PostgresUUID(as_uuid=True), ForeignKey("trips.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    consumption_anomaly = Column(Boolean, nullable=False, default=False)
    anomaly_reason = Column(Text, nullable=True)
    total_fuel_consumed = Column(Float, nullable=True)
    distance_km = Column(Float, nullable=True)
