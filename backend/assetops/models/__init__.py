"""
SQLAlchemy Models for the Asset Depreciation System
"""
from datetime import datetime
from decimal import Decimal
from sqlalchemy import (
    Column, Integer, String, Text, Boolean, DateTime, Date, Numeric,
    ForeignKey, Index, JSON
)
from sqlalchemy.orm import relationship
import enum

from assetops.core.database import Base


# ==================== ENUMS ====================

class AssetStatus(enum.Enum):
    AVAILABLE = "AVAILABLE"
    DEPLOYED = "DEPLOYED"
    IN_MAINTENANCE = "IN_MAINTENANCE"
    RETIRED = "RETIRED"
    DISPOSED = "DISPOSED"
    LOST = "LOST"
    DAMAGED = "DAMAGED"


# Statuses whose assets keep depreciating
DEPRECIABLE_STATUSES = (
    AssetStatus.AVAILABLE.value,
    AssetStatus.DEPLOYED.value,
    AssetStatus.IN_MAINTENANCE.value,
)


class DepreciationMethod(enum.Enum):
    STRAIGHT_LINE = "STRAIGHT_LINE"
    DECLINING_BALANCE = "DECLINING_BALANCE"
    UNITS_OF_PRODUCTION = "UNITS_OF_PRODUCTION"
    SUM_OF_YEARS_DIGITS = "SUM_OF_YEARS_DIGITS"


class DepreciationCadence(enum.Enum):
    MONTHLY = "MONTHLY"
    QUARTERLY = "QUARTERLY"
    ANNUALLY = "ANNUALLY"

    @property
    def months(self) -> int:
        return {"MONTHLY": 1, "QUARTERLY": 3, "ANNUALLY": 12}[self.value]


class ExecutionStatus(enum.Enum):
    PENDING = "PENDING"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


class DetailStatus(enum.Enum):
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    FULLY_DEPRECIATED = "FULLY_DEPRECIATED"
    NO_SETUP = "NO_SETUP"


# ==================== REFERENCE DATA ====================

class BusinessUnit(Base):
    """Business unit owning assets and schedules"""
    __tablename__ = 'business_units'

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    code = Column(String(50), nullable=True)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    assets = relationship("Asset", back_populates="business_unit")
    categories = relationship("AssetCategory", back_populates="business_unit")
    schedules = relationship("DepreciationSchedule", back_populates="business_unit")


class AssetCategory(Base):
    """Asset category (Equipment, Vehicle, Furniture, etc.)"""
    __tablename__ = 'asset_categories'

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    code = Column(String(50), nullable=True)
    description = Column(Text, nullable=True)
    business_unit_id = Column(Integer, ForeignKey('business_units.id', ondelete='CASCADE'), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    business_unit = relationship("BusinessUnit", back_populates="categories")
    assets = relationship("Asset", back_populates="category")

    __table_args__ = (
        Index('ix_asset_categories_business_unit_id', 'business_unit_id'),
    )


# ==================== ASSETS ====================

class Asset(Base):
    """Fixed asset with its running depreciation state"""
    __tablename__ = 'assets'

    id = Column(Integer, primary_key=True)
    item_code = Column(String(50), nullable=False)
    description = Column(Text, nullable=False)
    category_id = Column(Integer, ForeignKey('asset_categories.id', ondelete='RESTRICT'), nullable=False)
    business_unit_id = Column(Integer, ForeignKey('business_units.id', ondelete='CASCADE'), nullable=False)
    status = Column(String(20), default=AssetStatus.AVAILABLE.value)
    is_active = Column(Boolean, default=True)

    # Purchase Information
    purchase_date = Column(Date, nullable=True)
    purchase_price = Column(Numeric(15, 2), nullable=True)

    # Depreciation setup
    depreciation_method = Column(String(30), default=DepreciationMethod.STRAIGHT_LINE.value)
    salvage_value = Column(Numeric(15, 2), default=Decimal("0.00"))
    monthly_depreciation = Column(Numeric(15, 2), nullable=True)
    depreciation_rate = Column(Numeric(7, 4), nullable=True)  # Annual percent, declining balance
    depreciation_per_unit = Column(Numeric(15, 4), nullable=True)  # Units of production
    total_expected_units = Column(Integer, nullable=True)
    current_units = Column(Integer, default=0)
    useful_life_years = Column(Integer, nullable=True)
    useful_life_months = Column(Integer, nullable=True)

    # Running state
    current_book_value = Column(Numeric(15, 2), nullable=True)
    accumulated_depreciation = Column(Numeric(15, 2), default=Decimal("0.00"))
    depreciation_start_date = Column(Date, nullable=True)
    last_depreciation_date = Column(Date, nullable=True)
    next_depreciation_date = Column(Date, nullable=True)
    is_fully_depreciated = Column(Boolean, default=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    category = relationship("AssetCategory", back_populates="assets")
    business_unit = relationship("BusinessUnit", back_populates="assets")
    depreciation_records = relationship("DepreciationRecord", back_populates="asset")
    history = relationship("AssetHistory", back_populates="asset")

    __table_args__ = (
        Index('ix_assets_business_unit_id', 'business_unit_id'),
        Index('ix_assets_category_id', 'category_id'),
        Index('ix_assets_status', 'status'),
        Index('ix_assets_next_depreciation_date', 'next_depreciation_date'),
    )


class DepreciationRecord(Base):
    """Immutable depreciation posting for one asset and one period"""
    __tablename__ = 'depreciation_records'

    id = Column(Integer, primary_key=True)
    asset_id = Column(Integer, ForeignKey('assets.id', ondelete='CASCADE'), nullable=False)
    business_unit_id = Column(Integer, ForeignKey('business_units.id', ondelete='CASCADE'), nullable=False)
    depreciation_date = Column(Date, nullable=False)
    period_start = Column(Date, nullable=False)
    period_end = Column(Date, nullable=False)
    book_value_start = Column(Numeric(15, 2), nullable=False)
    depreciation_amount = Column(Numeric(15, 2), nullable=False)
    book_value_end = Column(Numeric(15, 2), nullable=False)
    accumulated_depreciation = Column(Numeric(15, 2), nullable=False)
    method = Column(String(30), default=DepreciationMethod.STRAIGHT_LINE.value)
    calculated_by = Column(String(100), nullable=True)
    notes = Column(Text, nullable=True)
    is_adjustment = Column(Boolean, default=False)
    adjustment_reason = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    asset = relationship("Asset", back_populates="depreciation_records")
    business_unit = relationship("BusinessUnit")

    __table_args__ = (
        Index('ix_depreciation_records_asset_id', 'asset_id'),
        Index('ix_depreciation_records_date', 'depreciation_date'),
        Index('ix_depreciation_records_business_unit_id', 'business_unit_id'),
    )


class AssetHistory(Base):
    """Per-asset history entry"""
    __tablename__ = 'asset_history'

    id = Column(Integer, primary_key=True)
    asset_id = Column(Integer, ForeignKey('assets.id', ondelete='CASCADE'), nullable=False)
    business_unit_id = Column(Integer, ForeignKey('business_units.id', ondelete='CASCADE'), nullable=False)
    action = Column(String(50), nullable=False)  # DEPRECIATION_CALCULATED, ...
    previous_book_value = Column(Numeric(15, 2), nullable=True)
    new_book_value = Column(Numeric(15, 2), nullable=True)
    depreciation_amount = Column(Numeric(15, 2), nullable=True)
    notes = Column(Text, nullable=True)
    performed_by = Column(String(100), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    asset = relationship("Asset", back_populates="history")

    __table_args__ = (
        Index('ix_asset_history_asset_id', 'asset_id'),
    )


# ==================== AUDIT ====================

class AuditLog(Base):
    """Audit trail for depreciation runs and schedule changes"""
    __tablename__ = 'audit_logs'

    id = Column(Integer, primary_key=True)
    timestamp = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Who performed the action
    actor_id = Column(String(100), nullable=True)
    username = Column(String(100), nullable=True)
    role = Column(String(50), nullable=True)

    # What action was performed
    action = Column(String(50), nullable=False)  # DEPRECIATION_RUN, SCHEDULE_CREATED, ...
    resource_type = Column(String(100), nullable=False)
    resource_id = Column(Integer, nullable=True)

    # Where (business context)
    business_unit_id = Column(Integer, ForeignKey('business_units.id', ondelete='SET NULL'), nullable=True)

    # Details
    description = Column(Text, nullable=True)
    new_values = Column(Text, nullable=True)  # JSON string

    # Status
    status = Column(String(20), default='success')  # success, failure, error
    error_message = Column(Text, nullable=True)

    __table_args__ = (
        Index('ix_audit_logs_timestamp', 'timestamp'),
        Index('ix_audit_logs_business_unit_id', 'business_unit_id'),
        Index('ix_audit_logs_resource', 'resource_type', 'resource_id'),
        Index('ix_audit_logs_action', 'action'),
    )


# ==================== SCHEDULING ====================

class DepreciationSchedule(Base):
    """Recurring depreciation run for a business unit"""
    __tablename__ = 'depreciation_schedules'

    id = Column(Integer, primary_key=True)
    business_unit_id = Column(Integer, ForeignKey('business_units.id', ondelete='CASCADE'), nullable=False)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    schedule_type = Column(String(20), default=DepreciationCadence.MONTHLY.value, nullable=False)
    execution_day = Column(Integer, default=30, nullable=False)
    is_active = Column(Boolean, default=True)
    include_categories = Column(JSON, default=list)  # category ids
    exclude_categories = Column(JSON, default=list)
    created_by = Column(String(100), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    business_unit = relationship("BusinessUnit", back_populates="schedules")
    executions = relationship(
        "DepreciationExecution", back_populates="schedule",
        cascade="all, delete-orphan", order_by="DepreciationExecution.execution_date.desc()"
    )

    __table_args__ = (
        Index('ix_depreciation_schedules_business_unit_id', 'business_unit_id'),
        Index('ix_depreciation_schedules_is_active', 'is_active'),
    )


class DepreciationExecution(Base):
    """One execution of a depreciation schedule"""
    __tablename__ = 'depreciation_executions'

    id = Column(Integer, primary_key=True)
    schedule_id = Column(Integer, ForeignKey('depreciation_schedules.id', ondelete='CASCADE'), nullable=False)
    business_unit_id = Column(Integer, ForeignKey('business_units.id', ondelete='CASCADE'), nullable=False)
    execution_date = Column(DateTime, nullable=False)
    scheduled_date = Column(Date, nullable=False)
    status = Column(String(20), default=ExecutionStatus.PENDING.value, nullable=False)
    total_assets_processed = Column(Integer, default=0)
    successful_calculations = Column(Integer, default=0)
    failed_calculations = Column(Integer, default=0)
    total_depreciation_amount = Column(Numeric(15, 2), default=Decimal("0.00"))
    execution_duration_ms = Column(Integer, nullable=True)
    error_message = Column(Text, nullable=True)
    execution_summary = Column(JSON, nullable=True)
    executed_by = Column(String(100), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    completed_at = Column(DateTime, nullable=True)

    # Relationships
    schedule = relationship("DepreciationSchedule", back_populates="executions")
    asset_details = relationship(
        "DepreciationExecutionAsset", back_populates="execution", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index('ix_depreciation_executions_schedule_id', 'schedule_id'),
        Index('ix_depreciation_executions_scheduled_date', 'scheduled_date'),
        Index('ix_depreciation_executions_status', 'status'),
    )


class DepreciationExecutionAsset(Base):
    """Per-asset outcome of a schedule execution"""
    __tablename__ = 'depreciation_execution_assets'

    id = Column(Integer, primary_key=True)
    execution_id = Column(Integer, ForeignKey('depreciation_executions.id', ondelete='CASCADE'), nullable=False)
    asset_id = Column(Integer, ForeignKey('assets.id', ondelete='CASCADE'), nullable=False)
    depreciation_record_id = Column(Integer, ForeignKey('depreciation_records.id', ondelete='SET NULL'), nullable=True)
    status = Column(String(20), nullable=False)
    depreciation_amount = Column(Numeric(15, 2), default=Decimal("0.00"))
    book_value_before = Column(Numeric(15, 2), nullable=False)
    book_value_after = Column(Numeric(15, 2), nullable=False)
    error_message = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    execution = relationship("DepreciationExecution", back_populates="asset_details")

    __table_args__ = (
        Index('ix_depreciation_execution_assets_execution_id', 'execution_id'),
        Index('ix_depreciation_execution_assets_asset_id', 'asset_id'),
    )
