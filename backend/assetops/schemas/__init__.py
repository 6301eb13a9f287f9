"""
Pydantic Schemas for API Validation
"""
from pydantic import BaseModel, Field, ConfigDict, field_validator
from typing import List, Optional
from datetime import datetime, date
from decimal import Decimal
from enum import Enum


# ==================== ENUMS ====================

class CadenceEnum(str, Enum):
    MONTHLY = "MONTHLY"
    QUARTERLY = "QUARTERLY"
    ANNUALLY = "ANNUALLY"


# ==================== DEPRECIATION RUN SCHEMAS ====================

class DepreciationRunRequest(BaseModel):
    calculation_date: Optional[date] = None  # defaults to today
    cadence: CadenceEnum = CadenceEnum.MONTHLY
    include_categories: List[int] = Field(default_factory=list)
    exclude_categories: List[int] = Field(default_factory=list)


class DepreciationDetailResponse(BaseModel):
    asset_id: int
    item_code: str
    description: str
    status: str
    depreciation_amount: Decimal
    book_value_before: Decimal
    new_book_value: Decimal
    message: Optional[str] = None
    depreciation_record_id: Optional[int] = None


class CategorySummaryResponse(BaseModel):
    category_id: Optional[int]
    category_name: str
    assets_count: int
    total_depreciation: Decimal


class MethodSummaryResponse(BaseModel):
    method: str
    assets_count: int
    total_depreciation: Decimal


class RunSummaryResponse(BaseModel):
    by_category: List[CategorySummaryResponse] = []
    by_method: List[MethodSummaryResponse] = []


class DepreciationRunResponse(BaseModel):
    business_unit_id: int
    calculation_date: date
    cadence: str
    dry_run: bool
    total_assets_processed: int
    total_depreciation_amount: Decimal
    successful_calculations: int
    failed_calculations: int
    fully_depreciated_assets: int
    assets_without_setup: int
    details: List[DepreciationDetailResponse]
    summary: RunSummaryResponse


# ==================== HISTORY / OVERVIEW SCHEMAS ====================

class DepreciationRecordResponse(BaseModel):
    id: int
    asset_id: int
    depreciation_date: date
    period_start: date
    period_end: date
    book_value_start: Decimal
    depreciation_amount: Decimal
    book_value_end: Decimal
    accumulated_depreciation: Decimal
    method: str
    calculated_by: Optional[str]
    notes: Optional[str]
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class DepreciationHistoryResponse(BaseModel):
    records: List[DepreciationRecordResponse]
    total: int
    page: int
    limit: int
    pages: int


class OverviewMethodResponse(BaseModel):
    method: str
    count: int
    total_book_value: Decimal


class OverviewCategoryResponse(BaseModel):
    category_name: str
    count: int
    total_book_value: Decimal
    total_accumulated: Decimal


class DepreciationOverviewResponse(BaseModel):
    as_of: date
    total_assets: int
    total_purchase_value: Decimal
    total_book_value: Decimal
    total_accumulated_depreciation: Decimal
    total_monthly_depreciation: Decimal
    fully_depreciated_count: int
    assets_needing_depreciation: int
    posted_this_month: Decimal
    by_method: List[OverviewMethodResponse]
    by_category: List[OverviewCategoryResponse]


class AuditLogResponse(BaseModel):
    id: int
    timestamp: datetime
    actor_id: Optional[str]
    username: Optional[str]
    role: Optional[str]
    action: str
    resource_type: str
    resource_id: Optional[int]
    description: Optional[str]
    new_values: Optional[str]
    status: str
    error_message: Optional[str]

    model_config = ConfigDict(from_attributes=True)


class ProjectedPostingResponse(BaseModel):
    period_number: int
    depreciation_date: date
    period_start: date
    period_end: date
    book_value_start: Decimal
    amount: Decimal
    book_value_end: Decimal
    accumulated_depreciation: Decimal

    model_config = ConfigDict(from_attributes=True)


class DepreciationProjectionResponse(BaseModel):
    asset_id: int
    item_code: str
    method: str
    cadence: str
    current_book_value: Decimal
    salvage_value: Decimal
    postings: List[ProjectedPostingResponse]


# ==================== SCHEDULE SCHEMAS ====================

class ScheduleBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    schedule_type: CadenceEnum = CadenceEnum.MONTHLY
    execution_day: int = Field(default=30, ge=1, le=31)
    include_categories: List[int] = Field(default_factory=list)
    exclude_categories: List[int] = Field(default_factory=list)
    is_active: bool = True


class ScheduleCreate(ScheduleBase):
    pass


class ScheduleUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    schedule_type: Optional[CadenceEnum] = None
    execution_day: Optional[int] = Field(None, ge=1, le=31)
    include_categories: Optional[List[int]] = None
    exclude_categories: Optional[List[int]] = None
    is_active: Optional[bool] = None


class ScheduleStatusUpdate(BaseModel):
    is_active: bool


class ScheduleResponse(BaseModel):
    id: int
    business_unit_id: int
    name: str
    description: Optional[str]
    schedule_type: str
    execution_day: int
    is_active: bool
    include_categories: List[int]
    exclude_categories: List[int]
    created_by: str
    created_at: datetime
    updated_at: Optional[datetime]

    model_config = ConfigDict(from_attributes=True)

    @field_validator("include_categories", "exclude_categories", mode="before")
    @classmethod
    def none_as_empty(cls, v):
        return v or []


class ExecutionResponse(BaseModel):
    id: int
    schedule_id: int
    execution_date: datetime
    scheduled_date: date
    status: str
    total_assets_processed: int
    successful_calculations: int
    failed_calculations: int
    total_depreciation_amount: Decimal
    execution_duration_ms: Optional[int]
    error_message: Optional[str]
    executed_by: Optional[str]
    completed_at: Optional[datetime]

    model_config = ConfigDict(from_attributes=True)


class ScheduleDetailResponse(ScheduleResponse):
    include_category_names: List[str] = []
    exclude_category_names: List[str] = []
    affected_assets_count: int = 0
    total_book_value: Decimal = Decimal("0.00")
    recent_executions: List[ExecutionResponse] = []


class TriggerResultItem(BaseModel):
    schedule_id: int
    schedule_name: str
    status: str  # success, error, skipped
    execution_id: Optional[int] = None
    assets_processed: int = 0
    error: Optional[str] = None


class TriggerResponse(BaseModel):
    success: bool
    message: str
    results: List[TriggerResultItem]
    executed_at: datetime
