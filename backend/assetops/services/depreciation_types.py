"""
Depreciation value types.

Plain frozen dataclasses passed between the eligibility evaluator, the method
calculator, the ledger updater and the batch run service. None of them touch
the database, so a batch can evaluate them on worker threads.
"""
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional, Tuple

from assetops.models import Asset, DepreciationMethod, DepreciationCadence, DetailStatus

CENT = Decimal("0.01")
ZERO = Decimal("0")


def to_decimal(value) -> Decimal:
    """Coerce a nullable numeric column value to Decimal"""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def to_money(value) -> Decimal:
    """Round to cents, the precision every monetary column is stored at"""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class Actor:
    """Who triggered a run, for authorization and audit attribution"""
    id: str
    role: str
    username: Optional[str] = None
    business_unit_id: Optional[int] = None

    @classmethod
    def system(cls, role: str) -> "Actor":
        return cls(id="system", role=role, username="scheduler")


@dataclass(frozen=True)
class AssetFilter:
    """Optional category include / exclude lists; both apply when given"""
    include_categories: Tuple[int, ...] = ()
    exclude_categories: Tuple[int, ...] = ()


@dataclass(frozen=True)
class AssetSnapshot:
    """Financial state of one asset, detached from its ORM row"""
    id: int
    item_code: str
    description: str
    category_id: Optional[int]
    category_name: str
    method: DepreciationMethod
    purchase_price: Decimal
    salvage_value: Decimal
    current_book_value: Decimal
    accumulated_depreciation: Decimal
    monthly_depreciation: Decimal
    depreciation_start_date: date
    depreciation_rate: Decimal = ZERO
    depreciation_per_unit: Decimal = ZERO
    total_expected_units: Optional[int] = None
    useful_life_years: Optional[int] = None
    useful_life_months: Optional[int] = None
    last_depreciation_date: Optional[date] = None
    next_depreciation_date: Optional[date] = None
    is_fully_depreciated: bool = False

    @classmethod
    def from_model(cls, asset: Asset) -> "AssetSnapshot":
        purchase_price = to_decimal(asset.purchase_price)
        book_value = asset.current_book_value
        return cls(
            id=asset.id,
            item_code=asset.item_code,
            description=asset.description,
            category_id=asset.category_id,
            category_name=asset.category.name if asset.category else "Uncategorized",
            method=DepreciationMethod(asset.depreciation_method or DepreciationMethod.STRAIGHT_LINE.value),
            purchase_price=purchase_price,
            salvage_value=to_decimal(asset.salvage_value),
            # Book value is unset until the first posting
            current_book_value=purchase_price if book_value is None else to_decimal(book_value),
            accumulated_depreciation=to_decimal(asset.accumulated_depreciation),
            monthly_depreciation=to_decimal(asset.monthly_depreciation),
            depreciation_rate=to_decimal(asset.depreciation_rate),
            depreciation_per_unit=to_decimal(asset.depreciation_per_unit),
            total_expected_units=asset.total_expected_units,
            useful_life_years=asset.useful_life_years,
            useful_life_months=asset.useful_life_months,
            depreciation_start_date=asset.depreciation_start_date,
            last_depreciation_date=asset.last_depreciation_date,
            next_depreciation_date=asset.next_depreciation_date,
            is_fully_depreciated=bool(asset.is_fully_depreciated),
        )


@dataclass(frozen=True)
class EligibilityResult:
    eligible: bool
    reason: str


@dataclass(frozen=True)
class DepreciationCalculation:
    """Outcome of one period's calculation for one asset"""
    period_start: date
    period_end: date
    book_value_start: Decimal
    amount: Decimal
    book_value_end: Decimal
    new_accumulated: Decimal
    is_fully_depreciated: bool
    next_due_date: Optional[date]
    note: str = ""


@dataclass
class DepreciationDetail:
    """Per-asset line of a batch run"""
    asset_id: int
    item_code: str
    description: str
    status: DetailStatus
    depreciation_amount: Decimal = ZERO
    book_value_before: Decimal = ZERO
    new_book_value: Decimal = ZERO
    message: Optional[str] = None
    depreciation_record_id: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "asset_id": self.asset_id,
            "item_code": self.item_code,
            "description": self.description,
            "status": self.status.value,
            "depreciation_amount": self.depreciation_amount,
            "book_value_before": self.book_value_before,
            "new_book_value": self.new_book_value,
            "message": self.message,
            "depreciation_record_id": self.depreciation_record_id,
        }


@dataclass(frozen=True)
class CategorySummary:
    category_id: Optional[int]
    category_name: str
    assets_count: int
    total_depreciation: Decimal


@dataclass(frozen=True)
class MethodSummary:
    method: DepreciationMethod
    assets_count: int
    total_depreciation: Decimal


@dataclass(frozen=True)
class RunSummary:
    by_category: Tuple[CategorySummary, ...] = ()
    by_method: Tuple[MethodSummary, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "by_category": [
                {
                    "category_id": c.category_id,
                    "category_name": c.category_name,
                    "assets_count": c.assets_count,
                    "total_depreciation": c.total_depreciation,
                }
                for c in self.by_category
            ],
            "by_method": [
                {
                    "method": m.method.value,
                    "assets_count": m.assets_count,
                    "total_depreciation": m.total_depreciation,
                }
                for m in self.by_method
            ],
        }


@dataclass
class BatchRunResult:
    """Everything one batch run produced; never persisted as a whole"""
    business_unit_id: int
    calculation_date: date
    cadence: DepreciationCadence
    dry_run: bool
    total_assets_processed: int = 0
    total_depreciation_amount: Decimal = ZERO
    successful_calculations: int = 0
    failed_calculations: int = 0
    fully_depreciated_assets: int = 0
    assets_without_setup: int = 0
    details: List[DepreciationDetail] = field(default_factory=list)
    summary: RunSummary = field(default_factory=RunSummary)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "business_unit_id": self.business_unit_id,
            "calculation_date": self.calculation_date,
            "cadence": self.cadence.value,
            "dry_run": self.dry_run,
            "total_assets_processed": self.total_assets_processed,
            "total_depreciation_amount": self.total_depreciation_amount,
            "successful_calculations": self.successful_calculations,
            "failed_calculations": self.failed_calculations,
            "fully_depreciated_assets": self.fully_depreciated_assets,
            "assets_without_setup": self.assets_without_setup,
            "details": [d.to_dict() for d in self.details],
            "summary": self.summary.to_dict(),
        }
