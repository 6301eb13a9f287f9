"""
Fixed Assets Service - asset lookups, depreciation history and portfolio overview
"""
from typing import Optional, List, Dict, Sequence
from sqlalchemy.orm import Session, joinedload
from sqlalchemy import func
from datetime import date
from dateutil.relativedelta import relativedelta

from assetops.models import (
    Asset, AssetCategory, DepreciationRecord, DEPRECIABLE_STATUSES
)
from assetops.services.depreciation_types import AssetFilter, AssetSnapshot, ZERO
from assetops.services.summary import summarize_portfolio


def parse_period(period: str) -> date:
    """Parse a YYYY-MM period into the first day of that month"""
    try:
        year, month = period.split("-")
        return date(int(year), int(month), 1)
    except (ValueError, AttributeError):
        raise ValueError(f"Invalid period '{period}', expected YYYY-MM")


class FixedAssetService:
    """Service for reading fixed assets and their depreciation postings"""

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, asset_id: int, business_unit_id: int) -> Optional[Asset]:
        return self.db.query(Asset).options(
            joinedload(Asset.category)
        ).filter(
            Asset.id == asset_id,
            Asset.business_unit_id == business_unit_id
        ).first()

    def get_depreciable(self, business_unit_id: int,
                        asset_filter: Optional[AssetFilter] = None) -> List[Asset]:
        """
        Active, not fully depreciated assets in a depreciable status with a
        purchase price and a depreciation start date, ordered by item code.
        Include and exclude category lists both apply when given.
        """
        query = self.db.query(Asset).options(
            joinedload(Asset.category)
        ).filter(
            Asset.business_unit_id == business_unit_id,
            Asset.is_active == True,
            Asset.status.in_(DEPRECIABLE_STATUSES),
            Asset.purchase_price.isnot(None),
            Asset.depreciation_start_date.isnot(None),
            Asset.is_fully_depreciated == False
        )

        if asset_filter and asset_filter.include_categories:
            query = query.filter(Asset.category_id.in_(asset_filter.include_categories))

        if asset_filter and asset_filter.exclude_categories:
            query = query.filter(Asset.category_id.notin_(asset_filter.exclude_categories))

        return query.order_by(Asset.item_code.asc(), Asset.id.asc()).all()

    def count_affected(self, business_unit_id: int, asset_filter: Optional[AssetFilter] = None) -> Dict:
        """Number and total book value of assets a run with this filter would consider"""
        assets = self.get_depreciable(business_unit_id, asset_filter)
        snapshots = [AssetSnapshot.from_model(a) for a in assets]
        return {
            "affected_assets_count": len(snapshots),
            "total_book_value": sum((s.current_book_value for s in snapshots), ZERO),
        }

    def get_category_names(self, business_unit_id: int, category_ids: Sequence[int]) -> List[str]:
        if not category_ids:
            return []
        rows = self.db.query(AssetCategory.name).filter(
            AssetCategory.business_unit_id == business_unit_id,
            AssetCategory.id.in_(list(category_ids))
        ).order_by(AssetCategory.name).all()
        return [row[0] for row in rows]

    def get_depreciation_history(self, business_unit_id: int, asset_id: int = None,
                                 period: str = None, page: int = 1, limit: int = 20) -> Dict:
        """Depreciation records, newest first, optionally for one asset and one month"""
        if page < 1 or limit < 1:
            raise ValueError("page and limit must be positive")

        query = self.db.query(DepreciationRecord).options(
            joinedload(DepreciationRecord.asset)
        ).filter(DepreciationRecord.business_unit_id == business_unit_id)

        if asset_id:
            query = query.filter(DepreciationRecord.asset_id == asset_id)

        if period:
            month_start = parse_period(period)
            query = query.filter(
                DepreciationRecord.depreciation_date >= month_start,
                DepreciationRecord.depreciation_date < month_start + relativedelta(months=1)
            )

        total = query.count()
        records = query.order_by(
            DepreciationRecord.depreciation_date.desc(), DepreciationRecord.id.desc()
        ).offset((page - 1) * limit).limit(limit).all()

        return {
            "records": records,
            "total": total,
            "page": page,
            "limit": limit,
            "pages": (total + limit - 1) // limit,
        }

    def get_overview(self, business_unit_id: int, as_of: date = None) -> Dict:
        """Depreciation totals across all active depreciable assets"""
        as_of = as_of or date.today()
        assets = self.db.query(Asset).options(
            joinedload(Asset.category)
        ).filter(
            Asset.business_unit_id == business_unit_id,
            Asset.is_active == True,
            Asset.status.in_(DEPRECIABLE_STATUSES),
            Asset.purchase_price.isnot(None),
            Asset.depreciation_start_date.isnot(None)
        ).all()

        overview = summarize_portfolio((AssetSnapshot.from_model(a) for a in assets), as_of)

        month_start = as_of.replace(day=1)
        overview["posted_this_month"] = self.db.query(
            func.coalesce(func.sum(DepreciationRecord.depreciation_amount), 0)
        ).filter(
            DepreciationRecord.business_unit_id == business_unit_id,
            DepreciationRecord.depreciation_date >= month_start,
            DepreciationRecord.depreciation_date < month_start + relativedelta(months=1)
        ).scalar()
        return overview
