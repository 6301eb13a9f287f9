"""
Run Summary Aggregator - groups batch outcomes and portfolio figures by category and method
"""
from collections import OrderedDict
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Iterable, List

from assetops.models import DetailStatus
from assetops.services.depreciation_types import (
    AssetSnapshot, CategorySummary, DepreciationDetail, MethodSummary, RunSummary, ZERO
)


def summarize(details: Iterable[DepreciationDetail], assets: Iterable[AssetSnapshot]) -> RunSummary:
    """
    Group SUCCESS details by the owning asset's category and method.
    Ineligible assets carry a SUCCESS detail with a zero amount and are counted too.
    """
    assets_by_id = {asset.id: asset for asset in assets}

    categories: "OrderedDict[Any, List]" = OrderedDict()
    methods: "OrderedDict[Any, List]" = OrderedDict()

    for detail in details:
        if detail.status != DetailStatus.SUCCESS:
            continue
        asset = assets_by_id.get(detail.asset_id)
        if asset is None:
            continue

        key = (asset.category_id, asset.category_name)
        bucket = categories.setdefault(key, [0, ZERO])
        bucket[0] += 1
        bucket[1] += detail.depreciation_amount

        bucket = methods.setdefault(asset.method, [0, ZERO])
        bucket[0] += 1
        bucket[1] += detail.depreciation_amount

    return RunSummary(
        by_category=tuple(
            CategorySummary(category_id=cid, category_name=name, assets_count=count, total_depreciation=total)
            for (cid, name), (count, total) in categories.items()
        ),
        by_method=tuple(
            MethodSummary(method=method, assets_count=count, total_depreciation=total)
            for method, (count, total) in methods.items()
        ),
    )


def summarize_portfolio(assets: Iterable[AssetSnapshot], as_of: date) -> Dict[str, Any]:
    """Totals for the depreciation overview of a business unit"""
    total_purchase = ZERO
    total_book = ZERO
    total_accumulated = ZERO
    total_monthly = ZERO
    fully_depreciated = 0
    needing_depreciation = 0
    count = 0
    by_method: Dict[str, Dict[str, Any]] = {}
    by_category: Dict[str, Dict[str, Any]] = {}

    for asset in assets:
        count += 1
        total_purchase += asset.purchase_price
        total_book += asset.current_book_value
        total_accumulated += asset.accumulated_depreciation
        total_monthly += asset.monthly_depreciation

        if asset.is_fully_depreciated:
            fully_depreciated += 1
        elif asset.next_depreciation_date is None or asset.next_depreciation_date <= as_of:
            needing_depreciation += 1

        method = by_method.setdefault(asset.method.value, {
            "method": asset.method.value, "count": 0, "total_book_value": ZERO,
        })
        method["count"] += 1
        method["total_book_value"] += asset.current_book_value

        category = by_category.setdefault(asset.category_name, {
            "category_name": asset.category_name, "count": 0,
            "total_book_value": ZERO, "total_accumulated": ZERO,
        })
        category["count"] += 1
        category["total_book_value"] += asset.current_book_value
        category["total_accumulated"] += asset.accumulated_depreciation

    return {
        "as_of": as_of,
        "total_assets": count,
        "total_purchase_value": total_purchase,
        "total_book_value": total_book,
        "total_accumulated_depreciation": total_accumulated,
        "total_monthly_depreciation": total_monthly,
        "fully_depreciated_count": fully_depreciated,
        "assets_needing_depreciation": needing_depreciation,
        "by_method": list(by_method.values()),
        "by_category": list(by_category.values()),
    }


def total_amount(details: Iterable[DepreciationDetail]) -> Decimal:
    return sum((d.depreciation_amount for d in details if d.status == DetailStatus.SUCCESS), ZERO)
