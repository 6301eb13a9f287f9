"""
Book Value Ledger - applies a calculated depreciation to an asset's running totals
"""
from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal
from typing import List, Optional

from assetops.core.exceptions import LedgerInvariantError
from assetops.models import DepreciationCadence
from assetops.services.depreciation_methods import calculate
from assetops.services.depreciation_types import AssetSnapshot, DepreciationCalculation


def apply(asset: AssetSnapshot, calculation: DepreciationCalculation,
          calculation_date: date) -> AssetSnapshot:
    """
    Return the asset state after posting the calculation.

    Raises:
        LedgerInvariantError: the posting would lower accumulated depreciation,
            push book value under salvage, or break accumulated = price - book.
    """
    if calculation.new_accumulated < asset.accumulated_depreciation:
        raise LedgerInvariantError(
            asset.id,
            f"accumulated depreciation would decrease from "
            f"{asset.accumulated_depreciation} to {calculation.new_accumulated}"
        )
    if calculation.book_value_end < asset.salvage_value:
        raise LedgerInvariantError(
            asset.id,
            f"book value {calculation.book_value_end} is below salvage value {asset.salvage_value}"
        )
    if calculation.book_value_end > asset.current_book_value:
        raise LedgerInvariantError(
            asset.id,
            f"book value would increase from {asset.current_book_value} to {calculation.book_value_end}"
        )
    # Hand-edited rows may already be off; only hold consistent ones to the identity
    consistent = asset.accumulated_depreciation == asset.purchase_price - asset.current_book_value
    if consistent and calculation.new_accumulated != asset.purchase_price - calculation.book_value_end:
        raise LedgerInvariantError(
            asset.id,
            f"accumulated {calculation.new_accumulated} does not equal purchase price "
            f"{asset.purchase_price} less book value {calculation.book_value_end}"
        )

    return replace(
        asset,
        current_book_value=calculation.book_value_end,
        accumulated_depreciation=calculation.new_accumulated,
        last_depreciation_date=calculation_date,
        next_depreciation_date=None if calculation.is_fully_depreciated else calculation.next_due_date,
        is_fully_depreciated=calculation.is_fully_depreciated,
    )


@dataclass(frozen=True)
class ProjectedPosting:
    period_number: int
    depreciation_date: date
    period_start: date
    period_end: date
    book_value_start: Decimal
    amount: Decimal
    book_value_end: Decimal
    accumulated_depreciation: Decimal


def project_schedule(asset: AssetSnapshot, cadence: DepreciationCadence,
                     first_date: Optional[date] = None, max_periods: int = 120) -> List[ProjectedPosting]:
    """
    Project future postings by replaying the calculator and the ledger on a
    detached copy of the asset, one cadence period at a time.
    Stops at full depreciation, a zero posting, or max_periods.
    """
    if asset.is_fully_depreciated:
        return []

    run_date = first_date or asset.next_depreciation_date or asset.depreciation_start_date
    if run_date < asset.depreciation_start_date:
        run_date = asset.depreciation_start_date

    postings = []
    state = asset
    for period_number in range(1, max_periods + 1):
        calculation = calculate(state, run_date, cadence)
        if calculation.amount <= 0:
            break
        postings.append(ProjectedPosting(
            period_number=period_number,
            depreciation_date=run_date,
            period_start=calculation.period_start,
            period_end=calculation.period_end,
            book_value_start=calculation.book_value_start,
            amount=calculation.amount,
            book_value_end=calculation.book_value_end,
            accumulated_depreciation=calculation.new_accumulated,
        ))
        state = apply(state, calculation, run_date)
        if state.is_fully_depreciated:
            break
        run_date = state.next_depreciation_date
    return postings
