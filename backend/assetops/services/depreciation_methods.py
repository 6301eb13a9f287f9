"""
Depreciation Methods - per-period depreciation amount for each supported method
"""
from datetime import date, timedelta
from decimal import Decimal
from typing import Callable, Dict, Optional, Tuple
from dateutil.relativedelta import relativedelta

from assetops.core.exceptions import MissingDepreciationSetupError
from assetops.models import DepreciationMethod, DepreciationCadence
from assetops.services.depreciation_types import (
    AssetSnapshot, DepreciationCalculation, ZERO, to_money
)

MONTHS_PER_YEAR = Decimal("12")
HUNDRED = Decimal("100")

# (asset, period multiplier in months, units used in the period) -> (raw amount, note)
MethodCalculator = Callable[[AssetSnapshot, int, Optional[Decimal]], Tuple[Decimal, str]]


def _straight_line(asset: AssetSnapshot, multiplier: int, units_used: Optional[Decimal]):
    return asset.monthly_depreciation * multiplier, "Straight-line method"


def _declining_balance(asset: AssetSnapshot, multiplier: int, units_used: Optional[Decimal]):
    monthly_rate = asset.depreciation_rate / HUNDRED / MONTHS_PER_YEAR
    return (
        asset.current_book_value * monthly_rate * multiplier,
        f"Declining balance method ({asset.depreciation_rate}% annual rate)",
    )


def _units_of_production(asset: AssetSnapshot, multiplier: int, units_used: Optional[Decimal]):
    if units_used is None:
        # No usage figure for the period: approximate with the monthly amount
        return (
            asset.monthly_depreciation * multiplier,
            "Units of production method (no usage data, monthly amount applied)",
        )
    return (
        units_used * asset.depreciation_per_unit,
        f"Units of production method ({units_used} units used)",
    )


def _sum_of_years_digits(asset: AssetSnapshot, multiplier: int, units_used: Optional[Decimal]):
    # Posts the configured monthly amount rather than the declining SYD fraction
    return asset.monthly_depreciation * multiplier, "Sum of years digits method (monthly amount applied)"


METHOD_CALCULATORS: Dict[DepreciationMethod, MethodCalculator] = {
    DepreciationMethod.STRAIGHT_LINE: _straight_line,
    DepreciationMethod.DECLINING_BALANCE: _declining_balance,
    DepreciationMethod.UNITS_OF_PRODUCTION: _units_of_production,
    DepreciationMethod.SUM_OF_YEARS_DIGITS: _sum_of_years_digits,
}

_uncovered = set(DepreciationMethod) - set(METHOD_CALCULATORS)
if _uncovered:
    raise RuntimeError(
        f"No calculator registered for: {', '.join(sorted(m.value for m in _uncovered))}"
    )


def setup_problem(asset: AssetSnapshot, units_used: Optional[Decimal] = None) -> Optional[str]:
    """
    Return why the asset cannot be calculated, or None when its setup is complete.
    Units of production is checked against the figure it will use: the
    per-unit amount when usage is known, the monthly amount otherwise.
    """
    if asset.method == DepreciationMethod.DECLINING_BALANCE:
        if asset.depreciation_rate <= ZERO:
            return "Missing declining balance rate"
        return None
    if asset.method == DepreciationMethod.UNITS_OF_PRODUCTION and units_used is not None:
        if asset.depreciation_per_unit <= ZERO:
            return "Missing depreciation per unit"
        return None
    if asset.monthly_depreciation <= ZERO:
        return "Missing monthly depreciation"
    return None


def first_of_month(value: date) -> date:
    return value.replace(day=1)


def period_bounds(asset: AssetSnapshot, calculation_date: date, multiplier: int) -> Tuple[date, date]:
    """
    Start: first day of the month after the last run, or after the depreciation
    start date for a first run. End: last day of the multiplier-month window
    that opens with the calculation month.
    """
    last = asset.last_depreciation_date or asset.depreciation_start_date
    period_start = first_of_month(last) + relativedelta(months=1)
    period_end = first_of_month(calculation_date) + relativedelta(months=multiplier) - timedelta(days=1)
    return period_start, period_end


def next_due_date(calculation_date: date, multiplier: int) -> date:
    return first_of_month(calculation_date) + relativedelta(months=multiplier)


def calculate(asset: AssetSnapshot, calculation_date: date, cadence: DepreciationCadence,
              units_used: Optional[Decimal] = None) -> DepreciationCalculation:
    """
    Compute one period of depreciation for an eligible asset.

    The raw method amount is kept at full precision and clamped so the book
    value never drops below salvage. The clamped amount is then rounded to
    cents with to_money, so the posted figure is fixed at calculation time.
    Book value and accumulated depreciation are derived from the posted amount.

    Raises:
        MissingDepreciationSetupError: the asset has no usable rate / amount
    """
    problem = setup_problem(asset, units_used)
    if problem:
        raise MissingDepreciationSetupError(asset.id, problem)

    multiplier = cadence.months
    period_start, period_end = period_bounds(asset, calculation_date, multiplier)

    raw_amount, note = METHOD_CALCULATORS[asset.method](asset, multiplier, units_used)

    headroom = asset.current_book_value - asset.salvage_value
    # Rounded to cents here rather than at persistence; everything below derives from it
    amount = to_money(max(min(raw_amount, headroom), ZERO))
    if amount > headroom:
        amount = max(headroom, ZERO)

    book_value_end = asset.current_book_value - amount
    is_fully_depreciated = book_value_end <= asset.salvage_value

    return DepreciationCalculation(
        period_start=period_start,
        period_end=period_end,
        book_value_start=asset.current_book_value,
        amount=amount,
        book_value_end=book_value_end,
        new_accumulated=asset.accumulated_depreciation + amount,
        is_fully_depreciated=is_fully_depreciated,
        next_due_date=None if is_fully_depreciated else next_due_date(calculation_date, multiplier),
        note=note,
    )
