"""
Period Eligibility - decides whether an asset is due for a depreciation run
"""
from datetime import date

from assetops.models import DepreciationCadence
from assetops.services.depreciation_types import AssetSnapshot, EligibilityResult


def months_between(earlier: date, later: date) -> int:
    """Whole calendar months from earlier to later, ignoring the day of month"""
    return (later.year - earlier.year) * 12 + (later.month - earlier.month)


def elapsed_periods(last_run: date, calculation_date: date, cadence: DepreciationCadence) -> int:
    """Number of whole cadence units since the last run"""
    if cadence == DepreciationCadence.MONTHLY:
        return months_between(last_run, calculation_date)
    if cadence == DepreciationCadence.QUARTERLY:
        return months_between(last_run, calculation_date) // 3
    if cadence == DepreciationCadence.ANNUALLY:
        return calculation_date.year - last_run.year
    raise ValueError(f"Unsupported cadence: {cadence}")


_UNIT_NAMES = {
    DepreciationCadence.MONTHLY: "month",
    DepreciationCadence.QUARTERLY: "quarter",
    DepreciationCadence.ANNUALLY: "year",
}


def is_eligible(asset: AssetSnapshot, calculation_date: date,
                cadence: DepreciationCadence) -> EligibilityResult:
    """
    Rules, in order:
      1. start date after the calculation date -> not eligible
      2. already fully depreciated -> not eligible
      3. never depreciated -> eligible
      4. at least one whole cadence unit since the last run -> eligible
      5. next depreciation date reached -> eligible, whatever rule 4 said
    """
    if asset.depreciation_start_date > calculation_date:
        return EligibilityResult(False, "Depreciation start date not reached")

    if asset.is_fully_depreciated:
        return EligibilityResult(False, "Asset is already fully depreciated")

    if asset.last_depreciation_date is None:
        return EligibilityResult(True, "First depreciation calculation")

    elapsed = elapsed_periods(asset.last_depreciation_date, calculation_date, cadence)
    if elapsed >= 1:
        return EligibilityResult(True, f"{elapsed} {_UNIT_NAMES[cadence]}(s) since last calculation")

    if asset.next_depreciation_date is not None and calculation_date >= asset.next_depreciation_date:
        return EligibilityResult(True, "Next depreciation date reached")

    return EligibilityResult(False, "Not due for depreciation yet")
