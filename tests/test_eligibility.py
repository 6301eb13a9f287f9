"""
Tests for period eligibility: start date, fully depreciated, first run,
elapsed cadence units and the next-depreciation-date override.
"""

from datetime import date

from assetops.models import DepreciationCadence
from assetops.services.eligibility import elapsed_periods, is_eligible, months_between


class TestElapsedPeriods:

    def test_months_ignore_day_of_month(self):
        assert months_between(date(2024, 1, 31), date(2024, 2, 1)) == 1
        assert months_between(date(2024, 1, 1), date(2024, 1, 31)) == 0
        assert months_between(date(2023, 11, 15), date(2024, 2, 15)) == 3

    def test_quarters_are_floored(self):
        assert elapsed_periods(date(2024, 1, 15), date(2024, 3, 15), DepreciationCadence.QUARTERLY) == 0
        assert elapsed_periods(date(2024, 1, 15), date(2024, 4, 15), DepreciationCadence.QUARTERLY) == 1
        assert elapsed_periods(date(2024, 1, 15), date(2024, 12, 15), DepreciationCadence.QUARTERLY) == 3

    def test_years_are_calendar_years(self):
        assert elapsed_periods(date(2023, 12, 31), date(2024, 1, 1), DepreciationCadence.ANNUALLY) == 1
        assert elapsed_periods(date(2024, 1, 1), date(2024, 12, 31), DepreciationCadence.ANNUALLY) == 0


class TestIsEligible:

    def test_start_date_not_reached(self, make_snapshot):
        asset = make_snapshot(depreciation_start_date=date(2024, 6, 1))
        result = is_eligible(asset, date(2024, 5, 31), DepreciationCadence.MONTHLY)
        assert not result.eligible
        assert result.reason == "Depreciation start date not reached"

    def test_fully_depreciated_is_never_eligible(self, make_snapshot):
        asset = make_snapshot(is_fully_depreciated=True, last_depreciation_date=date(2023, 1, 1))
        result = is_eligible(asset, date(2024, 5, 31), DepreciationCadence.MONTHLY)
        assert not result.eligible
        assert result.reason == "Asset is already fully depreciated"

    def test_start_date_checked_before_fully_depreciated(self, make_snapshot):
        asset = make_snapshot(depreciation_start_date=date(2025, 1, 1), is_fully_depreciated=True)
        result = is_eligible(asset, date(2024, 5, 31), DepreciationCadence.MONTHLY)
        assert result.reason == "Depreciation start date not reached"

    def test_first_calculation(self, make_snapshot):
        result = is_eligible(make_snapshot(), date(2024, 1, 1), DepreciationCadence.ANNUALLY)
        assert result.eligible
        assert result.reason == "First depreciation calculation"

    def test_one_month_elapsed(self, make_snapshot):
        asset = make_snapshot(last_depreciation_date=date(2024, 1, 31))
        result = is_eligible(asset, date(2024, 2, 1), DepreciationCadence.MONTHLY)
        assert result.eligible
        assert result.reason == "1 month(s) since last calculation"

    def test_same_month_not_due(self, make_snapshot):
        asset = make_snapshot(last_depreciation_date=date(2024, 2, 1), next_depreciation_date=date(2024, 3, 1))
        result = is_eligible(asset, date(2024, 2, 28), DepreciationCadence.MONTHLY)
        assert not result.eligible
        assert result.reason == "Not due for depreciation yet"

    def test_quarterly_two_months_not_eligible(self, make_snapshot):
        """Two months after the last run no whole quarter has elapsed."""
        asset = make_snapshot(last_depreciation_date=date(2024, 1, 10))
        result = is_eligible(asset, date(2024, 3, 10), DepreciationCadence.QUARTERLY)
        assert not result.eligible

    def test_quarterly_four_months_eligible(self, make_snapshot):
        asset = make_snapshot(last_depreciation_date=date(2024, 1, 10))
        result = is_eligible(asset, date(2024, 5, 10), DepreciationCadence.QUARTERLY)
        assert result.eligible
        assert result.reason == "1 quarter(s) since last calculation"

    def test_next_date_reached_overrides_elapsed_check(self, make_snapshot):
        """A hand-set next date makes the asset due even inside the cadence window."""
        asset = make_snapshot(
            last_depreciation_date=date(2024, 1, 10),
            next_depreciation_date=date(2024, 2, 1),
        )
        result = is_eligible(asset, date(2024, 2, 15), DepreciationCadence.QUARTERLY)
        assert result.eligible
        assert result.reason == "Next depreciation date reached"

    def test_elapsed_check_wins_over_future_next_date(self, make_snapshot):
        asset = make_snapshot(
            last_depreciation_date=date(2024, 1, 10),
            next_depreciation_date=date(2025, 1, 1),
        )
        result = is_eligible(asset, date(2024, 2, 10), DepreciationCadence.MONTHLY)
        assert result.eligible

    def test_is_pure(self, make_snapshot):
        asset = make_snapshot(last_depreciation_date=date(2024, 1, 10))
        first = is_eligible(asset, date(2024, 2, 10), DepreciationCadence.MONTHLY)
        second = is_eligible(asset, date(2024, 2, 10), DepreciationCadence.MONTHLY)
        assert first == second
        assert asset.last_depreciation_date == date(2024, 1, 10)
