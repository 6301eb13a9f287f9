"""
Depreciation Run Service - batch depreciation for a business unit
"""
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Callable, List, Optional, Sequence
import logging

from sqlalchemy.orm import Session

from assetops.core.config import settings
from assetops.core.exceptions import (
    DepreciationAuthorizationError, LedgerInvariantError, MissingDepreciationSetupError
)
from assetops.models import DepreciationCadence, DetailStatus
from assetops.services import ledger
from assetops.services.audit_service import AuditAction, AuditService
from assetops.services.depreciation_methods import calculate
from assetops.services.depreciation_types import (
    Actor, AssetFilter, AssetSnapshot, BatchRunResult, DepreciationCalculation,
    DepreciationDetail, ZERO
)
from assetops.services.eligibility import is_eligible
from assetops.services.fixed_assets_service import FixedAssetService
from assetops.services.summary import summarize
from assetops.services.unit_of_work import DepreciationUnitOfWork

logger = logging.getLogger(__name__)

# (asset, calculation date, cadence) -> units consumed in the period, or None when unknown
UnitsProvider = Callable[[AssetSnapshot, date, DepreciationCadence], Optional[Decimal]]


@dataclass(frozen=True)
class AssetOutcome:
    # None when the asset is skipped without a detail entry
    detail: Optional[DepreciationDetail]
    calculation: Optional[DepreciationCalculation] = None
    updated: Optional[AssetSnapshot] = None


class DepreciationRunService:
    """Runs depreciation for every eligible asset of a business unit"""

    def __init__(self, db: Session, workers: int = None):
        self.db = db
        self.workers = workers or settings.DEPRECIATION_WORKERS
        self.assets = FixedAssetService(db)

    def preview(self, business_unit_id: int, actor: Actor, calculation_date: date = None,
                cadence: DepreciationCadence = DepreciationCadence.MONTHLY,
                asset_filter: AssetFilter = None,
                units_provider: UnitsProvider = None) -> BatchRunResult:
        """Dry run: same result as run_batch, nothing is written"""
        return self.run_batch(
            business_unit_id, actor, calculation_date=calculation_date, cadence=cadence,
            asset_filter=asset_filter, dry_run=True, units_provider=units_provider
        )

    def run_batch(self, business_unit_id: int, actor: Actor, calculation_date: date = None,
                  cadence: DepreciationCadence = DepreciationCadence.MONTHLY,
                  asset_filter: AssetFilter = None, dry_run: bool = False,
                  units_provider: UnitsProvider = None) -> BatchRunResult:
        """
        Evaluate, calculate and (unless dry_run) post depreciation for each asset.

        Per-asset problems end up in the result details; the batch always
        continues past them. Postings are committed together or not at all.

        Raises:
            DepreciationAuthorizationError: committing run by a non-elevated role
            DepreciationPersistenceError: the commit failed and was rolled back
            LedgerInvariantError: a calculation would corrupt an asset's running totals
        """
        if not dry_run:
            self._check_can_commit(actor)

        calculation_date = calculation_date or date.today()
        result = BatchRunResult(
            business_unit_id=business_unit_id,
            calculation_date=calculation_date,
            cadence=cadence,
            dry_run=dry_run,
        )

        rows = self.assets.get_depreciable(business_unit_id, asset_filter)
        result.total_assets_processed = len(rows)
        logger.info(
            f"Depreciation run for business unit {business_unit_id}: {len(rows)} asset(s), "
            f"{cadence.value} as of {calculation_date}, dry_run={dry_run}, actor={actor.id}"
        )

        snapshots: List[AssetSnapshot] = []
        outcomes: List[AssetOutcome] = []
        for row in rows:
            try:
                snapshots.append(AssetSnapshot.from_model(row))
            except Exception as e:
                outcomes.append(AssetOutcome(self._failed_detail_for_row(row, e)))

        outcomes.extend(self._evaluate_all(snapshots, calculation_date, cadence, units_provider))

        snapshots_by_id = {s.id: s for s in snapshots}
        unit_of_work = DepreciationUnitOfWork(self.db, business_unit_id, actor, calculation_date, cadence)
        for outcome in outcomes:
            detail = outcome.detail
            if detail is None:
                continue
            result.details.append(detail)
            if detail.status == DetailStatus.FAILED:
                result.failed_calculations += 1
            elif detail.status == DetailStatus.NO_SETUP:
                result.assets_without_setup += 1
            elif detail.status == DetailStatus.FULLY_DEPRECIATED:
                result.fully_depreciated_assets += 1
            elif outcome.updated is not None:
                result.successful_calculations += 1
                result.total_depreciation_amount += detail.depreciation_amount
                if not dry_run:
                    unit_of_work.stage(snapshots_by_id[detail.asset_id], outcome.updated, outcome.calculation)

        result.summary = summarize(result.details, snapshots)

        if not dry_run and len(unit_of_work):
            record_ids = unit_of_work.commit(
                before_commit=lambda ids: self._audit_run(result, actor, ids)
            )
            for detail in result.details:
                detail.depreciation_record_id = record_ids.get(detail.asset_id)

        logger.info(
            f"Depreciation run for business unit {business_unit_id} finished: "
            f"{result.successful_calculations} posted, {result.failed_calculations} failed, "
            f"{result.assets_without_setup} without setup, {result.fully_depreciated_assets} fully depreciated, "
            f"total {result.total_depreciation_amount}"
        )
        return result

    def _check_can_commit(self, actor: Actor):
        allowed = settings.elevated_roles_list
        if actor is None or (actor.role or "").upper() not in allowed:
            raise DepreciationAuthorizationError(actor.role if actor else None, allowed)

    def _evaluate_all(self, snapshots: Sequence[AssetSnapshot], calculation_date: date,
                      cadence: DepreciationCadence, units_provider: Optional[UnitsProvider]) -> List[AssetOutcome]:
        def evaluate(asset: AssetSnapshot) -> AssetOutcome:
            return self._evaluate(asset, calculation_date, cadence, units_provider)

        if self.workers > 1 and len(snapshots) > 1:
            with ThreadPoolExecutor(max_workers=self.workers) as pool:
                # map keeps input order and re-raises worker exceptions here
                return list(pool.map(evaluate, snapshots))
        return [evaluate(asset) for asset in snapshots]

    def _evaluate(self, asset: AssetSnapshot, calculation_date: date, cadence: DepreciationCadence,
                  units_provider: Optional[UnitsProvider]) -> AssetOutcome:
        """One asset: eligibility, calculation, ledger. Never touches the session."""
        try:
            eligibility = is_eligible(asset, calculation_date, cadence)
            if not eligibility.eligible:
                return AssetOutcome(self._detail(asset, DetailStatus.SUCCESS, message=eligibility.reason))

            units_used = units_provider(asset, calculation_date, cadence) if units_provider else None
            calculation = calculate(asset, calculation_date, cadence, units_used=units_used)

            if calculation.amount <= ZERO:
                if calculation.is_fully_depreciated:
                    return AssetOutcome(self._detail(
                        asset, DetailStatus.FULLY_DEPRECIATED,
                        new_book_value=calculation.book_value_end,
                        message="Asset is fully depreciated"
                    ))
                logger.info(f"No depreciation for asset {asset.id} ({asset.item_code}) this period")
                return AssetOutcome(None)

            updated = ledger.apply(asset, calculation, calculation_date)
            return AssetOutcome(
                self._detail(
                    asset, DetailStatus.SUCCESS,
                    amount=calculation.amount,
                    new_book_value=updated.current_book_value,
                ),
                calculation=calculation,
                updated=updated,
            )

        except MissingDepreciationSetupError as e:
            return AssetOutcome(self._detail(asset, DetailStatus.NO_SETUP, message=e.reason))
        except LedgerInvariantError:
            raise
        except Exception as e:
            logger.warning(f"Depreciation failed for asset {asset.id} ({asset.item_code}): {e}")
            return AssetOutcome(self._detail(asset, DetailStatus.FAILED, message=str(e) or type(e).__name__))

    def _detail(self, asset: AssetSnapshot, status: DetailStatus, amount: Decimal = ZERO,
                new_book_value: Decimal = None, message: str = None) -> DepreciationDetail:
        return DepreciationDetail(
            asset_id=asset.id,
            item_code=asset.item_code,
            description=asset.description,
            status=status,
            depreciation_amount=amount,
            book_value_before=asset.current_book_value,
            new_book_value=asset.current_book_value if new_book_value is None else new_book_value,
            message=message,
        )

    def _failed_detail_for_row(self, row, error: Exception) -> DepreciationDetail:
        logger.warning(f"Could not read asset {row.id} ({row.item_code}): {error}")
        return DepreciationDetail(
            asset_id=row.id,
            item_code=row.item_code,
            description=row.description,
            status=DetailStatus.FAILED,
            message=str(error),
        )

    def _audit_run(self, result: BatchRunResult, actor: Actor, record_ids):
        AuditService(self.db).log(
            action=AuditAction.DEPRECIATION_RUN,
            resource_type="DepreciationRecord",
            actor=actor,
            business_unit_id=result.business_unit_id,
            description=(
                f"{result.cadence.value.title()} depreciation run as of {result.calculation_date}: "
                f"{result.successful_calculations} asset(s), total {result.total_depreciation_amount}"
            ),
            new_values={
                "calculation_date": result.calculation_date,
                "cadence": result.cadence.value,
                "total_assets_processed": result.total_assets_processed,
                "successful_calculations": result.successful_calculations,
                "failed_calculations": result.failed_calculations,
                "total_depreciation_amount": result.total_depreciation_amount,
                "record_ids": sorted(record_ids.values()),
            },
        )
