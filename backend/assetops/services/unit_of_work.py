"""
Depreciation unit of work.

Collects the writes of one batch run (a depreciation record, the asset's new
running totals and a history entry per posted asset) and applies all of them
in a single transaction.
"""
from dataclasses import dataclass
from datetime import date
from typing import Callable, Dict, List, Optional
import logging

from sqlalchemy.orm import Session

from assetops.core.database import transaction
from assetops.core.exceptions import DepreciationPersistenceError
from assetops.models import Asset, AssetHistory, DepreciationCadence, DepreciationRecord
from assetops.services.depreciation_types import (
    Actor, AssetSnapshot, DepreciationCalculation, to_money
)

logger = logging.getLogger(__name__)

DEPRECIATION_CALCULATED = "DEPRECIATION_CALCULATED"


@dataclass(frozen=True)
class StagedPosting:
    before: AssetSnapshot
    after: AssetSnapshot
    calculation: DepreciationCalculation


class DepreciationUnitOfWork:
    """Staged depreciation postings for one business unit, committed all-or-nothing"""

    def __init__(self, db: Session, business_unit_id: int, actor: Actor,
                 calculation_date: date, cadence: DepreciationCadence):
        self.db = db
        self.business_unit_id = business_unit_id
        self.actor = actor
        self.calculation_date = calculation_date
        self.cadence = cadence
        self._staged: List[StagedPosting] = []

    def __len__(self):
        return len(self._staged)

    def stage(self, before: AssetSnapshot, after: AssetSnapshot, calculation: DepreciationCalculation):
        self._staged.append(StagedPosting(before, after, calculation))

    def commit(self, before_commit: Optional[Callable[[Dict[int, int]], None]] = None) -> Dict[int, int]:
        """
        Write every staged posting in one transaction.

        before_commit runs inside the transaction once all records are flushed,
        with the asset id -> record id map.

        Returns:
            asset id -> depreciation record id

        Raises:
            DepreciationPersistenceError: nothing was written
        """
        if not self._staged:
            return {}

        record_ids: Dict[int, int] = {}
        try:
            with transaction(self.db):
                for posting in self._staged:
                    record = self._write(posting)
                    self.db.flush()
                    record_ids[posting.after.id] = record.id
                if before_commit is not None:
                    before_commit(record_ids)
        except Exception as e:
            logger.error(
                f"Depreciation commit failed for business unit {self.business_unit_id}, "
                f"{len(self._staged)} posting(s) rolled back: {e}"
            )
            raise DepreciationPersistenceError(self.business_unit_id, e) from e

        logger.info(
            f"Committed {len(record_ids)} depreciation record(s) for business unit {self.business_unit_id}"
        )
        return record_ids

    def _write(self, posting: StagedPosting) -> DepreciationRecord:
        before, after, calc = posting.before, posting.after, posting.calculation
        performed_by = self.actor.username or self.actor.id
        period = self.cadence.value.lower()

        asset = self.db.get(Asset, after.id)
        if asset is None:
            raise LookupError(f"Asset {after.id} no longer exists")

        asset.current_book_value = to_money(after.current_book_value)
        asset.accumulated_depreciation = to_money(after.accumulated_depreciation)
        asset.last_depreciation_date = after.last_depreciation_date
        asset.next_depreciation_date = after.next_depreciation_date
        asset.is_fully_depreciated = after.is_fully_depreciated

        record = DepreciationRecord(
            asset_id=after.id,
            business_unit_id=self.business_unit_id,
            depreciation_date=self.calculation_date,
            period_start=calc.period_start,
            period_end=calc.period_end,
            book_value_start=to_money(calc.book_value_start),
            depreciation_amount=to_money(calc.amount),
            book_value_end=to_money(calc.book_value_end),
            accumulated_depreciation=to_money(calc.new_accumulated),
            method=before.method.value,
            calculated_by=performed_by,
            notes=f"Automated {period} depreciation calculation. {calc.note}".strip()
        )
        self.db.add(record)

        self.db.add(AssetHistory(
            asset_id=after.id,
            business_unit_id=self.business_unit_id,
            action=DEPRECIATION_CALCULATED,
            previous_book_value=to_money(before.current_book_value),
            new_book_value=to_money(after.current_book_value),
            depreciation_amount=to_money(calc.amount),
            notes=(
                f"Automated {period} depreciation: {to_money(calc.amount):,}. "
                f"New book value: {to_money(after.current_book_value):,}"
            ),
            performed_by=performed_by
        ))
        return record
