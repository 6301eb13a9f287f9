"""
Depreciation Schedule Service - recurring depreciation runs per business unit
"""
from calendar import monthrange
from datetime import date, datetime
from typing import Dict, List, Optional
import json
import logging
import time

from sqlalchemy.orm import Session, joinedload

from assetops.core.config import settings
from assetops.core.exceptions import LedgerInvariantError
from assetops.models import (
    BusinessUnit, DepreciationCadence, DepreciationExecution, DepreciationExecutionAsset,
    DepreciationSchedule, ExecutionStatus
)
from assetops.schemas import ScheduleCreate, ScheduleUpdate
from assetops.services.audit_service import AuditAction, AuditService
from assetops.services.depreciation_service import DepreciationRunService
from assetops.services.depreciation_types import Actor, AssetFilter, to_money
from assetops.services.fixed_assets_service import FixedAssetService

logger = logging.getLogger(__name__)


def effective_execution_day(execution_day: int, on_date: date) -> int:
    """Days past the end of the month fire on its last day"""
    return min(execution_day, monthrange(on_date.year, on_date.month)[1])


def is_schedule_due(schedule_type: str, execution_day: int, on_date: date) -> bool:
    """
    Monthly schedules fire every month, quarterly ones in March, June,
    September and December, annual ones in December.
    """
    if on_date.day != effective_execution_day(execution_day, on_date):
        return False
    cadence = DepreciationCadence(schedule_type)
    if cadence == DepreciationCadence.QUARTERLY:
        return on_date.month % 3 == 0
    if cadence == DepreciationCadence.ANNUALLY:
        return on_date.month == 12
    return True


def _json_safe(value):
    return json.loads(json.dumps(value, default=str))


class ScheduleService:
    """Service for managing and executing depreciation schedules"""

    def __init__(self, db: Session):
        self.db = db
        self.audit = AuditService(db)

    def get_by_id(self, schedule_id: int, business_unit_id: int) -> Optional[DepreciationSchedule]:
        return self.db.query(DepreciationSchedule).filter(
            DepreciationSchedule.id == schedule_id,
            DepreciationSchedule.business_unit_id == business_unit_id
        ).first()

    def get_by_business_unit(self, business_unit_id: int, include_inactive: bool = True) -> List[DepreciationSchedule]:
        query = self.db.query(DepreciationSchedule).filter(
            DepreciationSchedule.business_unit_id == business_unit_id
        )
        if not include_inactive:
            query = query.filter(DepreciationSchedule.is_active == True)
        return query.order_by(DepreciationSchedule.created_at.desc(), DepreciationSchedule.id.desc()).all()

    def create(self, data: ScheduleCreate, business_unit_id: int, actor: Actor) -> DepreciationSchedule:
        """Create a new schedule"""
        if not self.db.get(BusinessUnit, business_unit_id):
            raise ValueError("Business unit not found")

        schedule = DepreciationSchedule(
            business_unit_id=business_unit_id,
            name=data.name,
            description=data.description,
            schedule_type=data.schedule_type.value,
            execution_day=data.execution_day,
            include_categories=list(data.include_categories),
            exclude_categories=list(data.exclude_categories),
            is_active=data.is_active,
            created_by=actor.id
        )
        self.db.add(schedule)
        self.db.flush()

        self.audit.log(
            action=AuditAction.SCHEDULE_CREATED,
            resource_type="DepreciationSchedule",
            resource_id=schedule.id,
            actor=actor,
            business_unit_id=business_unit_id,
            description=f"Created depreciation schedule '{schedule.name}'",
            new_values=data.model_dump(mode="json")
        )
        return schedule

    def update(self, schedule_id: int, business_unit_id: int, data: ScheduleUpdate,
               actor: Actor) -> Optional[DepreciationSchedule]:
        schedule = self.get_by_id(schedule_id, business_unit_id)
        if not schedule:
            return None

        update_data = data.model_dump(exclude_unset=True, mode="json")
        for key, value in update_data.items():
            setattr(schedule, key, value)
        self.db.flush()

        self.audit.log(
            action=AuditAction.SCHEDULE_UPDATED,
            resource_type="DepreciationSchedule",
            resource_id=schedule.id,
            actor=actor,
            business_unit_id=business_unit_id,
            description=f"Updated depreciation schedule '{schedule.name}'",
            new_values=update_data
        )
        return schedule

    def delete(self, schedule_id: int, business_unit_id: int, actor: Actor) -> bool:
        schedule = self.get_by_id(schedule_id, business_unit_id)
        if not schedule:
            return False

        name = schedule.name
        self.db.delete(schedule)
        self.db.flush()

        self.audit.log(
            action=AuditAction.SCHEDULE_DELETED,
            resource_type="DepreciationSchedule",
            resource_id=schedule_id,
            actor=actor,
            business_unit_id=business_unit_id,
            description=f"Deleted depreciation schedule '{name}'"
        )
        return True

    def toggle_status(self, schedule_id: int, business_unit_id: int, is_active: bool,
                      actor: Actor) -> Optional[DepreciationSchedule]:
        schedule = self.get_by_id(schedule_id, business_unit_id)
        if not schedule:
            return None

        schedule.is_active = is_active
        self.db.flush()

        self.audit.log(
            action=AuditAction.SCHEDULE_TOGGLED,
            resource_type="DepreciationSchedule",
            resource_id=schedule.id,
            actor=actor,
            business_unit_id=business_unit_id,
            description=f"{'Activated' if is_active else 'Deactivated'} depreciation schedule '{schedule.name}'",
            new_values={"is_active": is_active}
        )
        return schedule

    def get_details(self, schedule_id: int, business_unit_id: int, recent: int = 10) -> Optional[Dict]:
        """Schedule with category names, affected assets and its latest executions"""
        schedule = self.get_by_id(schedule_id, business_unit_id)
        if not schedule:
            return None

        assets = FixedAssetService(self.db)
        affected = assets.count_affected(business_unit_id, self._asset_filter(schedule))
        return {
            "schedule": schedule,
            "include_category_names": assets.get_category_names(business_unit_id, schedule.include_categories or []),
            "exclude_category_names": assets.get_category_names(business_unit_id, schedule.exclude_categories or []),
            "affected_assets_count": affected["affected_assets_count"],
            "total_book_value": to_money(affected["total_book_value"]),
            "recent_executions": list(schedule.executions[:recent]),
        }

    def get_executions(self, schedule_id: int, business_unit_id: int) -> List[DepreciationExecution]:
        return self.db.query(DepreciationExecution).options(
            joinedload(DepreciationExecution.asset_details)
        ).filter(
            DepreciationExecution.schedule_id == schedule_id,
            DepreciationExecution.business_unit_id == business_unit_id
        ).order_by(DepreciationExecution.execution_date.desc()).all()

    def get_due_schedules(self, on_date: date) -> List[DepreciationSchedule]:
        """Active schedules due on the date that have not run on it yet"""
        candidates = self.db.query(DepreciationSchedule).filter(
            DepreciationSchedule.is_active == True
        ).order_by(DepreciationSchedule.id).all()

        due = []
        for schedule in candidates:
            if not is_schedule_due(schedule.schedule_type, schedule.execution_day, on_date):
                continue
            if self._already_executed(schedule.id, on_date):
                logger.info(f"Schedule {schedule.name} already executed on {on_date}, skipping")
                continue
            due.append(schedule)
        return due

    def execute(self, schedule: DepreciationSchedule, calculation_date: date = None,
                actor: Actor = None) -> DepreciationExecution:
        """
        Run the schedule's depreciation batch and record the execution.

        The execution row is committed as RUNNING first so a failed run stays
        visible as FAILED. Failures are re-raised after being recorded.
        """
        calculation_date = calculation_date or date.today()
        actor = actor or Actor.system(settings.SYSTEM_ACTOR_ROLE)
        started = time.monotonic()

        execution = DepreciationExecution(
            schedule_id=schedule.id,
            business_unit_id=schedule.business_unit_id,
            execution_date=datetime.utcnow(),
            scheduled_date=calculation_date,
            status=ExecutionStatus.RUNNING.value,
            executed_by=actor.id
        )
        self.db.add(execution)
        self.db.commit()
        logger.info(f"Starting execution {execution.id} for schedule {schedule.name}")

        try:
            result = DepreciationRunService(self.db).run_batch(
                schedule.business_unit_id,
                actor,
                calculation_date=calculation_date,
                cadence=DepreciationCadence(schedule.schedule_type),
                asset_filter=self._asset_filter(schedule),
            )
        except Exception as e:
            self.db.rollback()
            execution.status = ExecutionStatus.FAILED.value
            execution.error_message = str(e)
            execution.completed_at = datetime.utcnow()
            execution.execution_duration_ms = int((time.monotonic() - started) * 1000)
            self.db.commit()
            if isinstance(e, LedgerInvariantError):
                logger.critical(f"Execution {execution.id} aborted: {e}")
            else:
                logger.error(f"Execution {execution.id} for schedule {schedule.name} failed: {e}")
            raise

        for detail in result.details:
            self.db.add(DepreciationExecutionAsset(
                execution_id=execution.id,
                asset_id=detail.asset_id,
                depreciation_record_id=detail.depreciation_record_id,
                status=detail.status.value,
                depreciation_amount=to_money(detail.depreciation_amount),
                book_value_before=to_money(detail.book_value_before),
                book_value_after=to_money(detail.new_book_value),
                error_message=detail.message
            ))

        no_successes = result.successful_calculations == 0
        execution.status = (
            ExecutionStatus.FAILED.value if result.failed_calculations > 0 and no_successes
            else ExecutionStatus.COMPLETED.value
        )
        execution.total_assets_processed = result.total_assets_processed
        execution.successful_calculations = result.successful_calculations
        execution.failed_calculations = result.failed_calculations
        execution.total_depreciation_amount = to_money(result.total_depreciation_amount)
        execution.execution_summary = _json_safe(result.summary.to_dict())
        execution.completed_at = datetime.utcnow()
        execution.execution_duration_ms = int((time.monotonic() - started) * 1000)

        self.audit.log(
            action=AuditAction.SCHEDULE_EXECUTED,
            resource_type="DepreciationExecution",
            resource_id=execution.id,
            actor=actor,
            business_unit_id=schedule.business_unit_id,
            description=(
                f"Executed schedule '{schedule.name}': {result.successful_calculations} successful, "
                f"{result.failed_calculations} failed"
            )
        )
        self.db.commit()

        logger.info(
            f"Execution {execution.id} completed: {result.successful_calculations} successful, "
            f"{result.failed_calculations} failed"
        )
        return execution

    def run_due_schedules(self, on_date: date = None) -> List[Dict]:
        """Execute every schedule due on the date; one failing schedule does not stop the rest"""
        on_date = on_date or date.today()
        schedules = self.get_due_schedules(on_date)
        logger.info(f"Found {len(schedules)} depreciation schedule(s) due on {on_date}")

        results = []
        for schedule in schedules:
            try:
                execution = self.execute(schedule, calculation_date=on_date)
                results.append({
                    "schedule_id": schedule.id,
                    "schedule_name": schedule.name,
                    "status": "success",
                    "execution_id": execution.id,
                    "assets_processed": execution.total_assets_processed,
                })
            except LedgerInvariantError:
                raise
            except Exception as e:
                results.append({
                    "schedule_id": schedule.id,
                    "schedule_name": schedule.name,
                    "status": "error",
                    "error": str(e),
                })
        return results

    def _already_executed(self, schedule_id: int, on_date: date) -> bool:
        return self.db.query(DepreciationExecution.id).filter(
            DepreciationExecution.schedule_id == schedule_id,
            DepreciationExecution.scheduled_date == on_date
        ).first() is not None

    @staticmethod
    def _asset_filter(schedule: DepreciationSchedule) -> AssetFilter:
        return AssetFilter(
            include_categories=tuple(schedule.include_categories or ()),
            exclude_categories=tuple(schedule.exclude_categories or ()),
        )
