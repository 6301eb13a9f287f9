"""
Tests for depreciation schedules: due-date rules, CRUD with audit entries,
execution records and the due-schedule runner.
"""

import pytest
from datetime import date
from decimal import Decimal

from assetops.core.exceptions import DepreciationPersistenceError
from assetops.models import (
    AuditLog, DepreciationExecution, DepreciationExecutionAsset, DepreciationRecord, ExecutionStatus
)
from assetops.schemas import ScheduleCreate, ScheduleUpdate
from assetops.services.depreciation_service import DepreciationRunService
from assetops.services.schedule_service import (
    ScheduleService, effective_execution_day, is_schedule_due
)


class TestDueRules:

    def test_monthly_fires_on_its_day(self):
        assert is_schedule_due("MONTHLY", 15, date(2024, 5, 15))
        assert not is_schedule_due("MONTHLY", 15, date(2024, 5, 14))

    def test_day_past_month_end_fires_on_last_day(self):
        assert effective_execution_day(31, date(2024, 2, 10)) == 29
        assert is_schedule_due("MONTHLY", 30, date(2023, 2, 28))
        assert not is_schedule_due("MONTHLY", 30, date(2024, 1, 31))

    def test_quarterly_only_at_quarter_end_months(self):
        assert not is_schedule_due("QUARTERLY", 30, date(2024, 5, 30))
        assert is_schedule_due("QUARTERLY", 30, date(2024, 6, 30))
        assert is_schedule_due("QUARTERLY", 31, date(2024, 9, 30))

    def test_annual_only_in_december(self):
        assert not is_schedule_due("ANNUALLY", 31, date(2024, 11, 30))
        assert is_schedule_due("ANNUALLY", 31, date(2024, 12, 31))


@pytest.fixture
def create_schedule(db_session, business_unit, admin):
    def _create(**overrides):
        values = dict(name="Month end", schedule_type="MONTHLY", execution_day=31)
        values.update(overrides)
        schedule = ScheduleService(db_session).create(ScheduleCreate(**values), business_unit.id, admin)
        db_session.commit()
        return schedule
    return _create


class TestScheduleCrud:

    def test_create_records_audit(self, db_session, create_schedule, admin):
        schedule = create_schedule(include_categories=[1])
        assert schedule.id is not None
        assert schedule.created_by == admin.id
        assert schedule.include_categories == [1]
        actions = [log.action for log in db_session.query(AuditLog).all()]
        assert actions == ["SCHEDULE_CREATED"]

    def test_create_for_unknown_business_unit(self, db_session, admin):
        with pytest.raises(ValueError, match="Business unit not found"):
            ScheduleService(db_session).create(ScheduleCreate(name="x"), 999, admin)

    def test_update_only_changes_given_fields(self, db_session, create_schedule, business_unit, admin):
        schedule = create_schedule(description="keep me")
        updated = ScheduleService(db_session).update(
            schedule.id, business_unit.id, ScheduleUpdate(schedule_type="QUARTERLY"), admin
        )
        assert updated.schedule_type == "QUARTERLY"
        assert updated.description == "keep me"

    def test_toggle_and_delete(self, db_session, create_schedule, business_unit, admin):
        schedule = create_schedule()
        service = ScheduleService(db_session)

        assert not service.toggle_status(schedule.id, business_unit.id, False, admin).is_active
        assert service.delete(schedule.id, business_unit.id, admin)
        assert service.get_by_id(schedule.id, business_unit.id) is None
        assert not service.delete(schedule.id, business_unit.id, admin)

    def test_details(self, db_session, create_schedule, make_asset, categories, business_unit):
        make_asset(category="equipment")
        make_asset(category="vehicles", current_book_value="50000.00")
        schedule = create_schedule(exclude_categories=[categories["equipment"].id])

        details = ScheduleService(db_session).get_details(schedule.id, business_unit.id)
        assert details["exclude_category_names"] == ["Equipment"]
        assert details["include_category_names"] == []
        assert details["affected_assets_count"] == 1
        assert details["total_book_value"] == Decimal("50000.00")
        assert details["recent_executions"] == []


class TestExecution:

    def test_execute_records_execution_and_assets(self, db_session, create_schedule, make_asset):
        posted = make_asset()
        no_setup = make_asset(monthly_depreciation=Decimal("0"))
        schedule = create_schedule()

        execution = ScheduleService(db_session).execute(schedule, calculation_date=date(2024, 1, 31))

        assert execution.status == ExecutionStatus.COMPLETED.value
        assert execution.executed_by == "system"
        assert execution.total_assets_processed == 2
        assert execution.successful_calculations == 1
        assert execution.total_depreciation_amount == Decimal("1000.00")
        assert execution.scheduled_date == date(2024, 1, 31)
        assert execution.execution_summary["by_method"][0]["method"] == "STRAIGHT_LINE"

        rows = {r.asset_id: r for r in db_session.query(DepreciationExecutionAsset).all()}
        assert rows[posted.id].status == "SUCCESS"
        assert rows[posted.id].depreciation_record_id is not None
        assert rows[posted.id].book_value_after == Decimal("119000.00")
        assert rows[no_setup.id].status == "NO_SETUP"

        record = db_session.get(DepreciationRecord, rows[posted.id].depreciation_record_id)
        assert record.calculated_by == "scheduler"

    def test_failed_run_is_recorded(self, db_session, create_schedule, make_asset, monkeypatch):
        make_asset()
        schedule = create_schedule()

        def failing_run(self, business_unit_id, *args, **kwargs):
            raise DepreciationPersistenceError(business_unit_id, RuntimeError("disk I/O error"))

        monkeypatch.setattr(DepreciationRunService, "run_batch", failing_run)
        with pytest.raises(DepreciationPersistenceError):
            ScheduleService(db_session).execute(schedule, calculation_date=date(2024, 1, 31))

        execution = db_session.query(DepreciationExecution).one()
        assert execution.status == ExecutionStatus.FAILED.value
        assert "disk I/O error" in execution.error_message
        assert execution.completed_at is not None

    def test_run_due_schedules_runs_each_once(self, db_session, create_schedule, make_asset):
        make_asset()
        monthly = create_schedule(name="Monthly", execution_day=31)
        create_schedule(name="Quarterly", schedule_type="QUARTERLY", execution_day=31)
        create_schedule(name="Paused", is_active=False)
        service = ScheduleService(db_session)

        results = service.run_due_schedules(date(2024, 1, 31))
        assert [r["schedule_id"] for r in results] == [monthly.id]
        assert results[0]["status"] == "success"
        assert results[0]["assets_processed"] == 1

        assert service.run_due_schedules(date(2024, 1, 31)) == []
        assert db_session.query(DepreciationRecord).count() == 1

    def test_one_failing_schedule_does_not_stop_others(self, db_session, business_unit, make_asset,
                                                       create_schedule, monkeypatch):
        make_asset()
        first = create_schedule(name="First")
        second = create_schedule(name="Second")
        real_run = DepreciationRunService.run_batch
        calls = []

        def run_once_then_fail(self, *args, **kwargs):
            calls.append(1)
            if len(calls) == 1:
                raise DepreciationPersistenceError(business_unit.id)
            return real_run(self, *args, **kwargs)

        monkeypatch.setattr(DepreciationRunService, "run_batch", run_once_then_fail)
        results = ScheduleService(db_session).run_due_schedules(date(2024, 1, 31))

        assert [(r["schedule_id"], r["status"]) for r in results] == [(first.id, "error"), (second.id, "success")]
