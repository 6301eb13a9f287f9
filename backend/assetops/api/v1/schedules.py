"""
Depreciation Schedule API Routes
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List
from datetime import date, datetime

from assetops.core.config import settings
from assetops.core.database import get_db
from assetops.core.exceptions import DepreciationError
from assetops.core.security import (
    get_current_actor, RoleChecker, require_business_unit_access, verify_cron_secret
)
from assetops.schemas import (
    ScheduleCreate, ScheduleUpdate, ScheduleStatusUpdate, ScheduleResponse,
    ScheduleDetailResponse, ExecutionResponse, TriggerResponse
)
from assetops.services.depreciation_types import Actor
from assetops.services.schedule_service import ScheduleService

router = APIRouter(prefix="/business-units/{business_unit_id}/depreciation/schedules", tags=["Depreciation Schedules"])
trigger_router = APIRouter(prefix="/depreciation/schedules", tags=["Depreciation Schedules"])

manage_schedules = RoleChecker(settings.schedule_manager_roles_list)
execute_schedules = RoleChecker(settings.elevated_roles_list)


@router.get("", response_model=List[ScheduleResponse])
async def list_schedules(
    business_unit_id: int,
    include_inactive: bool = True,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor)
):
    """List depreciation schedules"""
    require_business_unit_access(business_unit_id, actor)
    return ScheduleService(db).get_by_business_unit(business_unit_id, include_inactive=include_inactive)


@router.post("", response_model=ScheduleResponse, status_code=status.HTTP_201_CREATED)
async def create_schedule(
    business_unit_id: int,
    data: ScheduleCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(manage_schedules)
):
    """Create a depreciation schedule"""
    require_business_unit_access(business_unit_id, actor)
    try:
        schedule = ScheduleService(db).create(data, business_unit_id, actor)
        db.commit()
        return schedule
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/{schedule_id}", response_model=ScheduleDetailResponse)
async def get_schedule(
    schedule_id: int,
    business_unit_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor)
):
    """Schedule with category names, affected assets and recent executions"""
    require_business_unit_access(business_unit_id, actor)
    details = ScheduleService(db).get_details(schedule_id, business_unit_id)
    if not details:
        raise HTTPException(status_code=404, detail="Schedule not found")

    response = ScheduleResponse.model_validate(details.pop("schedule")).model_dump()
    details["recent_executions"] = [ExecutionResponse.model_validate(e) for e in details["recent_executions"]]
    response.update(details)
    return response


@router.put("/{schedule_id}", response_model=ScheduleResponse)
async def update_schedule(
    schedule_id: int,
    business_unit_id: int,
    data: ScheduleUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(manage_schedules)
):
    """Update a depreciation schedule"""
    require_business_unit_access(business_unit_id, actor)
    schedule = ScheduleService(db).update(schedule_id, business_unit_id, data, actor)
    if not schedule:
        raise HTTPException(status_code=404, detail="Schedule not found")
    db.commit()
    return schedule


@router.patch("/{schedule_id}/status", response_model=ScheduleResponse)
async def toggle_schedule_status(
    schedule_id: int,
    business_unit_id: int,
    data: ScheduleStatusUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(manage_schedules)
):
    """Activate or deactivate a schedule"""
    require_business_unit_access(business_unit_id, actor)
    schedule = ScheduleService(db).toggle_status(schedule_id, business_unit_id, data.is_active, actor)
    if not schedule:
        raise HTTPException(status_code=404, detail="Schedule not found")
    db.commit()
    return schedule


@router.delete("/{schedule_id}")
async def delete_schedule(
    schedule_id: int,
    business_unit_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(manage_schedules)
):
    """Delete a schedule and its execution history"""
    require_business_unit_access(business_unit_id, actor)
    if not ScheduleService(db).delete(schedule_id, business_unit_id, actor):
        raise HTTPException(status_code=404, detail="Schedule not found")
    db.commit()
    return {"message": "Schedule deleted successfully"}


@router.get("/{schedule_id}/executions", response_model=List[ExecutionResponse])
async def list_executions(
    schedule_id: int,
    business_unit_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor)
):
    require_business_unit_access(business_unit_id, actor)
    return ScheduleService(db).get_executions(schedule_id, business_unit_id)


@router.post("/{schedule_id}/execute", response_model=ExecutionResponse)
async def execute_schedule(
    schedule_id: int,
    business_unit_id: int,
    calculation_date: date = None,
    db: Session = Depends(get_db),
    actor: Actor = Depends(execute_schedules)
):
    """Run a schedule now, outside its calendar"""
    require_business_unit_access(business_unit_id, actor)
    service = ScheduleService(db)
    schedule = service.get_by_id(schedule_id, business_unit_id)
    if not schedule:
        raise HTTPException(status_code=404, detail="Schedule not found")
    try:
        return service.execute(schedule, calculation_date=calculation_date, actor=actor)
    except DepreciationError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


@trigger_router.post("/trigger", response_model=TriggerResponse, dependencies=[Depends(verify_cron_secret)])
async def trigger_due_schedules(
    on_date: date = None,
    db: Session = Depends(get_db)
):
    """Cron entry point: execute every schedule due today"""
    results = ScheduleService(db).run_due_schedules(on_date)
    return {
        "success": True,
        "message": f"Processed {len(results)} schedules",
        "results": results,
        "executed_at": datetime.utcnow(),
    }
