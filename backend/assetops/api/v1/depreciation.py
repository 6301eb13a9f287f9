"""
Depreciation API Routes - batch runs, overview, history, projections and audit trail
"""
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import date

from assetops.core.config import settings
from assetops.core.database import get_db
from assetops.core.exceptions import (
    DepreciationAuthorizationError, DepreciationError, DepreciationPersistenceError, LedgerInvariantError
)
from assetops.core.security import get_current_actor, RoleChecker, require_business_unit_access
from assetops.models import DepreciationCadence
from assetops.schemas import (
    AuditLogResponse, CadenceEnum, DepreciationRunRequest, DepreciationRunResponse, DepreciationHistoryResponse,
    DepreciationOverviewResponse, DepreciationProjectionResponse
)
from assetops.services.audit_service import AuditService
from assetops.services.depreciation_service import DepreciationRunService
from assetops.services.depreciation_types import Actor, AssetFilter, AssetSnapshot
from assetops.services.fixed_assets_service import FixedAssetService
from assetops.services.ledger import project_schedule

router = APIRouter(prefix="/business-units/{business_unit_id}", tags=["Depreciation"])


def _run(db: Session, business_unit_id: int, request: DepreciationRunRequest, actor: Actor, dry_run: bool):
    service = DepreciationRunService(db)
    try:
        result = service.run_batch(
            business_unit_id,
            actor,
            calculation_date=request.calculation_date,
            cadence=DepreciationCadence(request.cadence.value),
            asset_filter=AssetFilter(
                include_categories=tuple(request.include_categories),
                exclude_categories=tuple(request.exclude_categories),
            ),
            dry_run=dry_run,
        )
    except DepreciationAuthorizationError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    except (DepreciationPersistenceError, LedgerInvariantError) as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
    return result.to_dict()


@router.post("/depreciation/preview", response_model=DepreciationRunResponse)
async def preview_depreciation(
    business_unit_id: int,
    request: DepreciationRunRequest,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor)
):
    """Calculate depreciation without saving anything"""
    require_business_unit_access(business_unit_id, actor)
    return _run(db, business_unit_id, request, actor, dry_run=True)


@router.post("/depreciation/run", response_model=DepreciationRunResponse)
async def run_depreciation(
    business_unit_id: int,
    request: DepreciationRunRequest,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor)
):
    """Calculate and post depreciation for every eligible asset"""
    require_business_unit_access(business_unit_id, actor)
    return _run(db, business_unit_id, request, actor, dry_run=False)


@router.get("/depreciation/overview", response_model=DepreciationOverviewResponse)
async def get_depreciation_overview(
    business_unit_id: int,
    as_of: Optional[date] = None,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor)
):
    """Depreciation totals for the business unit"""
    require_business_unit_access(business_unit_id, actor)
    return FixedAssetService(db).get_overview(business_unit_id, as_of)


@router.get("/depreciation/history", response_model=DepreciationHistoryResponse)
async def get_depreciation_history(
    business_unit_id: int,
    asset_id: Optional[int] = None,
    period: Optional[str] = Query(None, description="YYYY-MM"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=200),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor)
):
    """Posted depreciation records, newest first"""
    require_business_unit_access(business_unit_id, actor)
    try:
        return FixedAssetService(db).get_depreciation_history(
            business_unit_id, asset_id=asset_id, period=period, page=page, limit=limit
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/assets/{asset_id}/depreciation-projection", response_model=DepreciationProjectionResponse)
async def get_depreciation_projection(
    business_unit_id: int,
    asset_id: int,
    cadence: CadenceEnum = CadenceEnum.MONTHLY,
    periods: int = Query(12, ge=1, le=600),
    start_date: Optional[date] = None,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor)
):
    """Future postings if depreciation keeps running at this cadence"""
    require_business_unit_access(business_unit_id, actor)
    asset = FixedAssetService(db).get_by_id(asset_id, business_unit_id)
    if not asset:
        raise HTTPException(status_code=404, detail="Asset not found")
    if asset.purchase_price is None or asset.depreciation_start_date is None:
        raise HTTPException(status_code=400, detail="Asset has no depreciation setup")

    try:
        snapshot = AssetSnapshot.from_model(asset)
        postings = project_schedule(
            snapshot, DepreciationCadence(cadence.value), first_date=start_date, max_periods=periods
        )
    except (ValueError, DepreciationError) as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {
        "asset_id": snapshot.id,
        "item_code": snapshot.item_code,
        "method": snapshot.method.value,
        "cadence": cadence.value,
        "current_book_value": snapshot.current_book_value,
        "salvage_value": snapshot.salvage_value,
        "postings": postings,
    }


@router.get("/depreciation/audit-logs", response_model=List[AuditLogResponse])
async def get_depreciation_audit_logs(
    business_unit_id: int,
    action: Optional[str] = None,
    resource_type: Optional[str] = None,
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
    actor: Actor = Depends(RoleChecker(settings.elevated_roles_list))
):
    """Depreciation runs and schedule changes, newest first"""
    require_business_unit_access(business_unit_id, actor)
    return AuditService(db).get_logs(
        business_unit_id, action=action, resource_type=resource_type, limit=limit
    )
