"""
Depreciation scheduler health check
"""
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from datetime import datetime, timedelta
import logging

from assetops.core.database import get_db
from assetops.models import Asset, DepreciationExecution, DepreciationSchedule

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["Health"])


@router.get("/depreciation")
async def depreciation_health(db: Session = Depends(get_db)):
    try:
        db.execute(text("SELECT 1"))

        active_schedules = db.query(DepreciationSchedule).filter(
            DepreciationSchedule.is_active == True
        ).count()

        recent_executions = db.query(DepreciationExecution).filter(
            DepreciationExecution.created_at >= datetime.utcnow() - timedelta(days=7)
        ).count()

        assets_ready = db.query(Asset).filter(
            Asset.is_active == True,
            Asset.depreciation_method.isnot(None),
            Asset.is_fully_depreciated == False
        ).count()
    except SQLAlchemyError as e:
        logger.error(f"Depreciation health check failed: {e}")
        return JSONResponse(
            status_code=500,
            content={
                "status": "unhealthy",
                "timestamp": datetime.utcnow().isoformat(),
                "error": str(e),
            }
        )

    return {
        "status": "healthy",
        "timestamp": datetime.utcnow().isoformat(),
        "database": "connected",
        "scheduler": {
            "active_schedules": active_schedules,
            "recent_executions": recent_executions,
            "assets_ready": assets_ready,
        },
        "endpoints": {
            "trigger": "/api/v1/depreciation/schedules/trigger",
            "health": "/api/v1/health/depreciation",
        },
    }
