# Services Package
from assetops.services.audit_service import AuditService, AuditAction
from assetops.services.fixed_assets_service import FixedAssetService
from assetops.services.depreciation_service import DepreciationRunService
from assetops.services.schedule_service import ScheduleService

__all__ = [
    'AuditService',
    'AuditAction',
    'FixedAssetService',
    'DepreciationRunService',
    'ScheduleService',
]
