"""
Audit Logging Service
Records depreciation runs and schedule changes
"""
from sqlalchemy.orm import Session
from sqlalchemy import desc
from typing import Optional, List, Dict
import json
import logging

from assetops.models import AuditLog
from assetops.services.depreciation_types import Actor

logger = logging.getLogger(__name__)


class AuditAction:
    """Constants for audit actions"""
    # Depreciation
    DEPRECIATION_RUN = "DEPRECIATION_RUN"
    SCHEDULE_EXECUTED = "SCHEDULE_EXECUTED"

    # Schedules
    SCHEDULE_CREATED = "SCHEDULE_CREATED"
    SCHEDULE_UPDATED = "SCHEDULE_UPDATED"
    SCHEDULE_DELETED = "SCHEDULE_DELETED"
    SCHEDULE_TOGGLED = "SCHEDULE_TOGGLED"


class AuditService:
    """Service for recording and retrieving audit logs"""

    def __init__(self, db: Session):
        self.db = db

    def log(
        self,
        action: str,
        resource_type: str,
        actor: Optional[Actor] = None,
        resource_id: Optional[int] = None,
        business_unit_id: Optional[int] = None,
        description: Optional[str] = None,
        new_values: Optional[Dict] = None,
        status: str = "success",
        error_message: Optional[str] = None
    ) -> Optional[AuditLog]:
        """
        Add an audit entry to the current session without committing.

        Args:
            action: One of the AuditAction constants
            resource_type: Affected resource, e.g. 'DepreciationSchedule'
            actor: Who performed the action
            resource_id: ID of the affected resource
            business_unit_id: Business context
            description: Human-readable description of the action
            new_values: Values after the change, stored as JSON
            status: 'success', 'failure', or 'error'
            error_message: Error message if status is not success

        Returns:
            The created AuditLog, or None when it could not be written
        """
        try:
            audit_log = AuditLog(
                action=action,
                resource_type=resource_type,
                resource_id=resource_id,
                business_unit_id=business_unit_id,
                actor_id=actor.id if actor else None,
                username=actor.username if actor else None,
                role=actor.role if actor else None,
                description=description,
                new_values=json.dumps(new_values, default=str) if new_values else None,
                status=status,
                error_message=error_message
            )

            self.db.add(audit_log)
            self.db.flush()  # Flush to get the ID without committing

            logger.info(
                f"Audit: {action} {resource_type}(id={resource_id}) "
                f"by actor={audit_log.actor_id} business_unit={business_unit_id} status={status}"
            )

            return audit_log

        except Exception as e:
            # Audit failures must not break the audited operation
            logger.error(f"Failed to create audit log: {e}")
            return None

    def get_logs(
        self,
        business_unit_id: int,
        action: Optional[str] = None,
        resource_type: Optional[str] = None,
        limit: int = 100
    ) -> List[AuditLog]:
        query = self.db.query(AuditLog).filter(AuditLog.business_unit_id == business_unit_id)

        if action:
            query = query.filter(AuditLog.action == action)
        if resource_type:
            query = query.filter(AuditLog.resource_type == resource_type)

        return query.order_by(desc(AuditLog.timestamp), desc(AuditLog.id)).limit(limit).all()
