"""
Audit Service
Records administrative actions on backups for security and compliance.
"""
from datetime import datetime, timezone
from typing import Optional, Dict, Any
import logging

from pydantic import BaseModel, Field

logger = logging.getLogger("crm-admin.audit")


class AuditEntry(BaseModel):
    action: str
    resource_type: str
    resource_id: Optional[str] = None
    actor: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict)
    ip_address: Optional[str] = None
    status: str = "success"
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class AuditService:
    def log(
        self,
        action: str,
        resource_type: str,
        resource_id: Optional[str] = None,
        actor: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        ip_address: Optional[str] = None,
        status: str = "success"
    ) -> Optional[AuditEntry]:
        """
        Record an audit log entry.

        Args:
            action: The action performed (e.g., "BACKUP", "RESTORE", "DELETE")
            resource_type: The type of resource affected (e.g., "backup")
            resource_id: Identifier of the resource affected
            actor: Email or id of the admin performing the action
            details: JSON-serializable dictionary of extra details
            ip_address: IP address of the actor
            status: Outcome of the action ("success", "failure")
        """
        try:
            entry = AuditEntry(
                action=action,
                resource_type=resource_type,
                resource_id=resource_id,
                actor=actor,
                details=details or {},
                ip_address=ip_address,
                status=status,
            )
            logger.info(
                f"{entry.action} {entry.resource_type}:{entry.resource_id} "
                f"by {entry.actor or 'unknown'} [{entry.status}]",
                extra={"audit": entry.model_dump(mode="json")},
            )
            return entry
        except Exception as e:
            # Audit failure must not fail the request it describes.
            logger.error(f"Failed to write audit log: {e}")
            return None


audit_service = AuditService()
