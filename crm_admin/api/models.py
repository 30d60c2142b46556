"""Pydantic models for API requests and responses."""

from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime, timezone

from crm_admin.backup.models import BackupRecord, BackupType


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CreateBackupRequest(BaseModel):
    type: BackupType = BackupType.MANUAL
    description: Optional[str] = Field(None, max_length=500)


class BackupFileRequest(BaseModel):
    filename: Optional[str] = None


class CreateBackupResponse(BaseModel):
    success: bool = True
    message: str = "Backup created successfully"
    filename: str
    size: int
    type: BackupType
    description: Optional[str] = None
    created_at: datetime
    created_by: Optional[str] = None


class BackupListResponse(BaseModel):
    files: List[BackupRecord]
    count: int


class DeleteBackupResponse(BaseModel):
    success: bool = True
    message: str = "Backup deleted successfully"
    filename: str
    deleted_by: Optional[str] = None
    deleted_at: datetime = Field(default_factory=_utc_now)


class RestoreBackupResponse(BaseModel):
    success: bool = True
    message: str = "Database restored successfully"
    filename: str
    restored_by: Optional[str] = None
    restored_at: datetime
    safety_copy: Optional[str] = None
    safety_copy_retained: bool = False
    checksum_verified: Optional[bool] = None
    note: Optional[str] = None


class HealthStatus(BaseModel):
    status: str  # "healthy", "degraded", "unhealthy"
    database: bool
    backup_dir: bool
    timestamp: datetime = Field(default_factory=_utc_now)


class ErrorResponse(BaseModel):
    detail: str
    error: str
    timestamp: datetime = Field(default_factory=_utc_now)
    rolled_back: Optional[bool] = None
    state: Optional[str] = None
