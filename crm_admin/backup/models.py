"""Data models for backup/restore operations."""

from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional
from pydantic import BaseModel, Field


class BackupType(str, Enum):
    MANUAL = "manual"
    AUTOMATIC = "automatic"


class RestoreState(str, Enum):
    """Progress of a single restore operation."""
    IDLE = "idle"
    SAFETY_COPYING = "safety_copying"
    OVERWRITING = "overwriting"
    VERIFYING = "verifying"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"
    UNRECOVERABLE = "unrecoverable"


class BackupMetadata(BaseModel):
    """Sidecar metadata stored next to each snapshot as ``<name>.json``."""

    name: str = Field(..., description="Snapshot filename")
    type: BackupType = Field(..., description="manual or automatic")
    description: Optional[str] = Field(None, description="Free-text note from the operator")
    created_at: datetime = Field(..., description="Backup creation timestamp (UTC)")
    size_bytes: int = Field(..., description="Snapshot size in bytes")
    checksum: str = Field(..., description="SHA-256 checksum of the snapshot")
    created_by: Optional[str] = Field(None, description="Operator that triggered the backup")


class BackupRecord(BaseModel):
    """Backup entry as returned to callers."""

    name: str
    size: int
    created_at: datetime
    type: BackupType
    description: Optional[str] = None


class BackupPayload(BaseModel):
    """Snapshot location and size for streaming to a client."""

    name: str
    path: Path
    size: int


class BackupStats(BaseModel):
    total_backups: int
    total_size: int
    last_backup: Optional[datetime] = None
    database_size: int


class RestoreResult(BaseModel):
    name: str
    state: RestoreState
    restored_at: datetime
    safety_copy: Optional[str] = None
    safety_copy_retained: bool = False
    checksum_verified: Optional[bool] = None
