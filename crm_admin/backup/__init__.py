"""Backup and restore of the primary database file."""

from .manager import BackupManager
from .models import BackupRecord, BackupType, RestoreResult, RestoreState

__all__ = ["BackupManager", "BackupRecord", "BackupType", "RestoreResult", "RestoreState"]
