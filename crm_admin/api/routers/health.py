"""Health check endpoints."""

from fastapi import APIRouter, Depends, HTTPException
from pathlib import Path
from typing import Dict
import sqlite3

from ..models import HealthStatus
from ..dependencies import get_backup_manager
from crm_admin.backup import BackupManager

router = APIRouter(prefix="/health", tags=["health"])


def check_database(database_path: Path) -> bool:
    """Open the live database read-only and read its schema table."""
    if not database_path.is_file():
        return False
    try:
        conn = sqlite3.connect(f"file:{database_path.resolve()}?mode=ro", uri=True)
        try:
            conn.execute("SELECT count(*) FROM sqlite_master").fetchone()
        finally:
            conn.close()
        return True
    except sqlite3.Error:
        return False


@router.get("", response_model=HealthStatus)
async def health_check(backup_manager: BackupManager = Depends(get_backup_manager)) -> HealthStatus:
    """Database connectivity and backup directory presence."""
    database_ok = check_database(backup_manager.database_path)
    backup_dir_ok = backup_manager.backup_dir.is_dir()

    if database_ok and backup_dir_ok:
        status = "healthy"
    elif not database_ok:
        status = "unhealthy"
    else:
        status = "degraded"

    return HealthStatus(status=status, database=database_ok, backup_dir=backup_dir_ok)


@router.get("/ready")
async def readiness_probe(backup_manager: BackupManager = Depends(get_backup_manager)) -> Dict[str, str]:
    """Kubernetes readiness probe."""
    health = await health_check(backup_manager)
    if health.status == "unhealthy":
        raise HTTPException(status_code=503, detail="Service not ready")
    return {"status": "ready"}


@router.get("/live")
async def liveness_probe() -> Dict[str, str]:
    """Kubernetes liveness probe."""
    return {"status": "alive"}
