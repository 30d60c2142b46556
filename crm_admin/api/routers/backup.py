"""Backup and restore API endpoints."""

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import FileResponse
from typing import Optional

from ..audit import audit_service
from ..auth import SessionUser, require_admin
from ..dependencies import get_backup_manager, get_client_ip
from ..models import (
    BackupFileRequest,
    BackupListResponse,
    CreateBackupRequest,
    CreateBackupResponse,
    DeleteBackupResponse,
    ErrorResponse,
    RestoreBackupResponse,
)
from crm_admin.backup import BackupManager
from crm_admin.backup.exceptions import BackupError
from crm_admin.backup.models import BackupStats
from crm_admin._utils import logger

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}

router = APIRouter(prefix="/admin/backup", tags=["backup"], responses=ERROR_RESPONSES)


async def _create(
    request: Request,
    body: CreateBackupRequest,
    user: SessionUser,
    backup_manager: BackupManager,
) -> CreateBackupResponse:
    record = await backup_manager.create_backup(
        backup_type=body.type,
        description=body.description,
        created_by=user.display_name,
    )
    logger.info(f"Backup created: {record.name} ({record.size} bytes) by {user.display_name}")
    audit_service.log(
        action="BACKUP",
        resource_type="backup",
        resource_id=record.name,
        actor=user.display_name,
        details={"size": record.size, "type": record.type.value, "description": record.description},
        ip_address=get_client_ip(request),
    )
    return CreateBackupResponse(
        filename=record.name,
        size=record.size,
        type=record.type,
        description=record.description,
        created_at=record.created_at,
        created_by=user.display_name,
    )


@router.get("", response_model=BackupListResponse)
@router.get("/list", response_model=BackupListResponse)
async def list_backups(
    user: SessionUser = Depends(require_admin),
    backup_manager: BackupManager = Depends(get_backup_manager)
) -> BackupListResponse:
    """List all backups, newest first."""
    backups = await backup_manager.list_backups()
    return BackupListResponse(files=backups, count=len(backups))


@router.post("", response_model=CreateBackupResponse)
async def create_default_backup(
    request: Request,
    user: SessionUser = Depends(require_admin),
    backup_manager: BackupManager = Depends(get_backup_manager)
) -> CreateBackupResponse:
    """Create a manual backup with no description."""
    return await _create(request, CreateBackupRequest(), user, backup_manager)


@router.post("/create", response_model=CreateBackupResponse)
async def create_backup(
    request: Request,
    body: Optional[CreateBackupRequest] = None,
    user: SessionUser = Depends(require_admin),
    backup_manager: BackupManager = Depends(get_backup_manager)
) -> CreateBackupResponse:
    """Copy the live database into a new backup."""
    return await _create(request, body or CreateBackupRequest(), user, backup_manager)


@router.get("/download", responses={200: {"content": {"application/octet-stream": {}}}})
async def download_backup(
    request: Request,
    file: Optional[str] = Query(None, description="Backup filename"),
    user: SessionUser = Depends(require_admin),
    backup_manager: BackupManager = Depends(get_backup_manager)
) -> FileResponse:
    """Download a backup file."""
    payload = await backup_manager.read_backup(file)

    logger.info(f"Backup downloaded: {payload.name} by {user.display_name}")
    audit_service.log(
        action="DOWNLOAD",
        resource_type="backup",
        resource_id=payload.name,
        actor=user.display_name,
        details={"size": payload.size},
        ip_address=get_client_ip(request),
    )

    return FileResponse(
        path=payload.path,
        media_type="application/octet-stream",
        filename=payload.name,
        headers={
            "Content-Disposition": f'attachment; filename="{payload.name}"',
            "Content-Length": str(payload.size),
            "Cache-Control": "no-cache",
        },
    )


@router.delete("/delete", response_model=DeleteBackupResponse)
async def delete_backup(
    request: Request,
    body: Optional[BackupFileRequest] = None,
    user: SessionUser = Depends(require_admin),
    backup_manager: BackupManager = Depends(get_backup_manager)
) -> DeleteBackupResponse:
    """Delete a backup file."""
    filename = await backup_manager.delete_backup(body.filename if body else None)

    logger.info(f"Backup deleted: {filename} by {user.display_name}")
    audit_service.log(
        action="DELETE",
        resource_type="backup",
        resource_id=filename,
        actor=user.display_name,
        ip_address=get_client_ip(request),
    )
    return DeleteBackupResponse(filename=filename, deleted_by=user.display_name)


@router.post("/restore", response_model=RestoreBackupResponse)
async def restore_backup(
    request: Request,
    body: Optional[BackupFileRequest] = None,
    user: SessionUser = Depends(require_admin),
    backup_manager: BackupManager = Depends(get_backup_manager)
) -> RestoreBackupResponse:
    """Replace the live database with a backup.

    The current database is copied aside first and put back if the restore
    cannot be verified.
    """
    filename = body.filename if body else None
    try:
        result = await backup_manager.restore_backup(filename)
    except BackupError as e:
        if e.status_code >= 500:
            audit_service.log(
                action="RESTORE",
                resource_type="backup",
                resource_id=filename,
                actor=user.display_name,
                details={"error": e.message, "rolled_back": getattr(e, "rolled_back", None)},
                ip_address=get_client_ip(request),
                status="failure",
            )
        raise

    logger.info(f"Database restored from backup: {result.name} by {user.display_name}")
    audit_service.log(
        action="RESTORE",
        resource_type="backup",
        resource_id=result.name,
        actor=user.display_name,
        details={"safety_copy": result.safety_copy, "checksum_verified": result.checksum_verified},
        ip_address=get_client_ip(request),
    )

    note = None
    if result.safety_copy and result.safety_copy_retained:
        note = f"Previous database backed up as {result.safety_copy}"

    return RestoreBackupResponse(
        filename=result.name,
        restored_by=user.display_name,
        restored_at=result.restored_at,
        safety_copy=result.safety_copy,
        safety_copy_retained=result.safety_copy_retained,
        checksum_verified=result.checksum_verified,
        note=note,
    )


@router.get("/stats", response_model=BackupStats)
async def backup_stats(
    user: SessionUser = Depends(require_admin),
    backup_manager: BackupManager = Depends(get_backup_manager)
) -> BackupStats:
    """Backup count, total size, latest backup and live database size."""
    return await backup_manager.get_stats()
