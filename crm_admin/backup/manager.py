"""Backup and restore orchestration for the primary database file."""

import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Union

from .._utils import logger, format_file_size, utc_now
from ..config import BackupConfig
from .exceptions import (
    BackupIOError,
    BackupNotFoundError,
    BackupValidationError,
    BackupWriteError,
    BackupDeleteError,
    SafetyCopyError,
    RestoreError,
)
from .models import (
    BackupMetadata,
    BackupPayload,
    BackupRecord,
    BackupStats,
    BackupType,
    RestoreResult,
    RestoreState,
)
from .utils import (
    compute_checksum,
    generate_backup_name,
    is_backup_file,
    load_metadata,
    metadata_path,
    parse_backup_name,
    save_metadata,
    validate_backup_name,
    verify_checksum,
)


class BackupManager:
    """Manage a directory of database snapshots and restores of the live database.

    There is no locking: the filesystem is the only shared state and
    concurrent restores are not serialized.
    """

    def __init__(self, config: BackupConfig):
        """Initialize backup manager.

        Args:
            config: Live database path, backup directory and restore options.
                The backup directory is created lazily by the first operation
                that needs it.
        """
        self.config = config
        self.database_path = config.database_path
        self.backup_dir = config.backup_dir
        self.safety_copy_path = config.safety_copy_path

    async def create_backup(
        self,
        backup_type: Union[BackupType, str] = BackupType.MANUAL,
        description: Optional[str] = None,
        created_by: Optional[str] = None,
    ) -> BackupRecord:
        """Copy the live database into the backup directory.

        Args:
            backup_type: manual or automatic
            description: Optional free-text note stored in the sidecar
            created_by: Operator email, stored in the sidecar

        Returns:
            BackupRecord for the new snapshot

        Raises:
            BackupNotFoundError: live database is missing
            BackupWriteError: the snapshot could not be written or verified
        """
        try:
            backup_type = BackupType(backup_type)
        except ValueError:
            raise BackupValidationError(f"Invalid backup type: {backup_type}") from None

        if not self.database_path.exists():
            raise BackupNotFoundError("Database file not found")

        self._ensure_backup_dir()

        created_at = utc_now()
        backup_path = self._unique_path(generate_backup_name(backup_type, created_at))
        logger.info(f"Starting backup: {backup_path.name}")

        try:
            shutil.copy2(self.database_path, backup_path)
        except OSError as e:
            logger.error(f"Failed to copy database to {backup_path}: {e}")
            raise BackupWriteError("Failed to create backup file") from e

        if not backup_path.exists():
            raise BackupWriteError("Failed to create backup file")

        size = backup_path.stat().st_size
        metadata = BackupMetadata(
            name=backup_path.name,
            type=backup_type,
            description=description,
            created_at=created_at,
            size_bytes=size,
            checksum=compute_checksum(backup_path),
            created_by=created_by,
        )
        try:
            await save_metadata(metadata.model_dump(mode="json"), metadata_path(backup_path))
        except OSError as e:
            # Snapshot is usable without its sidecar; listing falls back to the filename.
            logger.warning(f"Failed to write metadata for {backup_path.name}: {e}")

        logger.info(f"Backup complete: {backup_path.name} ({format_file_size(size)})")

        return BackupRecord(
            name=backup_path.name,
            size=size,
            created_at=created_at,
            type=backup_type,
            description=description,
        )

    async def list_backups(self) -> List[BackupRecord]:
        """List all snapshots, newest first.

        Returns:
            List of BackupRecord; empty when the directory has just been created
        """
        self._ensure_backup_dir()

        backups = []
        for path in self.backup_dir.iterdir():
            if not is_backup_file(path, self.config.extensions):
                continue
            backups.append(await self._build_record(path))

        backups.sort(key=lambda b: b.created_at, reverse=True)
        return backups

    async def read_backup(self, name: Optional[str]) -> BackupPayload:
        """Locate a snapshot for download.

        The file itself is streamed by the caller; only its path and size are
        returned here.

        Raises:
            BackupValidationError: invalid name
            BackupNotFoundError: no such snapshot
        """
        backup_path = self._resolve(name)
        if not backup_path.is_file():
            raise BackupNotFoundError("Backup file not found")

        try:
            size = backup_path.stat().st_size
        except OSError as e:
            logger.error(f"Failed to read backup {name}: {e}")
            raise BackupIOError("Failed to read backup file") from e

        return BackupPayload(name=backup_path.name, path=backup_path, size=size)

    async def delete_backup(self, name: Optional[str]) -> str:
        """Delete a snapshot and its metadata sidecar.

        Returns:
            Name of the deleted snapshot

        Raises:
            BackupValidationError: invalid name
            BackupNotFoundError: no such snapshot
            BackupDeleteError: the file is still present after removal
        """
        backup_path = self._resolve(name)
        if not backup_path.is_file():
            raise BackupNotFoundError("Backup file not found")

        try:
            backup_path.unlink()
        except OSError as e:
            logger.error(f"Failed to delete backup {name}: {e}")
            raise BackupDeleteError("Failed to delete backup file") from e

        if backup_path.exists():
            raise BackupDeleteError("Failed to delete backup file")

        sidecar = metadata_path(backup_path)
        try:
            sidecar.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Failed to delete metadata {sidecar.name}: {e}")

        logger.info(f"Deleted backup: {backup_path.name}")
        return backup_path.name

    async def restore_backup(self, name: Optional[str]) -> RestoreResult:
        """Replace the live database with a snapshot.

        The live database is first copied to the safety copy path. If the
        overwrite fails verification the safety copy is copied back. This is
        a best-effort two-phase overwrite, not a transaction.

        Raises:
            BackupValidationError: invalid name
            BackupNotFoundError: no such snapshot (live database untouched)
            SafetyCopyError: pre-restore copy failed (live database untouched)
            RestoreError: overwrite failed; ``rolled_back`` tells whether the
                previous database is back in place
        """
        backup_path = self._resolve(name)
        if not backup_path.is_file():
            raise BackupNotFoundError("Backup file not found")

        checksum_verified = await self._verify_checksum(backup_path)
        state = RestoreState.IDLE
        logger.info(f"Starting restore: {backup_path.name}")

        safety_copy: Optional[Path] = None
        if self.database_path.exists():
            state = self._transition(backup_path.name, state, RestoreState.SAFETY_COPYING)
            live_size = self.database_path.stat().st_size
            try:
                self.safety_copy_path.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(self.database_path, self.safety_copy_path)
            except OSError as e:
                logger.error(f"Failed to backup current database before restore: {e}")
                raise SafetyCopyError("Failed to backup current database before restore") from e

            if not self._is_intact(self.safety_copy_path, live_size):
                logger.error(f"Safety copy missing or incomplete: {self.safety_copy_path}")
                raise SafetyCopyError("Failed to backup current database before restore")
            safety_copy = self.safety_copy_path

        state = self._transition(backup_path.name, state, RestoreState.OVERWRITING)
        expected_size = backup_path.stat().st_size
        overwrite_error: Optional[OSError] = None
        try:
            self.database_path.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(backup_path, self.database_path)
        except OSError as e:
            logger.error(f"Error during restore of {backup_path.name}: {e}")
            overwrite_error = e

        state = self._transition(backup_path.name, state, RestoreState.VERIFYING)
        if overwrite_error is not None or not self._is_intact(self.database_path, expected_size):
            self._rollback(backup_path.name, state, safety_copy, overwrite_error)

        state = self._transition(backup_path.name, state, RestoreState.COMMITTED)
        retained = safety_copy is not None
        if safety_copy is not None and not self.config.keep_safety_copy:
            try:
                safety_copy.unlink()
                retained = False
            except OSError as e:
                logger.warning(f"Failed to remove safety copy {safety_copy}: {e}")

        logger.info(f"Restore complete: {backup_path.name}")

        return RestoreResult(
            name=backup_path.name,
            state=state,
            restored_at=utc_now(),
            safety_copy=safety_copy.name if safety_copy is not None else None,
            safety_copy_retained=retained,
            checksum_verified=checksum_verified,
        )

    async def get_stats(self) -> BackupStats:
        """Aggregate backup count, total size, latest backup and live database size."""
        backups = await self.list_backups()

        database_size = 0
        if self.database_path.exists():
            database_size = self.database_path.stat().st_size

        return BackupStats(
            total_backups=len(backups),
            total_size=sum(b.size for b in backups),
            last_backup=max((b.created_at for b in backups), default=None),
            database_size=database_size,
        )

    # Private helper methods

    def _ensure_backup_dir(self) -> None:
        self.backup_dir.mkdir(parents=True, exist_ok=True)

    def _resolve(self, name: Optional[str]) -> Path:
        """Validate before any filesystem access."""
        return self.backup_dir / validate_backup_name(name, self.config.extensions)

    def _unique_path(self, name: str) -> Path:
        path = self.backup_dir / name
        counter = 1
        while path.exists():
            path = self.backup_dir / f"{Path(name).stem}_{counter}{Path(name).suffix}"
            counter += 1
        return path

    async def _build_record(self, path: Path) -> BackupRecord:
        stat = path.stat()
        sidecar = metadata_path(path)

        if sidecar.exists():
            try:
                metadata = BackupMetadata(**await load_metadata(sidecar))
                created_at = metadata.created_at
                if created_at.tzinfo is None:
                    # Hand-written sidecars may omit the offset; snapshots are stamped in UTC.
                    created_at = created_at.replace(tzinfo=timezone.utc)
                return BackupRecord(
                    name=path.name,
                    size=stat.st_size,
                    created_at=created_at,
                    type=metadata.type,
                    description=metadata.description,
                )
            except (OSError, ValueError, TypeError) as e:
                logger.warning(f"Failed to read metadata for {path.name}: {e}")

        backup_type, created_at = parse_backup_name(path.name)
        if created_at is None:
            created_at = datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc)

        return BackupRecord(
            name=path.name,
            size=stat.st_size,
            created_at=created_at,
            type=backup_type,
        )

    async def _verify_checksum(self, backup_path: Path) -> Optional[bool]:
        """Compare a snapshot against its recorded checksum, if any."""
        sidecar = metadata_path(backup_path)
        if not sidecar.exists():
            return None

        try:
            stored_checksum = (await load_metadata(sidecar)).get("checksum")
        except (OSError, ValueError, AttributeError) as e:
            logger.warning(f"Failed to read metadata for {backup_path.name}: {e}")
            return None

        if not stored_checksum:
            return None

        if verify_checksum(backup_path, stored_checksum):
            logger.info(f"Backup checksum verified: {stored_checksum}")
            return True

        logger.warning(
            f"Checksum mismatch! Expected: {stored_checksum}, Got: {compute_checksum(backup_path)}"
        )
        return False

    def _rollback(
        self,
        name: str,
        state: RestoreState,
        safety_copy: Optional[Path],
        cause: Optional[OSError],
    ) -> None:
        """Put the safety copy back over the live path, then raise RestoreError."""
        rolled_back = False
        if safety_copy is not None:
            try:
                shutil.copy2(safety_copy, self.database_path)
                rolled_back = self._is_intact(self.database_path, safety_copy.stat().st_size)
            except OSError as e:
                logger.error(f"Failed to restore original database: {e}")
        else:
            # No database existed before the restore; leave the live path absent again.
            try:
                self.database_path.unlink(missing_ok=True)
            except OSError as e:
                logger.error(f"Failed to remove partial database {self.database_path}: {e}")

        if rolled_back:
            self._transition(name, state, RestoreState.ROLLED_BACK)
            message = "Failed to restore backup - original database restored"
            final_state = RestoreState.ROLLED_BACK
        else:
            self._transition(name, state, RestoreState.UNRECOVERABLE)
            message = "Failed to restore backup - original database could not be restored"
            final_state = RestoreState.UNRECOVERABLE

        raise RestoreError(
            message,
            state=final_state.value,
            rolled_back=rolled_back,
            backup_name=name,
        ) from cause

    @staticmethod
    def _is_intact(path: Path, expected_size: int) -> bool:
        return path.exists() and path.stat().st_size == expected_size

    @staticmethod
    def _transition(name: str, current: RestoreState, new: RestoreState) -> RestoreState:
        logger.debug(f"Restore {name}: {current.value} -> {new.value}")
        return new
