"""Errors raised by backup lifecycle operations."""

from typing import Optional


class BackupError(Exception):
    """Base class for backup errors.

    ``status_code`` classifies the failure for HTTP callers, ``code`` is a
    stable machine-readable identifier.
    """

    status_code = 500
    code = "backup_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class BackupValidationError(BackupError):
    status_code = 400
    code = "validation_error"


class BackupNotFoundError(BackupError):
    status_code = 404
    code = "not_found"


class BackupIOError(BackupError):
    code = "io_error"


class BackupWriteError(BackupIOError):
    code = "write_failure"


class BackupDeleteError(BackupIOError):
    code = "delete_failure"


class SafetyCopyError(BackupIOError):
    """The pre-restore snapshot could not be made; the live database was not touched."""

    code = "safety_copy_failure"


class RestoreError(BackupIOError):
    """Overwrite or verification failed. ``rolled_back`` reports whether the
    safety copy was put back in place."""

    code = "restore_failure"

    def __init__(self, message: str, state: str, rolled_back: bool, backup_name: Optional[str] = None):
        super().__init__(message)
        self.state = state
        self.rolled_back = rolled_back
        self.backup_name = backup_name
