"""Utility functions for backup/restore operations."""

import hashlib
import json
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Tuple

from .._utils import logger
from .exceptions import BackupValidationError
from .models import BackupType

BACKUP_PREFIX = "backup"
METADATA_SUFFIX = ".json"

# Matches both backup_<type>_2024-01-15T10-30-45-123456.db and the older
# backup-2024-01-15T10-30-45-123Z.db, with either T or _ between date and time.
_TIMESTAMP_RE = re.compile(
    r"(?P<date>\d{4}-\d{2}-\d{2})[T_](?P<h>\d{2})-(?P<m>\d{2})-(?P<s>\d{2})(?:-(?P<frac>\d{1,6}))?"
)


def generate_backup_name(backup_type: BackupType, now: Optional[datetime] = None) -> str:
    """Generate snapshot filename with embedded UTC timestamp.

    Returns:
        Filename in format: backup_<type>_YYYY-MM-DDTHH-MM-SS-ffffff.db
    """
    now = now or datetime.now(timezone.utc)
    timestamp = now.astimezone(timezone.utc).strftime("%Y-%m-%dT%H-%M-%S-%f")
    return f"{BACKUP_PREFIX}_{BackupType(backup_type).value}_{timestamp}.db"


def parse_backup_name(name: str) -> Tuple[BackupType, Optional[datetime]]:
    """Infer type and creation time from a snapshot filename.

    Only used for snapshots without a metadata sidecar. Timestamps are read
    as UTC; returns ``None`` for the timestamp when the name carries none.
    """
    backup_type = BackupType.MANUAL if "manual" in name.lower() else BackupType.AUTOMATIC

    match = _TIMESTAMP_RE.search(name)
    if not match:
        return backup_type, None

    frac = (match.group("frac") or "0").ljust(6, "0")
    try:
        created_at = datetime.strptime(
            f"{match.group('date')} {match.group('h')}:{match.group('m')}:{match.group('s')}",
            "%Y-%m-%d %H:%M:%S",
        ).replace(microsecond=int(frac), tzinfo=timezone.utc)
    except ValueError:
        return backup_type, None
    return backup_type, created_at


def is_backup_file(path: Path, extensions: Iterable[str]) -> bool:
    return path.is_file() and path.suffix.lower() in tuple(extensions)


def validate_backup_name(name: Optional[str], extensions: Iterable[str]) -> str:
    """Reject names that could escape the backup directory or are not snapshots.

    Raises:
        BackupValidationError: on a missing name, traversal sequences, path
            separators or an unrecognized extension
    """
    if not name:
        raise BackupValidationError("Filename is required")
    if ".." in name or "/" in name or "\\" in name:
        raise BackupValidationError("Invalid filename")
    if Path(name).suffix.lower() not in tuple(extensions):
        raise BackupValidationError("Invalid file type")
    return name


def metadata_path(backup_path: Path) -> Path:
    """Sidecar location: ``backup.db`` -> ``backup.db.json``."""
    return backup_path.with_name(backup_path.name + METADATA_SUFFIX)


def compute_checksum(file_path: Path) -> str:
    """Compute SHA-256 checksum of file.

    Args:
        file_path: Path to file

    Returns:
        SHA-256 checksum as hex string with 'sha256:' prefix
    """
    sha256 = hashlib.sha256()

    with open(file_path, "rb") as f:
        for chunk in iter(lambda: f.read(8192), b""):
            sha256.update(chunk)

    return f"sha256:{sha256.hexdigest()}"


def verify_checksum(file_path: Path, expected_checksum: str) -> bool:
    return compute_checksum(file_path) == expected_checksum


async def save_metadata(metadata: Dict[str, Any], output_path: Path) -> None:
    """Save sidecar metadata JSON to file."""
    with open(output_path, "w") as f:
        json.dump(metadata, f, indent=2, default=str)

    logger.debug(f"Metadata saved: {output_path}")


async def load_metadata(metadata_file: Path) -> Dict[str, Any]:
    """Load sidecar metadata JSON from file."""
    with open(metadata_file, "r") as f:
        metadata = json.load(f)

    logger.debug(f"Metadata loaded: {metadata_file}")
    return metadata
