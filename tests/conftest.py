"""Global pytest configuration and fixtures."""

import pytest
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from crm_admin.backup import BackupManager
from crm_admin.config import BackupConfig


@pytest.fixture
def backup_config(tmp_path):
    """Live database containing b"A" and a backup directory that does not exist yet."""
    database_path = tmp_path / "prisma" / "dev.db"
    database_path.parent.mkdir(parents=True)
    database_path.write_bytes(b"A")
    return BackupConfig(database_path=database_path, backup_dir=tmp_path / "backups")


@pytest.fixture
def backup_manager(backup_config):
    return BackupManager(backup_config)
