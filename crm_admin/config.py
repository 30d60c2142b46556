"""Configuration management for crm-admin."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple


DEFAULT_EXTENSIONS: Tuple[str, ...] = (".db", ".sqlite", ".sql")


def default_safety_copy_path(database_path: Path) -> Path:
    """Fixed pre-restore location next to the live database.

    ``prisma/dev.db`` -> ``prisma/dev_backup_before_restore.db``
    """
    return database_path.with_name(
        f"{database_path.stem}_backup_before_restore{database_path.suffix}"
    )


@dataclass(frozen=True)
class BackupConfig:
    """Backup lifecycle configuration."""
    database_path: Path = Path("./prisma/dev.db")
    backup_dir: Path = Path("./backups")
    safety_copy_path: Optional[Path] = None  # derived from database_path when None
    keep_safety_copy: bool = True
    extensions: Tuple[str, ...] = field(default=DEFAULT_EXTENSIONS)

    @classmethod
    def from_env(cls) -> 'BackupConfig':
        """Create config from environment variables."""
        safety_copy = os.getenv("SAFETY_COPY_PATH")
        return cls(
            database_path=Path(os.getenv("DATABASE_PATH", "./prisma/dev.db")),
            backup_dir=Path(os.getenv("BACKUP_DIR", "./backups")),
            safety_copy_path=Path(safety_copy) if safety_copy else None,
            keep_safety_copy=os.getenv("KEEP_SAFETY_COPY", "true").lower() == "true",
        )

    def __post_init__(self):
        """Normalize paths and validate configuration."""
        # frozen dataclass: normalize through object.__setattr__
        object.__setattr__(self, "database_path", Path(self.database_path))
        object.__setattr__(self, "backup_dir", Path(self.backup_dir))
        if self.safety_copy_path is None:
            object.__setattr__(self, "safety_copy_path", default_safety_copy_path(self.database_path))
        else:
            object.__setattr__(self, "safety_copy_path", Path(self.safety_copy_path))
        object.__setattr__(self, "extensions", tuple(ext.lower() for ext in self.extensions))

        if not self.database_path.name:
            raise ValueError("database_path must point to a file")
        if not self.extensions:
            raise ValueError("extensions must not be empty")
        for ext in self.extensions:
            if not ext.startswith(".") or len(ext) < 2:
                raise ValueError(f"extension must start with '.', got {ext!r}")
        if self.safety_copy_path.resolve() == self.database_path.resolve():
            raise ValueError("safety_copy_path must differ from database_path")
