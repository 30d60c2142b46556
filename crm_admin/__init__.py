from .backup import BackupManager
from .config import BackupConfig


__version__ = "0.3.1"
__author__ = "crm-admin"
__url__ = "https://github.com/crm-admin/crm-admin"

__all__ = ["BackupManager", "BackupConfig", "__version__"]
