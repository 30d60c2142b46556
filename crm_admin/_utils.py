import logging
from datetime import datetime, timezone

logger = logging.getLogger("crm-admin")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_file_size(size_bytes: int) -> str:
    """Human readable byte size, used in log lines."""
    if size_bytes < 1024:
        return f"{size_bytes} B"
    if size_bytes < 1024 * 1024:
        return f"{round(size_bytes / 1024, 1)} KB"
    return f"{round(size_bytes / (1024 * 1024), 1)} MB"
