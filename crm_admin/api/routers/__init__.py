"""API routers."""

from . import backup, health

__all__ = ["backup", "health"]
