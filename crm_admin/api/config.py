"""Configuration for FastAPI application."""

from pydantic_settings import BaseSettings
from pydantic import field_validator
from typing import List, Optional, Union
from pathlib import Path
import json

from crm_admin.config import BackupConfig


class Settings(BaseSettings):
    # API Configuration
    api_prefix: str = "/api"
    api_title: str = "crm-admin API"
    api_version: str = "1.0.0"
    allowed_origins: Union[str, List[str]] = ["*"]

    @field_validator('allowed_origins', mode='before')
    @classmethod
    def parse_allowed_origins(cls, v):
        """Parse allowed_origins from string or list."""
        if isinstance(v, str):
            # If it's a JSON array string, parse it
            if v.startswith('['):
                try:
                    return json.loads(v)
                except json.JSONDecodeError:
                    return [v]
            # Single origin string
            return [v]
        return v

    # Database and backups
    database_path: str = "./prisma/dev.db"
    backup_dir: str = "./backups"
    safety_copy_path: Optional[str] = None
    keep_safety_copy: bool = True

    # Session tokens issued by the auth provider
    secret_key: str = "change-me"
    session_algorithm: str = "HS256"
    session_cookie_name: str = "session_token"
    admin_role: str = "ADMIN"

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"  # Ignore extra environment variables

    def backup_config(self) -> BackupConfig:
        return BackupConfig(
            database_path=Path(self.database_path),
            backup_dir=Path(self.backup_dir),
            safety_copy_path=Path(self.safety_copy_path) if self.safety_copy_path else None,
            keep_safety_copy=self.keep_safety_copy,
        )


settings = Settings()
