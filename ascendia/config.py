"""
Ascendia API - Configuration
Settings are read from the environment (and .env) once at startup.
"""

import logging
import sys
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ==========================================
    # SERVICE
    # ==========================================
    env: str = "dev"  # dev | prod
    cors_origins: list[str] = ["*"]
    log_level: str = "INFO"

    # ==========================================
    # STORAGE
    # ==========================================
    db_url: str = "sqlite+aiosqlite:///./ascendia.db"
    supabase_url: Optional[str] = None
    supabase_service_role_key: Optional[str] = None

    # ==========================================
    # AUTH
    # ==========================================
    # Supabase signs access tokens with the project's JWT secret (HS256).
    supabase_jwt_secret: str = "dev-insecure-jwt-secret"
    jwt_audience: str = "authenticated"
    cron_secret: Optional[str] = None  # internal routes answer 404 when unset

    # ==========================================
    # PROGRESSION
    # ==========================================
    level_up_every_days: int = Field(default=7, ge=1)
    sweep_page_size: int = Field(default=500, ge=1)
    default_timezone: str = "UTC"

    @property
    def uses_supabase(self) -> bool:
        return bool(self.supabase_url and self.supabase_service_role_key)


settings = Settings()


def configure_logging(level: Optional[str] = None) -> logging.Logger:
    """Attach a stdout handler to the shared "ascendia" logger."""
    logger = logging.getLogger("ascendia")
    logger.setLevel((level or settings.log_level).upper())
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
        )
        logger.addHandler(handler)
    return logger
