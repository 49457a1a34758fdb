from __future__ import annotations
"""server/iot_alerting/core/config.py
~~~~~~~~~~~~~~~~~~~~~~~~
Paramètres (pydantic-settings).
"""

from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    DATABASE_URL: str = "postgresql+psycopg://postgres:postgres@db:5432/iot_alerting"
    DB_CONNECT_TIMEOUT: int = 5
    REDIS_URL: str = "redis://redis:6379/0"
    LOG_LEVEL: str = "INFO"
    CORS_ALLOW_ORIGINS: Optional[str] = None
    ALERTS_PAGE_LIMIT: int = 100

    # Sérialisation par sonde : "memory" (un process) ou "redis" (multi-process)
    SENSOR_LOCK_BACKEND: str = "memory"
    SENSOR_LOCK_TIMEOUT_SEC: int = 30
    SENSOR_LOCK_WAIT_SEC: float = 10.0

    model_config = SettingsConfigDict(
        env_file_encoding="utf-8",
        case_sensitive=True,
    )


settings = Settings()
