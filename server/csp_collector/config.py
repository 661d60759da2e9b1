from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings

LOG_LEVELS = {
    "trace": logging.DEBUG,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}


class Settings(BaseSettings):
    SECRET_KEY: str
    DATA_PATH: str = "/tmp/csp_collector/"
    LOG_LEVEL: str = "info"
    HOST: str = "127.0.0.1"
    PORT: int = 8080
    FLUSH_INTERVAL_SECONDS: float = Field(default=1.0, gt=0)
    CREDENTIAL_POOL_SIZE: int = Field(default=2, ge=1)
    ANALYTICS_POOL_SIZE: int = Field(default=4, ge=1)
    VIOLATION_COUNT_DAYS: int = Field(default=14, ge=1, le=14)
    RECORD_SOURCE_IP: bool = False
    CORS_ORIGINS: list[str] = ["*"]
    EXPOSE_DOCS: bool = False
    HSTS_POLICY: str = "max-age=31536000; includeSubDomains"
    CONTENT_SECURITY_POLICY: str = "default-src 'none'"
    FRAME_OPTIONS: str = "DENY"

    class Config:
        env_file = ".env"
        env_prefix = "CSP_"

    @property
    def data_dir(self) -> Path:
        return Path(self.DATA_PATH)

    @property
    def credential_db_path(self) -> Path:
        return self.data_dir / "csp_collector.db"

    @property
    def analytics_db_path(self) -> Path:
        return self.data_dir / "csp_collector.duckdb"

    @property
    def credential_db_url(self) -> str:
        return f"sqlite+aiosqlite:///{self.credential_db_path}"


@lru_cache
def get_settings() -> Settings:
    return Settings()


def configure_logging(level_name: str) -> None:
    """Configure root logging; unknown level names fall back to info."""
    level = LOG_LEVELS.get(level_name.strip().lower(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    logging.getLogger().setLevel(level)
