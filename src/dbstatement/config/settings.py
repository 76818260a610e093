"""Connection settings loaded from environment variables and config files."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, PositiveInt, model_validator
from pydantic.networks import PostgresDsn
from pydantic_settings import BaseSettings, SettingsConfigDict

from dbstatement.config import CONFIG_ROOT


class PoolConfig(BaseModel):
    """Sizing for the default psycopg2 connection pool."""

    min_connections: PositiveInt = 1
    max_connections: PositiveInt = 5

    model_config = ConfigDict(extra="forbid")

    @model_validator(mode="after")
    def _check_bounds(self) -> "PoolConfig":
        if self.min_connections > self.max_connections:
            raise ValueError("min_connections cannot exceed max_connections")
        return self


def _load_pool_config(pool_config_path: Path) -> PoolConfig:
    if not pool_config_path.exists():
        return PoolConfig()

    raw_data = yaml.safe_load(pool_config_path.read_text(encoding="utf-8")) or {}
    return PoolConfig(**raw_data.get("pool", {}))


class Settings(BaseSettings):
    """Primary settings for borrowing database connections."""

    database_url: PostgresDsn = Field(alias="DATABASE_URL")
    pool_min_connections: Optional[PositiveInt] = Field(default=None, alias="DB_POOL_MIN")
    pool_max_connections: Optional[PositiveInt] = Field(default=None, alias="DB_POOL_MAX")

    pool: PoolConfig = Field(default_factory=lambda: _load_pool_config(CONFIG_ROOT / "pool.yaml"))

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    def pool_config(self) -> PoolConfig:
        """Return pool sizing with environment overrides applied over the YAML values."""

        return PoolConfig(
            min_connections=self.pool_min_connections or self.pool.min_connections,
            max_connections=self.pool_max_connections or self.pool.max_connections,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached instance of the settings."""

    return Settings()


__all__ = ["PoolConfig", "Settings", "get_settings"]
