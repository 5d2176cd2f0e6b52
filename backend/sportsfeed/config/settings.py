from __future__ import annotations

from typing import Dict, Literal

from pydantic import BaseModel, Field, AliasChoices
from pydantic_settings import BaseSettings, SettingsConfigDict


class HttpSettings(BaseModel):
    timeout_seconds: float = 10.0
    user_agent: str = "sportsfeed/0.1"
    extra_headers: Dict[str, str] = Field(default_factory=dict)


class StorageSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="SPORTSFEED_STORAGE_",
        env_file=("../.env", ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )
    backend: Literal["memory", "redis"] = "memory"
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        validation_alias=AliasChoices("REDIS_URL", "SPORTSFEED_STORAGE_REDIS_URL"),
    )
    snapshot_ttl_seconds: int | None = None
    key_prefix: str = "sportsfeed"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="SPORTSFEED_",
        env_nested_delimiter="__",
        env_file=("../.env", ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    base_url: str = Field(
        default="https://pleasing-determination-production.up.railway.app",
        validation_alias=AliasChoices("API_BASE_URL", "SPORTSFEED_BASE_URL"),
    )
    default_interval_seconds: float = 120.0
    synthetic_count: int = 10
    sports: list[str] = Field(default_factory=lambda: ["nba", "nfl", "mlb"])
    autostart_feeds: list[str] = Field(default_factory=list)

    http: HttpSettings = Field(default_factory=HttpSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)


settings = Settings()
