from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="STAGEGATE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # App
    app_name: str = "Stage Gate Service"
    debug: bool = False

    # API
    frontend_url: str = "http://localhost:5173"
    cors_origins: list[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
    ]

    # Storage (empty = in-process stores, useful for dev and tests)
    database_url: str = ""
    redis_url: str = ""

    # Commit serialization: "local" (asyncio, single process) or "redis"
    lock_backend: Literal["local", "redis"] = "local"
    lock_ttl_seconds: int = 30

    # Condition evaluation
    condition_timeout_seconds: float = 5.0
    max_parallel_evaluations: int = 8

    # How long a gate decision stays committable
    decision_freshness_seconds: int = 300


@lru_cache
def get_settings() -> Settings:
    return Settings()
