from __future__ import annotations

import logging
import os
from functools import lru_cache

from pydantic import BaseModel, ConfigDict, Field, field_validator

ENV_BOOL_TRUE = {"1", "true", "yes", "on"}


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.lower() in ENV_BOOL_TRUE


def _env_optional(name: str) -> str | None:
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    return value


class Settings(BaseModel):
    rate_snapshot_path: str | None = Field(default_factory=lambda: _env_optional("RATE_SNAPSHOT_PATH"))
    max_workers: int = Field(default_factory=lambda: int(os.getenv("ASSESSMENT_MAX_WORKERS", "4")))
    feature_minimum_tax_floor: bool = Field(
        default_factory=lambda: _env_bool("FEATURE_MINIMUM_TAX_FLOOR", True)
    )
    log_dir: str | None = Field(default_factory=lambda: _env_optional("ENGINE_LOG_DIR"))
    log_level: str = Field(default_factory=lambda: os.getenv("ENGINE_LOG_LEVEL", "INFO"))

    model_config = ConfigDict(frozen=True)

    @field_validator("max_workers")
    @classmethod
    def _validate_workers(cls, value: int) -> int:
        return max(1, value)

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        upper = (value or "INFO").upper()
        if upper not in logging.getLevelNamesMapping():
            raise ValueError(f"ENGINE_LOG_LEVEL must be a logging level name, got {upper}")
        return upper


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
