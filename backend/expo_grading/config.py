import os
from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: Optional[str] = Field(None, alias="EXPO_DATABASE_URL")
    database_pool_size: int = Field(10, alias="EXPO_DATABASE_POOL_SIZE")
    database_max_overflow: int = Field(10, alias="EXPO_DATABASE_MAX_OVERFLOW")
    database_echo: bool = Field(False, alias="EXPO_DATABASE_ECHO")
    persistence_mode: Literal["database", "memory"] = Field("database", alias="EXPO_PERSISTENCE_MODE")
    award_slots: int = Field(3, ge=1, alias="EXPO_AWARD_SLOTS")
    cors_origins: str = Field("*", alias="EXPO_CORS_ORIGINS")

    class Config:
        env_file = os.getenv("ENV_FILE", ".env")
        env_file_encoding = "utf-8"
        case_sensitive = True


@lru_cache
def get_settings() -> Settings:
    try:
        return Settings()  # type: ignore[arg-type]
    except ValidationError as exc:
        raise RuntimeError(f"Invalid backend configuration: {exc}") from exc
