from functools import lru_cache
from typing import Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppConfig(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    backend_url: str = Field(
        default="",
        validation_alias=AliasChoices("BACKEND_URL", "VITE_BACKEND_URL"),
    )
    preferred_language: str = Field(
        default="en", validation_alias="PREFERRED_LANGUAGE"
    )
    request_timeout_seconds: Optional[float] = Field(
        default=None, validation_alias="REQUEST_TIMEOUT_SECONDS"
    )
    log_path: Optional[str] = Field(default=None, validation_alias="LOG_PATH")
    log_name: str = Field(default="crop_form", validation_alias="LOG_NAME")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    @field_validator("backend_url", mode="after")
    @classmethod
    def normalize_backend_url(cls, value: str) -> str:
        return value.strip().rstrip("/") if value else ""

    @field_validator("preferred_language", mode="after")
    @classmethod
    def normalize_language(cls, value: str) -> str:
        return value.strip().lower() if value else "en"

    @field_validator("log_level", mode="after")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        return value.strip().upper() if value else "INFO"


@lru_cache(maxsize=1)
def get_config() -> AppConfig:
    return AppConfig()
