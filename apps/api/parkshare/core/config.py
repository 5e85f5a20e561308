"""Application configuration for the parking marketplace API."""
from __future__ import annotations

from functools import lru_cache
from typing import Annotated, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    app_env: str = Field(default="development")
    cors_allow_origins: Annotated[list[str], NoDecode] = Field(default_factory=lambda: ["*"])
    log_level: str = Field(default="INFO")

    database_url: str = Field(default="sqlite+aiosqlite:///./parkshare.db")
    database_ssl_required: bool = Field(default=False)

    search_result_cap: int = Field(default=200, ge=1)
    search_default_radius_km: float = Field(default=5.0, gt=0)
    search_max_radius_km: float = Field(default=50.0, gt=0)
    max_booking_window_days: int = Field(default=62, ge=1)
    max_query_window_days: int = Field(default=366, ge=1)

    # "contained" requires the whole window inside open hours, "intersects"
    # admits any overlap with an open occurrence.
    open_rule_mode: Literal["contained", "intersects"] = Field(default="contained")

    booking_rate_limit: int = Field(default=10, ge=1)
    booking_rate_window_seconds: int = Field(default=300, ge=1)
    default_currency: str = Field(default="eur", min_length=3, max_length=3)

    @field_validator("cors_allow_origins", mode="before")
    @classmethod
    def _split_origins(cls, value: object) -> object:
        """Allow comma-separated env values for CORS origins."""

        if isinstance(value, str):
            parts = [item.strip() for item in value.split(",") if item.strip()]
            return parts
        return value

    @property
    def database_is_postgres(self) -> bool:
        return self.database_url.startswith("postgresql")


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance."""

    return Settings()


settings = get_settings()
