import os
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    TomlConfigSettingsSource,
)

_CONFIG_PATH = os.getenv("CDN_GATEWAY_CONFIG", "config.toml")
_ENV_PATH = os.getenv("CDN_GATEWAY_ENV", ".env")


class AdminSettings(BaseModel):
    username: str = "admin"
    password_hash: str = ""  # argon2 hash, see `cdn-gateway-hash-password`


class StorageSettings(BaseModel):
    type: Literal["local"] = "local"
    root: Path = Path("storage")


class SessionSettings(BaseModel):
    cookie_name: str = "session_id"
    expiry_seconds: int = 24 * 60 * 60
    cleanup_interval_seconds: float = 60 * 60


class RateLimitSettings(BaseModel):
    requests: int = Field(default=100, ge=1)
    window_seconds: float = Field(default=60, gt=0)
    cleanup_interval_seconds: float = 60


class ThumbnailSettings(BaseModel):
    size: int = Field(default=128, ge=1)
    quality: int = Field(default=85, ge=1, le=100)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_nested_delimiter="__",
        toml_file=_CONFIG_PATH,
        env_file=_ENV_PATH,
        extra="ignore",
    )

    environment: str = "development"
    host: str = "0.0.0.0"
    port: int = 3000
    base_url: str = "http://localhost:8080"

    readonly: bool = False
    enable_metrics: bool = True
    max_upload_size: int = 10 * 1024 * 1024  # 10MB

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    logs_dir: Path = Field(default=Path("logs"))

    admin: AdminSettings = Field(default_factory=AdminSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    session: SessionSettings = Field(default_factory=SessionSettings)
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    thumbnail: ThumbnailSettings = Field(default_factory=ThumbnailSettings)

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, value):
        if isinstance(value, str):
            value = value.upper()
            # Accept the common "warn" spelling
            if value == "WARN":
                value = "WARNING"
        return value

    @field_validator("base_url")
    @classmethod
    def _strip_base_url(cls, value: str) -> str:
        return value.rstrip("/")

    @model_validator(mode="after")
    def _check_production(self):
        if self.environment == "production" and not self.admin.password_hash:
            raise ValueError("admin.password_hash must be set in production")
        return self

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Source order: init args > OS env > .env > config.toml > secrets
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            TomlConfigSettingsSource(settings_cls),
            file_secret_settings,
        )


settings = Settings()
