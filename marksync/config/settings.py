from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

from .webdav import SyncDataConfig, SyncStrategyConfig, WebDAVConfig, validate_webdav_config

logger = logging.getLogger(__name__)


class RuntimeConfig(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    db_path: str = Field(default="marksync.db", validation_alias="DB_PATH")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_json: bool = Field(default=False, validation_alias="LOG_JSON")
    log_file: str | None = Field(default=None, validation_alias="LOG_FILE")
    device_name: str | None = Field(default=None, validation_alias="DEVICE_NAME")
    app_version: str = Field(
        default="0.4.0", validation_alias=AliasChoices("APP_VERSION", "MARKSYNC_VERSION")
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def _validate_log_level(cls, value: Any) -> str:
        log_level = str(value or "INFO").upper()
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if log_level not in valid_levels:
            msg = f"Invalid log level: {value}. Must be one of {valid_levels}"
            raise ValueError(msg)
        return log_level

    @field_validator("log_json", mode="before")
    @classmethod
    def _parse_log_json(cls, value: Any) -> bool:
        if value in (None, ""):
            return False
        if isinstance(value, bool):
            return value
        return str(value).strip().lower() in ("1", "true", "yes", "on")

    @field_validator("db_path", mode="before")
    @classmethod
    def _validate_db_path(cls, value: Any) -> str:
        path = str(value or "marksync.db").strip()
        if path != ":memory:":
            path = os.path.expanduser(os.path.expandvars(path))
        return path


@dataclass(frozen=True)
class AppConfig:
    webdav: WebDAVConfig
    sync_data: SyncDataConfig
    strategy: SyncStrategyConfig
    runtime: RuntimeConfig

    def validate_sync_setup(self) -> list[str]:
        return validate_webdav_config(self.webdav, self.sync_data, self.strategy)


class Settings(BaseSettings):
    """Settings loaded automatically from environment variables and ``.env``.

    Nested models are populated by matching validation_alias on each field.
    """

    model_config = SettingsConfigDict(
        extra="ignore",
        populate_by_name=True,
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
    )

    webdav: WebDAVConfig = Field(default_factory=WebDAVConfig)
    sync_data: SyncDataConfig = Field(default_factory=SyncDataConfig)
    strategy: SyncStrategyConfig = Field(default_factory=SyncStrategyConfig)
    runtime: RuntimeConfig = Field(default_factory=RuntimeConfig)

    @model_validator(mode="before")
    @classmethod
    def _build_nested_from_env(cls, data: dict[str, Any]) -> dict[str, Any]:
        """Build nested config objects from flat environment variables.

        Constructor arguments take precedence over the environment.
        """
        if not isinstance(data, dict):
            return data

        result = dict(data)
        merged_source = {**dict(os.environ), **data}

        for field_name, field_info in cls.model_fields.items():
            annotation = field_info.annotation
            if not isinstance(annotation, type) or not issubclass(annotation, BaseModel):
                continue

            nested_data: dict[str, Any] = {}
            for nested_field_name, nested_field in annotation.model_fields.items():
                env_value = cls._resolve_env_value(merged_source, nested_field)
                if env_value is not None:
                    nested_data[nested_field_name] = env_value

            if nested_data:
                if field_name in result and isinstance(result[field_name], dict):
                    result[field_name] = {**nested_data, **result[field_name]}
                elif field_name not in result:
                    result[field_name] = nested_data

        return result

    @staticmethod
    def _resolve_env_value(data: dict[str, Any], field: Any) -> Any | None:
        """Resolve environment variable value for a field using its aliases."""
        aliases: list[str] = []
        alias = field.validation_alias
        if isinstance(alias, AliasChoices):
            aliases.extend(choice for choice in alias.choices if isinstance(choice, str))
        elif isinstance(alias, str):
            aliases.append(alias)
        if field.alias:
            aliases.append(field.alias)

        for name in aliases:
            if name in data:
                return data[name]
        return None

    def as_app_config(self) -> AppConfig:
        return AppConfig(
            webdav=self.webdav,
            sync_data=self.sync_data,
            strategy=self.strategy,
            runtime=self.runtime,
        )


def load_config(**overrides: Any) -> AppConfig:
    """Load configuration from environment variables (and ``.env``).

    Keyword overrides are nested dicts keyed by section name, e.g.
    ``load_config(strategy={"mechanism": "local-first"})``.

    Raises:
        RuntimeError: If configuration validation fails.
    """
    try:
        settings = Settings(**overrides)
    except ValidationError as exc:
        msg = f"Configuration validation failed: {exc}"
        raise RuntimeError(msg) from exc

    config = settings.as_app_config()
    logger.debug(
        "config_loaded",
        extra={
            "webdav_url": config.webdav.url,
            "folder": config.webdav.folder,
            "mechanism": config.strategy.mechanism,
            "sync_data": config.sync_data.model_dump(),
        },
    )
    return config
