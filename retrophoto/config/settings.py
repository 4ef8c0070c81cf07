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

from .database import DatabaseConfig
from .delivery import DeliveryConfig
from .notifications import NotificationConfig
from .upload_queue import UploadQueueConfig

logger = logging.getLogger(__name__)


class RuntimeConfig(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    db_path: str = Field(
        default="/data/retrophoto_queue.db",
        validation_alias=AliasChoices("UPLOAD_QUEUE_DB_PATH", "DB_PATH"),
    )
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_format: str = Field(default="loguru", validation_alias="LOG_FORMAT")
    log_file: str | None = Field(default=None, validation_alias="LOG_FILE")

    @field_validator("db_path", mode="before")
    @classmethod
    def _validate_db_path(cls, value: Any) -> str:
        path = str(value or "/data/retrophoto_queue.db").strip()
        if "\x00" in path:
            msg = "Database path contains invalid characters"
            raise ValueError(msg)
        return path

    @field_validator("log_level", mode="before")
    @classmethod
    def _validate_log_level(cls, value: Any) -> str:
        log_level = str(value or "INFO").upper()
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if log_level not in valid_levels:
            msg = f"Invalid log level: {value}. Must be one of {valid_levels}"
            raise ValueError(msg)
        return log_level

    @field_validator("log_format", mode="before")
    @classmethod
    def _validate_log_format(cls, value: Any) -> str:
        log_format = str(value or "loguru").lower().strip()
        if log_format not in {"loguru", "json"}:
            msg = f"Invalid log format: {log_format}. Must be 'loguru' or 'json'"
            raise ValueError(msg)
        return log_format

    @field_validator("log_file", mode="before")
    @classmethod
    def _validate_log_file(cls, value: Any) -> str | None:
        if value is None:
            return None
        trimmed = str(value).strip()
        return trimmed or None


@dataclass(frozen=True)
class AppConfig:
    runtime: RuntimeConfig
    database: DatabaseConfig
    upload_queue: UploadQueueConfig
    delivery: DeliveryConfig
    notifications: NotificationConfig


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Nested models are populated by matching validation_alias on each field,
    so the environment stays flat (``UPLOAD_QUEUE_RETRY_CEILING=3``).
    """

    model_config = SettingsConfigDict(
        extra="ignore",
        populate_by_name=True,
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
    )

    runtime: RuntimeConfig = Field(default_factory=RuntimeConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    upload_queue: UploadQueueConfig = Field(default_factory=UploadQueueConfig)
    delivery: DeliveryConfig = Field(default_factory=DeliveryConfig)
    notifications: NotificationConfig = Field(default_factory=NotificationConfig)

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
                else:
                    result[field_name] = nested_data

        return result

    @staticmethod
    def _resolve_env_value(data: dict[str, Any], field: Any) -> Any | None:
        """Resolve an environment value for a field using its aliases."""
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
            runtime=self.runtime,
            database=self.database,
            upload_queue=self.upload_queue,
            delivery=self.delivery,
            notifications=self.notifications,
        )


def load_config(**overrides: Any) -> AppConfig:
    """Load application configuration from the environment and ``.env``.

    Args:
        **overrides: Section dicts (e.g. ``upload_queue={"retry_ceiling": 3}``)
            that take precedence over environment variables.

    Returns:
        Immutable AppConfig instance.

    Raises:
        RuntimeError: If configuration validation fails.
    """
    try:
        settings = Settings(**overrides)
    except ValidationError as exc:
        msg = f"Configuration validation failed: {exc}"
        raise RuntimeError(msg) from exc

    logger.debug(
        "config_loaded",
        extra={
            "retry_ceiling": settings.upload_queue.retry_ceiling,
            "sync_tag": settings.upload_queue.sync_tag,
            "restore_url": settings.delivery.restore_url,
        },
    )
    return settings.as_app_config()
