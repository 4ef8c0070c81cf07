from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from ._validators import _parse_vibrate_pattern, _validate_app_path

DEFAULT_TITLE = "RetroPhoto"
DEFAULT_BODY = "Your photo has been restored!"
DEFAULT_ICON = "/icons/icon-192x192.png"


class NotificationConfig(BaseModel):
    """Display defaults for system notifications."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    default_title: str = Field(default=DEFAULT_TITLE, validation_alias="NOTIFY_DEFAULT_TITLE")
    default_body: str = Field(default=DEFAULT_BODY, validation_alias="NOTIFY_DEFAULT_BODY")
    default_url: str = Field(default="/", validation_alias="NOTIFY_DEFAULT_URL")
    success_url: str = Field(
        default="/app",
        validation_alias="NOTIFY_SUCCESS_URL",
        description="Route opened from a 'photo restored' notification after a queued upload",
    )
    icon: str = Field(default=DEFAULT_ICON, validation_alias="NOTIFY_ICON")
    badge: str = Field(default=DEFAULT_ICON, validation_alias="NOTIFY_BADGE")
    vibrate: tuple[int, ...] = Field(default=(200, 100, 200), validation_alias="NOTIFY_VIBRATE")

    @field_validator("default_title", "default_body", mode="before")
    @classmethod
    def _validate_text(cls, value: Any, info: ValidationInfo) -> str:
        default = cls.model_fields[info.field_name].default
        text = str(value if value not in (None, "") else default).strip()
        if not text:
            return str(default)
        if len(text) > 200:
            msg = f"{info.field_name.replace('_', ' ').capitalize()} is too long"
            raise ValueError(msg)
        return text

    @field_validator("default_url", "success_url", mode="before")
    @classmethod
    def _validate_url(cls, value: Any, info: ValidationInfo) -> str:
        default = cls.model_fields[info.field_name].default
        return _validate_app_path(
            value, name=info.field_name.replace("_", " ").capitalize(), default=default
        )

    @field_validator("vibrate", mode="before")
    @classmethod
    def _validate_vibrate(cls, value: Any) -> tuple[int, ...]:
        if value is None:
            return (200, 100, 200)
        return _parse_vibrate_pattern(value)
