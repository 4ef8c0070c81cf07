from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ._validators import _parse_int_in_range, _validate_app_path


class DeliveryConfig(BaseModel):
    """Restore API endpoint used to deliver queued uploads."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    base_url: str = Field(default="http://localhost:3000", validation_alias="RESTORE_API_BASE_URL")
    restore_path: str = Field(default="/api/restore", validation_alias="RESTORE_API_PATH")
    timeout_sec: float = Field(default=60.0, validation_alias="DELIVERY_TIMEOUT_SEC")
    in_call_retries: int = Field(
        default=0,
        validation_alias="DELIVERY_IN_CALL_RETRIES",
        description="Extra retries inside one attempt for transient errors",
    )
    max_upload_bytes: int = Field(
        default=20 * 1024 * 1024,
        validation_alias="DELIVERY_MAX_UPLOAD_BYTES",
        description="Largest photo accepted into the queue",
    )

    @field_validator("base_url", mode="before")
    @classmethod
    def _validate_base_url(cls, value: Any) -> str:
        url = str(value or "http://localhost:3000").strip().rstrip("/")
        if not url.startswith(("http://", "https://")):
            msg = "Restore API base URL must start with http:// or https://"
            raise ValueError(msg)
        return url

    @field_validator("restore_path", mode="before")
    @classmethod
    def _validate_restore_path(cls, value: Any) -> str:
        return _validate_app_path(value, name="Restore API path", default="/api/restore")

    @field_validator("timeout_sec", mode="before")
    @classmethod
    def _validate_timeout(cls, value: Any) -> float:
        if value in (None, ""):
            return 60.0
        try:
            parsed = float(str(value))
        except ValueError as exc:
            msg = "Delivery timeout must be a valid number"
            raise ValueError(msg) from exc
        if parsed <= 0 or parsed > 600:
            msg = "Delivery timeout must be between 0 and 600 seconds"
            raise ValueError(msg)
        return parsed

    @field_validator("in_call_retries", mode="before")
    @classmethod
    def _validate_retries(cls, value: Any) -> int:
        return _parse_int_in_range(
            value, name="Delivery in-call retries", default=0, minimum=0, maximum=5
        )

    @field_validator("max_upload_bytes", mode="before")
    @classmethod
    def _validate_max_upload(cls, value: Any) -> int:
        return _parse_int_in_range(
            value,
            name="Delivery max upload bytes",
            default=20 * 1024 * 1024,
            minimum=1024,
            maximum=200 * 1024 * 1024,
        )

    @property
    def restore_url(self) -> str:
        return f"{self.base_url}{self.restore_path}"
