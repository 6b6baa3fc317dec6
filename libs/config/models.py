from __future__ import annotations

from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _to_bool(value: Union[str, bool]) -> bool:
    if isinstance(value, bool):
        return value
    normalized = value.strip().lower()
    return normalized in {"1", "true", "yes", "on", "y"}


class CacheSettings(BaseModel):
    """Live tunables of a :class:`libs.cache.CacheService`."""

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    max_entries: int = Field(1000, ge=1)
    default_ttl_ms: int = Field(5 * 60 * 1000, ge=0)
    enable_persistence: bool = True
    # Reserved: accepted and reported, but payloads are never compressed.
    enable_compression: bool = False
    enable_analytics: bool = True
    sweep_interval_seconds: float = Field(300.0, gt=0.0)
    # Slot names double as file names for the file backend.
    persistence_slot: str = Field("birthlink_cache_v1", pattern=r"^[A-Za-z0-9_.-]+$")
    schema_version: str = "1.0.0"

    @field_validator(
        "enable_persistence", "enable_compression", "enable_analytics", mode="before"
    )
    @classmethod
    def _parse_flag(cls, value: Union[str, bool]) -> bool:
        if isinstance(value, str):
            return _to_bool(value)
        return value


class StorageSettings(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    backend: str = "file"
    directory: str = "data/cache"
    quota_bytes: Optional[int] = Field(None, ge=1)

    @field_validator("backend", mode="before")
    @classmethod
    def _normalise_backend(cls, value: str) -> str:
        if not isinstance(value, str):
            return value
        normalized = value.strip().lower() or "file"
        if normalized not in {"file", "memory"}:
            raise ValueError(f"unsupported storage backend: {value}")
        return normalized


class TelemetrySettings(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    api_url: Optional[str] = None
    api_key: Optional[str] = None
    source: str = "cache"


class MonitorSettings(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    bind_host: str = "0.0.0.0"
    bind_port: int = 8090
    api_key: Optional[str] = None
    warm_on_startup: bool = True

    @field_validator("warm_on_startup", mode="before")
    @classmethod
    def _parse_warm_flag(cls, value: Union[str, bool]) -> bool:
        if isinstance(value, str):
            return _to_bool(value)
        return value


class AppSettings(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    version: int = 1
    cache: CacheSettings = Field(default_factory=lambda: CacheSettings())
    storage: StorageSettings = Field(default_factory=lambda: StorageSettings())
    telemetry: TelemetrySettings = Field(default_factory=lambda: TelemetrySettings())
    monitor: MonitorSettings = Field(default_factory=lambda: MonitorSettings())


__all__ = [
    "AppSettings",
    "CacheSettings",
    "MonitorSettings",
    "StorageSettings",
    "TelemetrySettings",
]
