from __future__ import annotations

import copy
import logging
import os
from pathlib import Path
from typing import Any, Callable, Dict, Tuple

import yaml

from .models import AppSettings


logger = logging.getLogger(__name__)
_CONFIG_CACHE: AppSettings | None = None


def get_app_config() -> AppSettings:
    """Return the cached application settings, loading them if necessary."""

    global _CONFIG_CACHE
    if _CONFIG_CACHE is None:
        _CONFIG_CACHE = _load_settings()
    return _CONFIG_CACHE


def reload_app_config() -> AppSettings:
    """Reload the configuration from disk, bypassing the cache."""

    global _CONFIG_CACHE
    _CONFIG_CACHE = _load_settings()
    return _CONFIG_CACHE


def _load_settings() -> AppSettings:
    raw = _load_raw_config()
    merged = _apply_env_overrides(raw)
    return AppSettings.model_validate(merged)


def _load_raw_config() -> Dict[str, Any]:
    path = Path(os.getenv("BIRTHLINK_CONFIG_FILE", "config/cache.yaml"))
    if not path.exists():
        return {}
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise RuntimeError(f"Unable to read config file at {path}: {exc}") from exc
    if not text.strip():
        return {}
    try:
        data = yaml.safe_load(text) or {}
    except yaml.YAMLError as exc:
        raise RuntimeError(f"Invalid YAML in config file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise RuntimeError(f"Top-level structure in {path} must be a mapping.")
    return data


def _apply_env_overrides(source: Dict[str, Any]) -> Dict[str, Any]:
    result: Dict[str, Any] = copy.deepcopy(source)
    for env_name, (path, transformer) in _ENV_MAPPING.items():
        raw_value = os.getenv(env_name)
        if raw_value is None or raw_value == "":
            continue
        try:
            value = transformer(raw_value) if transformer else raw_value
        except Exception as exc:
            logger.warning("Ignoring invalid value for %s: %s", env_name, exc)
            continue
        _assign_path(result, path, value)
    return result


def _assign_path(target: Dict[str, Any], path: Tuple[str, ...], value: Any) -> None:
    current: Dict[str, Any] = target
    for key in path[:-1]:
        if key not in current or not isinstance(current[key], dict):
            current[key] = {}
        current = current[key]
    current[path[-1]] = value


def _to_bool(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on", "y"}


def _to_int(value: str) -> int:
    return int(value.strip())


def _to_float(value: str) -> float:
    return float(value.strip())


def _strip_or_none(value: str) -> str | None:
    stripped = value.strip()
    return stripped or None


_Override = Tuple[Tuple[str, ...], Callable[[str], Any] | None]

_ENV_MAPPING: Dict[str, _Override] = {
    "CACHE_MAX_ENTRIES": (("cache", "max_entries"), _to_int),
    "CACHE_DEFAULT_TTL_MS": (("cache", "default_ttl_ms"), _to_int),
    "CACHE_ENABLE_PERSISTENCE": (("cache", "enable_persistence"), _to_bool),
    "CACHE_ENABLE_ANALYTICS": (("cache", "enable_analytics"), _to_bool),
    "CACHE_SWEEP_INTERVAL_SECONDS": (("cache", "sweep_interval_seconds"), _to_float),
    "CACHE_PERSISTENCE_SLOT": (("cache", "persistence_slot"), None),
    "CACHE_STORAGE_BACKEND": (("storage", "backend"), lambda value: value.strip().lower()),
    "CACHE_STORAGE_DIR": (("storage", "directory"), None),
    "CACHE_STORAGE_QUOTA_BYTES": (("storage", "quota_bytes"), _to_int),
    "TELEMETRY_API_URL": (("telemetry", "api_url"), _strip_or_none),
    "TELEMETRY_API_KEY": (("telemetry", "api_key"), _strip_or_none),
    "TELEMETRY_SOURCE": (("telemetry", "source"), None),
    "CACHE_MONITOR_HOST": (("monitor", "bind_host"), None),
    "CACHE_MONITOR_PORT": (("monitor", "bind_port"), _to_int),
    "CACHE_MONITOR_API_KEY": (("monitor", "api_key"), _strip_or_none),
    "CACHE_WARM_ON_STARTUP": (("monitor", "warm_on_startup"), _to_bool),
}


__all__ = ["get_app_config", "reload_app_config"]
