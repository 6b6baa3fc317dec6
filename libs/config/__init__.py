from .loader import get_app_config, reload_app_config
from .models import (
    AppSettings,
    CacheSettings,
    MonitorSettings,
    StorageSettings,
    TelemetrySettings,
)

__all__ = [
    "AppSettings",
    "CacheSettings",
    "MonitorSettings",
    "StorageSettings",
    "TelemetrySettings",
    "get_app_config",
    "reload_app_config",
]
