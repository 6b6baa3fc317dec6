from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import IO, Any, Dict, Optional

__all__ = ["configure_json_logging", "JsonFormatter"]

_LOG_DIR_ENV = "BIRTHLINK_LOG_ROOT"
_NUM_BACKUPS = 7


class JsonFormatter(logging.Formatter):
    """Serialises log records as one JSON object per line."""

    def __init__(self, service_name: str) -> None:
        super().__init__()
        self._service_name = service_name
        baseline = logging.LogRecord(
            name="_baseline",
            level=logging.INFO,
            pathname="",
            lineno=0,
            msg="",
            args=(),
            exc_info=None,
        )
        self._reserved = set(baseline.__dict__.keys()) | {
            "service",
            "level",
            "message",
            "logger",
            "ts",
            "exception",
            "taskName",
        }

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "service": self._service_name,
            "level": record.levelname.lower(),
            "message": record.getMessage(),
            "logger": record.name,
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        extras = {
            key: value
            for key, value in record.__dict__.items()
            if key not in self._reserved
        }
        if extras:
            payload["extra"] = extras
        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_json_logging(
    service_name: str,
    *,
    level: int | str = logging.INFO,
    stream: IO[str] | None = None,
    log_dir: Optional[Path] = None,
) -> None:
    """Install JSON logging on the root logger for ``service_name``.

    ``LOG_LEVEL`` overrides ``level``. Records go to ``stream`` (stderr by
    default) and to a daily-rotated file under ``BIRTHLINK_LOG_ROOT``.
    """

    env_level = os.getenv("LOG_LEVEL")
    candidate = env_level or level
    if isinstance(candidate, str):
        resolved = logging.getLevelName(candidate.upper())
        level = resolved if isinstance(resolved, int) else logging.INFO
    else:
        level = candidate

    root = logging.getLogger()
    root.setLevel(level)

    for handler in list(root.handlers):
        root.removeHandler(handler)
        try:
            handler.close()
        except Exception:  # pragma: no cover - closing is best effort
            pass

    formatter = JsonFormatter(service_name)

    stream_handler = logging.StreamHandler(stream)
    stream_handler.setFormatter(formatter)
    root.addHandler(stream_handler)

    directory = log_dir or Path(os.getenv(_LOG_DIR_ENV, "logs"))
    directory.mkdir(parents=True, exist_ok=True)
    file_handler = TimedRotatingFileHandler(
        directory / f"{service_name}.log",
        when="midnight",
        backupCount=_NUM_BACKUPS,
        encoding="utf-8",
    )
    file_handler.setFormatter(formatter)
    root.addHandler(file_handler)
