"""Helpers for cache keys: telemetry-safe digests and glob matching."""

from __future__ import annotations

import hashlib
import re
from typing import Pattern

_DIGEST_LENGTH = 12


def obfuscate_key(key: str) -> str:
    """Return a short one-way digest of ``key`` suitable for telemetry payloads."""
    return hashlib.sha1(key.encode("utf-8")).hexdigest()[:_DIGEST_LENGTH]


def compile_pattern(pattern: str) -> Pattern[str]:
    """Translate a ``*`` glob into a regular expression for ``fullmatch``.

    Every ``*`` matches any substring (including an empty one); all other
    characters match literally.
    """
    body = ".*".join(re.escape(part) for part in pattern.split("*"))
    return re.compile(body, re.DOTALL)


def namespaced(namespace: str, *parts: str) -> str:
    return ":".join((namespace, *parts))


__all__ = ["obfuscate_key", "compile_pattern", "namespaced"]
