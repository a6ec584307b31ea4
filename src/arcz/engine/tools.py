"""External decoder detection.

Lookups are cached per process: each tool is resolved at most once, the gzip
accelerator choice is resolved at most once. The cache is thread-safe.
"""

from __future__ import annotations

import logging
import shutil
import threading
from collections.abc import Callable

from arcz.config import DISABLE_IGZIP_ENV, DISABLE_PIGZ_ENV, env_disabled

logger = logging.getLogger(__name__)

# (tool, env toggle) in order of preference
GZIP_ACCELERATORS: tuple[tuple[str, str], ...] = (
    ("igzip", DISABLE_IGZIP_ENV),
    ("unpigz", DISABLE_PIGZ_ENV),
)

XZ_TOOL = "xz"


def detect_command(name: str, disable_env: str | None = None) -> str | None:
    """Return the absolute path of ``name``, or None if disabled / not installed."""
    if disable_env and env_disabled(disable_env):
        logger.debug("%s disabled via %s", name, disable_env)
        return None

    path = shutil.which(name)
    if path is None:
        logger.debug("%s not found", name)
        return None
    return path


class ToolCache:
    """Compute-once cache keyed by name. Values (including None) are never recomputed."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._values: dict[str, str | None] = {}

    def get(self, key: str, compute: Callable[[], str | None]) -> str | None:
        with self._lock:
            if key in self._values:
                return self._values[key]
            value = compute()
            self._values[key] = value
            return value

    def clear(self) -> None:
        with self._lock:
            self._values.clear()


TOOL_CACHE = ToolCache()


def _resolve_gzip_accelerator() -> str | None:
    for name, env in GZIP_ACCELERATORS:
        path = detect_command(name, env)
        if path:
            logger.debug("using %s for decompression", name)
            return path
    return None


def gzip_accelerator() -> str | None:
    """Path of the preferred external gzip decoder, None means built-in."""
    return TOOL_CACHE.get("gzip", _resolve_gzip_accelerator)


def xz_path() -> str | None:
    return TOOL_CACHE.get(XZ_TOOL, lambda: detect_command(XZ_TOOL))
