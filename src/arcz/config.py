"""Configuration: constants and environment toggles.

Toggles are read from the environment every time they are asked for; callers
that need "once per process" semantics cache the result (see arcz.engine.tools).
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass

from arcz.errors import ConfigError

logger = logging.getLogger(__name__)

BUFFER_SIZE = 32 * 1024
# enough for every supported signature (xz is the longest at 6, zstd skippable needs 8)
PEEK_SIZE = 10
# close(): SIGTERM first, SIGKILL after this many seconds
CLOSE_GRACE_SECONDS = 5.0

DISABLE_IGZIP_ENV = "ARCZ_DISABLE_IGZIP"
DISABLE_PIGZ_ENV = "ARCZ_DISABLE_PIGZ"

_TRUE = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE = frozenset({"0", "f", "F", "FALSE", "false", "False"})


def parse_bool(value: str) -> bool:
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ConfigError(f"invalid boolean value: {value!r}")


def env_disabled(name: str, environ: Mapping[str, str] | None = None) -> bool:
    """True if the toggle ``name`` is set to a true value.

    Unset or empty means "not disabled". A value that does not parse is logged
    and also means "not disabled": the tool is still attempted.
    """
    env = os.environ if environ is None else environ
    value = env.get(name, "")
    if not value:
        return False
    try:
        return parse_bool(value)
    except ConfigError as e:
        logger.warning("could not parse %s: %s (%s)", name, value, e)
        return False


@dataclass(frozen=True)
class ToolConfig:
    disable_igzip: bool = False
    disable_pigz: bool = False


def load_tool_config(environ: Mapping[str, str] | None = None) -> ToolConfig:
    return ToolConfig(
        disable_igzip=env_disabled(DISABLE_IGZIP_ENV, environ),
        disable_pigz=env_disabled(DISABLE_PIGZ_ENV, environ),
    )
