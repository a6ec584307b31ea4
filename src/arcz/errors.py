"""Typed errors for arcz.

Single source of truth for exit codes lives here.

Policy:
- Errors are small and boring.
- The CLI maps errors to stable exit codes (see EXIT_* constants).
- docs/exit_codes.md is generated from this module (scripts/gen_exit_codes_md.py).
- I/O errors of the wrapped stream are never wrapped: they propagate as-is.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

# -------------------------
# Exit codes (single source)
# -------------------------

EXIT_OK = 0
EXIT_USAGE = 2
EXIT_GENERIC = 10
EXIT_UNSUPPORTED_FORMAT = 11
EXIT_TOOL_MISSING = 12
EXIT_TOOL_FAILED = 13


@dataclass(frozen=True, slots=True)
class ExitCodeInfo:
    code: int
    name: str
    description: str


EXIT_CODES: tuple[ExitCodeInfo, ...] = (
    ExitCodeInfo(EXIT_OK, "OK", "Success"),
    ExitCodeInfo(EXIT_USAGE, "USAGE", "Usage/config error (invalid args, unknown format name, etc.)"),
    ExitCodeInfo(EXIT_GENERIC, "GENERIC", "Generic failure (I/O error, corrupt stream, unexpected error)"),
    ExitCodeInfo(
        EXIT_UNSUPPORTED_FORMAT,
        "UNSUPPORTED_FORMAT",
        "No decode/encode path for the detected or requested compression",
    ),
    ExitCodeInfo(EXIT_TOOL_MISSING, "TOOL_MISSING", "Required external decoder could not be started"),
    ExitCodeInfo(EXIT_TOOL_FAILED, "TOOL_FAILED", "External decoder exited with a non-zero status"),
)

_EXIT_CODE_BY_CODE: dict[int, ExitCodeInfo] = {e.code: e for e in EXIT_CODES}


def exit_code_info(code: int) -> ExitCodeInfo | None:
    return _EXIT_CODE_BY_CODE.get(int(code))


def render_exit_codes_markdown() -> str:
    """Render docs/exit_codes.md content."""
    lines: list[str] = []
    lines.append("# Exit codes\n")
    lines.append("> GENERATED FILE. Do not edit manually.\n")
    lines.append("> Source of truth: `src/arcz/errors.py` (EXIT_CODES).\n")
    lines.append("> Regenerate: `python scripts/gen_exit_codes_md.py`.\n\n")
    lines.append("These are the CLI exit codes you can rely on.\n\n")
    lines.append("| Code | Name | Meaning |\n")
    lines.append("|---:|---|---|\n")
    for e in sorted(EXIT_CODES, key=lambda x: x.code):
        lines.append(f"| {e.code} | `{e.name}` | {e.description} |\n")
    lines.append("\n## Notes\n")
    lines.append("- Library errors extend `ArczError` and carry an `exit_code`.\n")
    lines.append("- `--debug` re-raises errors to show full stack traces.\n")
    lines.append("- Errors from the input stream itself (I/O, corrupt data) map to `GENERIC`.\n")
    return "".join(lines)


# ---------------
# Typed exceptions
# ---------------


class ArczError(Exception):
    """Base error for arcz."""

    exit_code: int = EXIT_GENERIC


class UsageError(ArczError):
    exit_code = EXIT_USAGE


class ConfigError(ValueError):
    """A configuration value could not be parsed."""


class UnsupportedFormat(ArczError):
    exit_code = EXIT_UNSUPPORTED_FORMAT

    def __init__(self, compression: int) -> None:
        self.compression = compression
        self.extension: str = getattr(compression, "extension", "")
        # stessa forma del messaggio per decode e encode; l'estensione può essere vuota
        super().__init__(f"unsupported compression format {self.extension}")


def _command_str(command: Sequence[str] | str) -> str:
    if isinstance(command, str):
        return command
    return " ".join(str(c) for c in command)


class ExternalToolError(ArczError):
    """The external process could not be spawned (missing binary, permissions, ...)."""

    exit_code = EXIT_TOOL_MISSING

    def __init__(self, command: Sequence[str] | str, reason: str) -> None:
        self.command = _command_str(command)
        super().__init__(f"{self.command}: {reason}")


class ExternalToolFailed(ArczError):
    """The external process ran and exited with a non-zero status."""

    exit_code = EXIT_TOOL_FAILED

    def __init__(self, command: Sequence[str] | str, returncode: int, stderr: str) -> None:
        self.command = _command_str(command)
        self.returncode = int(returncode)
        self.stderr = stderr
        super().__init__(f"{self.command} exited with status {self.returncode}: {stderr}")
