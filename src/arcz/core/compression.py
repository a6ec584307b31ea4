from __future__ import annotations

from enum import IntEnum


class Compression(IntEnum):
    """Compression algorithm of a byte stream (closed set)."""

    UNCOMPRESSED = 0
    GZIP = 1
    ZSTD = 2
    BZIP2 = 3
    XZ = 4

    @property
    def extension(self) -> str:
        """File extension used in diagnostics ("" when there is none)."""
        return _EXTENSIONS.get(int(self), "")

    @classmethod
    def from_name(cls, name: str) -> Compression:
        key = name.strip().lower()
        if key in ("none", "raw"):
            return cls.UNCOMPRESSED
        for member in cls:
            if member.name.lower() == key:
                return member
        raise ValueError(f"unknown compression: {name!r}")


# solo gzip e zstd hanno un'estensione registrata
_EXTENSIONS: dict[int, str] = {
    Compression.GZIP: "gz",
    Compression.ZSTD: "zst",
}

