"""Magic-number sniffing.

A matcher is a pure function ``bytes -> bool``. Detection runs the matchers in a
fixed priority order and returns the first hit; signatures are disjoint over the
first 10 bytes, so the order only matters for determinism.

Short input is never an error: it just does not match.
"""

from __future__ import annotations

import struct
from collections.abc import Callable

from arcz.core.compression import Compression

Matcher = Callable[[bytes], bool]

GZIP_MAGIC = b"\x1f\x8b\x08"
ZSTD_MAGIC = b"\x28\xb5\x2f\xfd"
BZIP2_MAGIC = b"\x42\x5a\x68"
XZ_MAGIC = b"\xfd\x37\x7a\x58\x5a\x00"

# Skippable frames: magic 0x184D2A50..0x184D2A5F (RFC 8878, 3.1.2).
# The low nibble is a user sub-type and gets masked off.
ZSTD_SKIPPABLE_START = 0x184D2A50
ZSTD_SKIPPABLE_MASK = 0xFFFFFFF0
# magic (4) + frame size (4)
ZSTD_SKIPPABLE_MIN_LEN = 8

_U32_LE = struct.Struct("<I")


def magic_number_matcher(magic: bytes) -> Matcher:
    m = bytes(magic)

    def _match(source: bytes) -> bool:
        return bytes(source[: len(m)]) == m

    return _match


def zstd_matcher() -> Matcher:
    """Zstandard frame or skippable frame."""

    def _match(source: bytes) -> bool:
        if bytes(source[:4]) == ZSTD_MAGIC:
            return True
        if len(source) < ZSTD_SKIPPABLE_MIN_LEN:
            return False
        (v,) = _U32_LE.unpack_from(source, 0)
        return (v & ZSTD_SKIPPABLE_MASK) == ZSTD_SKIPPABLE_START

    return _match


MATCHERS: tuple[tuple[Compression, Matcher], ...] = (
    (Compression.GZIP, magic_number_matcher(GZIP_MAGIC)),
    (Compression.ZSTD, zstd_matcher()),
    (Compression.BZIP2, magic_number_matcher(BZIP2_MAGIC)),
    (Compression.XZ, magic_number_matcher(XZ_MAGIC)),
)


def detect_compression(source: bytes) -> Compression:
    """Return the compression of ``source`` (a peeked head), UNCOMPRESSED if unknown."""
    for compression, match in MATCHERS:
        if match(source):
            return compression
    return Compression.UNCOMPRESSED
