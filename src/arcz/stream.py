"""Compression-agnostic read/write streams.

  - ``decompress_stream(src)`` sniffs the head of ``src`` (pure peek), picks a
    decoder (built-in codec or external tool) and returns a DecompressReader.
  - ``compress_stream(sink, compression)`` returns a CompressWriter for the
    formats that have an encode path (none, gzip, zstd).

Decode paths:

  UNCOMPRESSED  the peeked stream itself
  GZIP          igzip / unpigz when installed and not disabled, else stdlib gzip
  ZSTD          zstandard
  BZIP2         stdlib bz2
  XZ            external ``xz`` only (missing binary is an error at open time)
"""

from __future__ import annotations

import io
import logging
from collections.abc import Callable
from typing import BinaryIO

from arcz.config import PEEK_SIZE
from arcz.core.codec_bzip2 import CodecBzip2
from arcz.core.codec_gzip import CodecGzip
from arcz.core.codec_raw import CodecRaw
from arcz.core.codec_zstd import CodecZstd
from arcz.core.compression import Compression
from arcz.core.magic import detect_compression
from arcz.core.peek import PeekReader
from arcz.engine.cmd_stream import cmd_stream
from arcz.engine.tools import XZ_TOOL, gzip_accelerator, xz_path
from arcz.errors import ExternalToolError, UnsupportedFormat

logger = logging.getLogger(__name__)

Closer = Callable[[], None]


class DecompressReader(io.RawIOBase):
    """Decompressed view of a stream plus the compression that was detected.

    Closing releases whatever the reader holds (external process, codec state).
    The caller's original stream is left open.
    """

    def __init__(self, reader: BinaryIO, compression: Compression, closer: Closer | None = None) -> None:
        super().__init__()
        self._reader = reader
        self._compression = compression
        self._closer = closer

    @property
    def compression(self) -> Compression:
        return self._compression

    def get_compression(self) -> Compression:
        return self._compression

    def readable(self) -> bool:
        return True

    def readinto(self, b) -> int:  # type: ignore[override]
        if self.closed:
            raise ValueError("I/O operation on closed stream")
        readinto = getattr(self._reader, "readinto", None)
        if readinto is not None:
            n = readinto(b)
            return 0 if n is None else n
        data = self._reader.read(len(memoryview(b)))
        n = len(data)
        memoryview(b).cast("B")[:n] = data
        return n

    def close(self) -> None:
        if self.closed:
            return
        closer, self._closer = self._closer, None
        try:
            if closer is not None:
                closer()
        finally:
            super().close()


class CompressWriter(io.RawIOBase):
    """Compressing writer. ``close()`` ends the compressed stream, the sink stays open."""

    def __init__(self, writer: BinaryIO, compression: Compression) -> None:
        super().__init__()
        self._writer = writer
        self._compression = compression

    @property
    def compression(self) -> Compression:
        return self._compression

    def writable(self) -> bool:
        return True

    def write(self, b) -> int:  # type: ignore[override]
        if self.closed:
            raise ValueError("write to closed stream")
        n = self._writer.write(b)
        return len(memoryview(b)) if n is None else n

    def flush(self) -> None:
        if not self.closed:
            self._writer.flush()

    def close(self) -> None:
        if self.closed:
            return
        try:
            super().close()  # flush while the inner writer is still open
        finally:
            self._writer.close()


def _gzip_reader(buf: PeekReader) -> tuple[BinaryIO, Closer]:
    path = gzip_accelerator()
    if path is None:
        r = CodecGzip().reader(buf)
        return r, r.close
    proc = cmd_stream([path, "-d", "-c"], buf)
    return proc, proc.close  # type: ignore[return-value]


def _xz_reader(buf: PeekReader) -> tuple[BinaryIO, Closer]:
    path = xz_path()
    if path is None:
        raise ExternalToolError([XZ_TOOL, "-d", "-c", "-q"], "executable file not found in $PATH")
    proc = cmd_stream([path, "-d", "-c", "-q"], buf)
    return proc, proc.close  # type: ignore[return-value]


def decompress_stream(archive: BinaryIO) -> DecompressReader:
    """Detect the compression of ``archive`` and return a decompressing reader.

    Empty (or very short) input is not an error: it reads as UNCOMPRESSED.
    I/O errors from ``archive`` propagate unchanged.
    """
    buf = PeekReader(archive)
    head = buf.peek(PEEK_SIZE)
    compression = detect_compression(head)
    logger.debug("detected compression: %s", compression.name.lower())

    if compression == Compression.UNCOMPRESSED:
        return DecompressReader(CodecRaw().reader(buf), compression)  # type: ignore[arg-type]
    if compression == Compression.GZIP:
        reader, closer = _gzip_reader(buf)
        return DecompressReader(reader, compression, closer)
    if compression == Compression.ZSTD:
        z = CodecZstd().reader(buf)
        return DecompressReader(z, compression, z.close)
    if compression == Compression.XZ:
        reader, closer = _xz_reader(buf)
        return DecompressReader(reader, compression, closer)
    if compression == Compression.BZIP2:
        r = CodecBzip2().reader(buf)
        return DecompressReader(r, compression, r.close)

    raise UnsupportedFormat(compression)


def compress_stream(dest: BinaryIO, compression: Compression) -> CompressWriter:
    """Return a writer that compresses into ``dest`` with ``compression``.

    Only UNCOMPRESSED, GZIP and ZSTD can be written; anything else raises
    UnsupportedFormat before a single byte reaches ``dest``.
    """
    if compression == Compression.UNCOMPRESSED:
        return CompressWriter(CodecRaw().writer(dest), compression)
    if compression == Compression.GZIP:
        return CompressWriter(CodecGzip().writer(dest), compression)
    if compression == Compression.ZSTD:
        return CompressWriter(CodecZstd().writer(dest), compression)
    raise UnsupportedFormat(compression)
