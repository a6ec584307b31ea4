"""Peekable reader on top of a pooled 32 KiB lookahead buffer.

The buffer is checked out when the reader is created and goes back to the pool
exactly once, the first time a read reports end-of-data. From then on the
reader is detached from its source and every read returns ``b""``.

Explicit ``close()`` does not return the buffer and does not close the source:
the source belongs to the caller.
"""

from __future__ import annotations

import io
from typing import BinaryIO

from arcz.core.buffer_pool import BUFFER_POOL_32K, BufferPool


class PeekReader(io.RawIOBase):
    def __init__(self, source: BinaryIO, pool: BufferPool = BUFFER_POOL_32K) -> None:
        super().__init__()
        self._source: BinaryIO | None = source
        self._pooled = pool.get()
        self._start = 0
        self._end = 0
        self._eof = False

    def readable(self) -> bool:
        return True

    @property
    def exhausted(self) -> bool:
        """True once end-of-data was reported (buffer already back in the pool)."""
        return self._pooled.released

    def _fill(self) -> int:
        buf = self._pooled.data
        if self._start > 0:
            n = self._end - self._start
            buf[:n] = buf[self._start : self._end]
            self._start, self._end = 0, n
        if self._source is None:
            raise ValueError("read from a released PeekReader")
        chunk = self._source.read(len(buf) - self._end)
        if not chunk:
            self._eof = True
            return 0
        k = len(chunk)
        buf[self._end : self._end + k] = chunk
        self._end += k
        return k

    def _release(self) -> None:
        self._pooled.release()
        self._source = None
        self._start = self._end = 0

    def peek(self, n: int) -> bytes:
        """Return up to ``n`` upcoming bytes without consuming them.

        Fewer than ``n`` bytes means the source ended early (not an error).
        """
        if n < 0:
            raise ValueError(f"negative peek size: {n}")
        if self._pooled.released:
            return b""
        size = len(self._pooled.data)
        if n > size:
            raise ValueError(f"peek size {n} exceeds buffer size {size}")
        while self._end - self._start < n and not self._eof:
            self._fill()
        stop = min(self._start + n, self._end)
        return bytes(self._pooled.data[self._start : stop])

    def readinto(self, b) -> int:  # type: ignore[override]
        mv = memoryview(b).cast("B")
        n = len(mv)
        if n == 0 or self._pooled.released:
            return 0

        if self._start == self._end:
            if self._eof:
                self._release()
                return 0
            if n >= len(self._pooled.data):
                # buffer vuoto e richiesta grande: leggi direttamente dalla sorgente
                if self._source is None:
                    raise ValueError("read from a released PeekReader")
                chunk = self._source.read(n)
                if not chunk:
                    self._eof = True
                    self._release()
                    return 0
                k = len(chunk)
                mv[:k] = chunk
                return k
            if self._fill() == 0:
                self._release()
                return 0

        k = min(n, self._end - self._start)
        mv[:k] = self._pooled.data[self._start : self._start + k]
        self._start += k
        return k
