"""Shared pool of fixed-size lookahead buffers.

Invariants for a checked-out buffer:
  - never read after it went back to the pool
  - never returned twice (``release`` on a released handle is a no-op)

Checkout and return are the only pool operations; both are thread-safe.
"""

from __future__ import annotations

import threading

from arcz.config import BUFFER_SIZE


class PooledBuffer:
    """Handle to one buffer checked out from a BufferPool."""

    __slots__ = ("_pool", "_buf")

    def __init__(self, pool: BufferPool, buf: bytearray) -> None:
        self._pool = pool
        self._buf: bytearray | None = buf

    @property
    def released(self) -> bool:
        return self._buf is None

    @property
    def data(self) -> bytearray:
        if self._buf is None:
            raise ValueError("pooled buffer used after release")
        return self._buf

    def release(self) -> None:
        self._pool._put(self)


class BufferPool:
    def __init__(self, size: int = BUFFER_SIZE, max_free: int = 64) -> None:
        if size <= 0:
            raise ValueError(f"buffer size must be > 0, got {size}")
        self.size = int(size)
        self._max_free = int(max_free)
        self._free: list[bytearray] = []
        self._lock = threading.Lock()

    def get(self) -> PooledBuffer:
        with self._lock:
            buf = self._free.pop() if self._free else None
        if buf is None:
            buf = bytearray(self.size)
        return PooledBuffer(self, buf)

    def _put(self, handle: PooledBuffer) -> None:
        # lo scambio avviene sotto lock: un handle torna nel pool una volta sola
        with self._lock:
            buf, handle._buf = handle._buf, None
            if buf is not None and len(self._free) < self._max_free:
                self._free.append(buf)

    def free_count(self) -> int:
        with self._lock:
            return len(self._free)


BUFFER_POOL_32K = BufferPool(BUFFER_SIZE)
