from __future__ import annotations

import io
import os
import threading

import pytest

from arcz.core.buffer_pool import BufferPool
from arcz.core.peek import PeekReader


class TrickleReader(io.RawIOBase):
    """Returns at most ``step`` bytes per read, like a slow pipe."""

    def __init__(self, data: bytes, step: int = 3) -> None:
        self._data = data
        self._pos = 0
        self._step = step
        self.reads_after_eof = 0

    def readable(self) -> bool:
        return True

    def read(self, n: int = -1) -> bytes:
        if self._pos >= len(self._data):
            self.reads_after_eof += 1
            return b""
        if n < 0:
            n = len(self._data)
        k = min(n, self._step)
        out = self._data[self._pos : self._pos + k]
        self._pos += len(out)
        return out


def test_peek_does_not_consume() -> None:
    r = PeekReader(io.BytesIO(b"0123456789abcdef"), BufferPool(64))
    assert r.peek(10) == b"0123456789"
    assert r.peek(10) == b"0123456789"
    assert r.peek(4) == b"0123"
    assert r.read() == b"0123456789abcdef"


def test_peek_fills_across_short_reads() -> None:
    r = PeekReader(TrickleReader(b"abcdefghijkl", step=2), BufferPool(64))
    assert r.peek(10) == b"abcdefghij"
    assert r.read(3) == b"abc"
    assert r.peek(10) == b"defghijkl"
    assert r.read() == b"defghijkl"


@pytest.mark.parametrize("data", [b"", b"x", b"short"])
def test_short_input_peek_is_not_an_error(data: bytes) -> None:
    r = PeekReader(io.BytesIO(data), BufferPool(64))
    assert r.peek(10) == data
    assert r.read() == data


def test_peek_larger_than_buffer_rejected() -> None:
    r = PeekReader(io.BytesIO(b"abc"), BufferPool(8))
    with pytest.raises(ValueError):
        r.peek(9)


def test_buffer_goes_back_to_pool_once_at_eof() -> None:
    pool = BufferPool(16)
    src = TrickleReader(b"hello world", step=4)
    r = PeekReader(src, pool)
    assert pool.free_count() == 0

    assert r.read(5) == b"hell"  # short read: buffer holds what one source read gave
    assert pool.free_count() == 0
    assert r.read() == b"o world"
    assert r.exhausted
    assert pool.free_count() == 1

    # EOF is sticky and the stale source is never touched again
    before = src.reads_after_eof
    assert r.read(10) == b""
    assert r.read(10) == b""
    assert r.peek(4) == b""
    assert src.reads_after_eof == before
    assert pool.free_count() == 1


def test_close_does_not_return_buffer() -> None:
    pool = BufferPool(16)
    r = PeekReader(io.BytesIO(b"abc"), pool)
    r.peek(2)
    r.close()
    assert pool.free_count() == 0


def test_pool_reuses_released_buffers() -> None:
    pool = BufferPool(16)
    r1 = PeekReader(io.BytesIO(b"a"), pool)
    assert r1.read() == b"a"
    assert pool.free_count() == 1
    r2 = PeekReader(io.BytesIO(b"b"), pool)
    assert pool.free_count() == 0
    assert r2.read() == b"b"
    assert pool.free_count() == 1


def test_pooled_buffer_double_release_is_noop() -> None:
    pool = BufferPool(16)
    h = pool.get()
    h.release()
    h.release()
    assert pool.free_count() == 1
    with pytest.raises(ValueError):
        _ = h.data


def test_large_payload_passes_through_intact() -> None:
    data = os.urandom(200_000)
    r = PeekReader(io.BytesIO(data))
    assert r.peek(10) == data[:10]
    out = bytearray()
    while True:
        chunk = r.read(50_000)
        if not chunk:
            break
        out += chunk
    assert bytes(out) == data


def test_io_error_from_source_propagates() -> None:
    class Broken(io.RawIOBase):
        def readable(self) -> bool:
            return True

        def read(self, n: int = -1) -> bytes:
            raise OSError("read failed")

    r = PeekReader(Broken(), BufferPool(16))
    with pytest.raises(OSError, match="read failed"):
        r.peek(4)


def test_pool_shared_across_threads() -> None:
    pool = BufferPool(64, max_free=8)
    payloads = [os.urandom(1000 + i) for i in range(16)]
    errors: list[BaseException] = []
    results: dict[int, bytes] = {}

    def worker(idx: int) -> None:
        try:
            for _ in range(50):
                r = PeekReader(TrickleReader(payloads[idx], step=37), pool)
                head = r.peek(10)
                data = r.read()
                assert head == payloads[idx][:10]
                assert r.exhausted
                results[idx] = data
        except BaseException as e:  # re-raised in the main thread below
            errors.append(e)

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(len(payloads))]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert all(results[i] == payloads[i] for i in range(len(payloads)))
    assert 1 <= pool.free_count() <= 8


def test_concurrent_release_returns_buffer_once() -> None:
    pool = BufferPool(16)
    for _ in range(20):
        handle = pool.get()
        before = pool.free_count()
        barrier = threading.Barrier(4)

        def release() -> None:
            barrier.wait()
            handle.release()

        threads = [threading.Thread(target=release) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert handle.released
        assert pool.free_count() == before + 1
