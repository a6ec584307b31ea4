from __future__ import annotations

import io
from typing import BinaryIO


class _PassthroughWriter(io.RawIOBase):
    """Writes straight to the sink; close() flushes but never closes the sink."""

    def __init__(self, sink: BinaryIO) -> None:
        super().__init__()
        self._sink = sink

    def writable(self) -> bool:
        return True

    def write(self, b) -> int:  # type: ignore[override]
        if self.closed:
            raise ValueError("write to closed stream")
        n = self._sink.write(b)
        return len(memoryview(b)) if n is None else n

    def flush(self) -> None:
        if not self.closed:
            flush = getattr(self._sink, "flush", None)
            if flush is not None:
                flush()


class CodecRaw:
    """
    Codec identity: lo stream passa così com'è.
    """

    codec_id: str = "raw"

    def reader(self, source: BinaryIO) -> BinaryIO:
        return source

    def writer(self, sink: BinaryIO) -> BinaryIO:
        return _PassthroughWriter(sink)  # type: ignore[return-value]
