from __future__ import annotations

from dataclasses import dataclass
from typing import BinaryIO

import zstandard as zstd


@dataclass
class CodecZstd:
    """
    Streaming zstd codec (zstandard).

    Decode reads across frames, so concatenated and skippable frames are
    handled the same way the zstd CLI handles them.
    Encode writes a single frame; closing the writer ends the frame but leaves
    the sink open.
    """

    level: int = 3
    codec_id: str = "zstd"

    def reader(self, source: BinaryIO) -> BinaryIO:
        d = zstd.ZstdDecompressor()
        return d.stream_reader(source, read_across_frames=True, closefd=False)

    def writer(self, sink: BinaryIO) -> BinaryIO:
        c = zstd.ZstdCompressor(level=int(self.level))
        return c.stream_writer(sink, closefd=False)
