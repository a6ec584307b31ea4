from __future__ import annotations

import gzip
from typing import BinaryIO


class CodecGzip:
    """gzip byte-stream codec (stdlib, no external deps).

    Multi-member input is decoded as one stream, like ``gzip -d -c`` does.
    """

    codec_id: str = "gzip"

    def __init__(self, level: int = 6):
        if not (0 <= level <= 9):
            raise ValueError(f"gzip level must be 0..9, got {level}")
        self.level = level

    def reader(self, source: BinaryIO) -> BinaryIO:
        return gzip.GzipFile(fileobj=source, mode="rb")

    def writer(self, sink: BinaryIO) -> BinaryIO:
        # GzipFile with fileobj= does not close the sink on close()
        return gzip.GzipFile(fileobj=sink, mode="wb", compresslevel=self.level)
