from __future__ import annotations

import bz2
from typing import BinaryIO


class CodecBzip2:
    """bzip2 decoder (stdlib). Decode only: there is no bzip2 write path."""

    codec_id: str = "bzip2"

    def reader(self, source: BinaryIO) -> BinaryIO:
        return bz2.BZ2File(source, mode="rb")
