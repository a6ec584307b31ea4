"""arcz CLI.

This is the stable CLI entrypoint (console-script: ``arcz``).

UX policy:
  - ``-`` means stdin/stdout wherever a path is accepted.
  - Errors print ``[arcz] <message>`` on stderr and map to the exit codes in
    arcz.errors; ``--debug`` re-raises instead.
"""

from __future__ import annotations

import argparse
import io
import logging
import shutil
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO

from arcz.config import BUFFER_SIZE, PEEK_SIZE, load_tool_config
from arcz.core.compression import Compression
from arcz.core.magic import detect_compression
from arcz.core.peek import PeekReader
from arcz.engine.tools import gzip_accelerator, xz_path
from arcz.errors import EXIT_GENERIC, EXIT_USAGE, ArczError, UsageError
from arcz.stream import compress_stream, decompress_stream

FORMAT_CHOICES = ("none", "gzip", "zstd", "bzip2", "xz")


def _add_common_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--debug", action="store_true", help="Show stack traces on errors")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging on stderr")


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )


@contextmanager
def _open_in(arg: str) -> Iterator[BinaryIO]:
    if arg == "-":
        yield sys.stdin.buffer
        return
    with Path(arg).open("rb") as f:
        yield f


class _LazyOutput(io.RawIOBase):
    """Output file opened (and truncated) on the first write, not before.

    A command that fails before producing output leaves an existing file alone.
    """

    def __init__(self, path: Path) -> None:
        super().__init__()
        self._path = path
        self._f: BinaryIO | None = None

    def writable(self) -> bool:
        return True

    def _file(self) -> BinaryIO:
        if self._f is None:
            self._f = self._path.open("wb")
        return self._f

    def write(self, b) -> int:  # type: ignore[override]
        return self._file().write(b)

    def flush(self) -> None:
        if self._f is not None:
            self._f.flush()

    def finish(self) -> None:
        """Success path: make sure the file exists even when nothing was written."""
        self._file()

    def close(self) -> None:
        if self.closed:
            return
        try:
            super().close()
        finally:
            if self._f is not None:
                self._f.close()


@contextmanager
def _open_out(arg: str) -> Iterator[BinaryIO]:
    if arg == "-":
        yield sys.stdout.buffer
        sys.stdout.buffer.flush()
        return
    with _LazyOutput(Path(arg)) as out:
        yield out  # type: ignore[misc]
        out.finish()


def _cmd_detect(paths: list[str]) -> int:
    for p in paths:
        with _open_in(p) as f:
            head = PeekReader(f).peek(PEEK_SIZE)
        print(f"{p}\t{detect_compression(head).name.lower()}")
    return 0


def _cmd_decompress(input_arg: str, output_arg: str) -> int:
    with _open_in(input_arg) as src, _open_out(output_arg) as dst:
        with decompress_stream(src) as r:
            shutil.copyfileobj(r, dst, BUFFER_SIZE)
    return 0


def _cmd_compress(input_arg: str, output_arg: str, fmt: str) -> int:
    try:
        compression = Compression.from_name(fmt)
    except ValueError as e:
        raise UsageError(str(e)) from e

    with _open_in(input_arg) as src, _open_out(output_arg) as dst:
        # output aperto alla prima scrittura: se bzip2/xz falliscono qui il file resta intatto
        with compress_stream(dst, compression) as w:
            shutil.copyfileobj(src, w, BUFFER_SIZE)
    return 0


def _cmd_tools() -> int:
    cfg = load_tool_config()
    print(f"gzip\t{gzip_accelerator() or '-'}")
    print(f"xz\t{xz_path() or '-'}")
    print(f"disable_igzip\t{str(cfg.disable_igzip).lower()}")
    print(f"disable_pigz\t{str(cfg.disable_pigz).lower()}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="arcz", description="Compression-agnostic archive streams")
    sub = p.add_subparsers(dest="cmd", required=True)

    p_det = sub.add_parser("detect", help="Print the compression of each file (magic sniffing)")
    p_det.add_argument("paths", nargs="+", help="Files to inspect ('-' for stdin)")
    _add_common_args(p_det)

    p_d = sub.add_parser("decompress", help="Decompress, auto-detecting the format")
    p_d.add_argument("input", help="Input file ('-' for stdin)")
    p_d.add_argument("output", help="Output file ('-' for stdout)")
    _add_common_args(p_d)

    p_c = sub.add_parser("compress", help="Compress with the given format")
    p_c.add_argument("input", help="Input file ('-' for stdin)")
    p_c.add_argument("output", help="Output file ('-' for stdout)")
    p_c.add_argument(
        "--format",
        default="gzip",
        choices=FORMAT_CHOICES,
        help="Output format (bzip2 and xz have no encode path and are rejected)",
    )
    _add_common_args(p_c)

    p_t = sub.add_parser("tools", help="Show the external decoders that would be used")
    _add_common_args(p_t)

    return p


def main(argv: list[str] | None = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    p = build_parser()
    ns = p.parse_args(argv)
    _setup_logging(bool(getattr(ns, "verbose", False)))

    try:
        if ns.cmd == "detect":
            return _cmd_detect(list(ns.paths))
        if ns.cmd == "decompress":
            return _cmd_decompress(ns.input, ns.output)
        if ns.cmd == "compress":
            return _cmd_compress(ns.input, ns.output, ns.format)
        if ns.cmd == "tools":
            return _cmd_tools()
        raise AssertionError("unreachable")

    except SystemExit:
        raise
    except UsageError as e:
        if getattr(ns, "debug", False):
            raise
        print(f"[arcz] {e}", file=sys.stderr)
        return EXIT_USAGE
    except ArczError as e:
        if getattr(ns, "debug", False):
            raise
        print(f"[arcz] {e}", file=sys.stderr)
        return int(getattr(e, "exit_code", EXIT_GENERIC) or EXIT_GENERIC)
    except Exception as e:
        if getattr(ns, "debug", False):
            raise
        print(f"[arcz] error: {e}", file=sys.stderr)
        return EXIT_GENERIC


if __name__ == "__main__":
    raise SystemExit(main())
