from __future__ import annotations

import gzip
import lzma
import os
import subprocess
import sys
from pathlib import Path

import zstandard


def _run_cli(
    *args: str, stdin: bytes | None = None, path: str | None = None
) -> subprocess.CompletedProcess[bytes]:
    """Run arcz CLI through a python -c wrapper.

    This avoids assuming the console-script entrypoint is installed.
    """
    cmd = [
        sys.executable,
        "-c",
        "from arcz.cli import main; raise SystemExit(main())",
        *args,
    ]
    env = dict(os.environ)
    # keep the built-in gzip decoder: results must not depend on the host
    env["ARCZ_DISABLE_IGZIP"] = "1"
    env["ARCZ_DISABLE_PIGZ"] = "1"
    if path is not None:
        env["PATH"] = path
    return subprocess.run(cmd, input=stdin, capture_output=True, env=env)


def test_cli_compress_decompress_roundtrip(tmp_path: Path) -> None:
    inp = tmp_path / "layer.tar"
    data = b"HELLO 123\n" * 5000
    inp.write_bytes(data)

    for fmt in ("gzip", "zstd", "none"):
        out = tmp_path / f"layer.{fmt}"
        back = tmp_path / f"back.{fmt}"
        r = _run_cli("compress", str(inp), str(out), "--format", fmt)
        assert r.returncode == 0, (r.stdout, r.stderr)
        r = _run_cli("decompress", str(out), str(back))
        assert r.returncode == 0, (r.stdout, r.stderr)
        assert back.read_bytes() == data


def test_cli_detect(tmp_path: Path) -> None:
    gz = tmp_path / "a.gz"
    zst = tmp_path / "a.zst"
    empty = tmp_path / "empty"
    gz.write_bytes(gzip.compress(b"x"))
    zst.write_bytes(zstandard.ZstdCompressor().compress(b"x"))
    empty.write_bytes(b"")

    r = _run_cli("detect", str(gz), str(zst), str(empty))
    assert r.returncode == 0, r.stderr
    lines = r.stdout.decode("utf-8").splitlines()
    assert lines == [f"{gz}\tgzip", f"{zst}\tzstd", f"{empty}\tuncompressed"]


def test_cli_stdin_stdout() -> None:
    r = _run_cli("decompress", "-", "-", stdin=gzip.compress(b"piped data"))
    assert r.returncode == 0, r.stderr
    assert r.stdout == b"piped data"


def test_cli_compress_xz_unsupported_exit_11(tmp_path: Path) -> None:
    inp = tmp_path / "in"
    inp.write_bytes(b"abc")
    out = tmp_path / "out.xz"
    r = _run_cli("compress", str(inp), str(out), "--format", "xz")
    assert r.returncode == 11
    assert b"[arcz] unsupported compression format" in r.stderr
    assert not out.exists()


def test_cli_corrupt_gzip_exit_10(tmp_path: Path) -> None:
    bad = tmp_path / "bad.gz"
    bad.write_bytes(b"\x1f\x8b\x08" + b"\xff" * 32)
    r = _run_cli("decompress", str(bad), str(tmp_path / "out"))
    assert r.returncode == 10
    assert b"[arcz]" in r.stderr


def test_cli_tools_lists_decoders() -> None:
    r = _run_cli("tools")
    assert r.returncode == 0, r.stderr
    out = r.stdout.decode("utf-8")
    assert "gzip\t-\n" in out  # both accelerators disabled
    assert "disable_igzip\ttrue" in out
    assert "disable_pigz\ttrue" in out


def test_cli_bad_args_exit_2() -> None:
    r = _run_cli("compress", "a", "b", "--format", "lz4")
    assert r.returncode == 2


def test_cli_compress_unsupported_keeps_existing_output(tmp_path: Path) -> None:
    inp = tmp_path / "in"
    inp.write_bytes(b"abc")
    for fmt in ("xz", "bzip2"):
        out = tmp_path / f"out.{fmt}"
        out.write_bytes(b"precious existing content")
        r = _run_cli("compress", str(inp), str(out), "--format", fmt)
        assert r.returncode == 11, r.stderr
        assert out.read_bytes() == b"precious existing content"


def test_cli_decompress_missing_xz_keeps_existing_output(tmp_path: Path) -> None:
    empty_bin = tmp_path / "bin"
    empty_bin.mkdir()
    blob = tmp_path / "layer.xz"
    blob.write_bytes(lzma.compress(b"data", format=lzma.FORMAT_XZ))
    out = tmp_path / "layer.tar"
    out.write_bytes(b"precious existing content")

    r = _run_cli("decompress", str(blob), str(out), path=str(empty_bin))
    assert r.returncode == 12, r.stderr
    assert b"[arcz]" in r.stderr
    assert out.read_bytes() == b"precious existing content"


def test_cli_decompress_empty_input_creates_empty_output(tmp_path: Path) -> None:
    inp = tmp_path / "empty.tar"
    inp.write_bytes(b"")
    out = tmp_path / "out.tar"
    r = _run_cli("decompress", str(inp), str(out))
    assert r.returncode == 0, r.stderr
    assert out.read_bytes() == b""
