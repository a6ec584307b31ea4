#!/usr/bin/env python3
"""Generate docs/exit_codes.md from src/arcz/errors.py (single source of truth).

  python scripts/gen_exit_codes_md.py           # (re)write the file
  python scripts/gen_exit_codes_md.py --check   # exit 1 if the file is stale
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

REPO = Path(__file__).resolve().parents[1]
OUT = REPO / "docs" / "exit_codes.md"


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    ap.add_argument("--check", action="store_true", help="Only compare, do not write")
    ns = ap.parse_args(argv)

    sys.path.insert(0, str(REPO / "src"))
    from arcz import errors  # noqa: E402

    text = errors.render_exit_codes_markdown()

    if ns.check:
        current = OUT.read_text(encoding="utf-8") if OUT.is_file() else ""
        if current != text:
            print(f"[arcz] {OUT} is stale: run scripts/gen_exit_codes_md.py", file=sys.stderr)
            return 1
        print(f"[arcz] {OUT} up to date")
        return 0

    OUT.parent.mkdir(parents=True, exist_ok=True)
    OUT.write_text(text, encoding="utf-8")
    print(f"[arcz] wrote {OUT}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
