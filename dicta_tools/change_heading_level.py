#!/usr/bin/env python3
"""Move every heading of one level to another level, content untouched.

Usage:
  python -m dicta_tools.change_heading_level --file book.txt --from-level 3 --to-level 2
"""

from __future__ import annotations

import argparse
import sys

from dicta_tools.create_headers import check_level
from dicta_tools.errors import DictaToolError
from dicta_tools.markup import heading_span_re
from dicta_tools.settings import resolve_root
from dicta_tools.text_io import ensure_txt, read_text, write_text


def change_heading_level_in_text(text: str, current_level: int, new_level: int) -> tuple[str, int]:
    current = check_level(current_level)
    new = check_level(new_level)
    return heading_span_re(current).subn(rf"<h{new}>\1</h{new}>", text)


def change_heading_level(file_path: str, current_level: int, new_level: int, root=None) -> dict:
    root = resolve_root(root)
    ensure_txt(file_path, root)
    content = read_text(file_path, root)
    updated, count = change_heading_level_in_text(content, current_level, new_level)
    if updated == content:
        return {"changed": False, "count": 0, "message": "אין מה להחליף בקובץ זה"}
    write_text(file_path, updated, root)
    return {"changed": True, "count": count, "message": "רמות הכותרות עודכנו בהצלחה!"}


def main():
    ap = argparse.ArgumentParser(description="Change the level of every heading of one level.")
    ap.add_argument("--file", required=True, help="Path to the .txt book file")
    ap.add_argument("--from-level", type=int, required=True)
    ap.add_argument("--to-level", type=int, required=True)
    ap.add_argument("--root", default=None, help="Authorized root (default: settings upload_dir)")
    args = ap.parse_args()

    try:
        result = change_heading_level(args.file, args.from_level, args.to_level, root=args.root)
    except DictaToolError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(1)
    print(result["message"])


if __name__ == "__main__":
    main()
