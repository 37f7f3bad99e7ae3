#!/usr/bin/env python3
"""Whitespace / quote cleanup and sentence-ending fixes for book files.

clean   Apply any combination of the CLEANER_OPTIONS below. Trailing
        whitespace at the end of the file is always trimmed.
punct   For long prose lines (more than 10 words, not headings): add a
        period or colon at the end and/or bold the first word.

Usage:
  python -m dicta_tools.text_cleaner clean --file book.txt --option remove_empty_lines --option normalize_quotes
  python -m dicta_tools.text_cleaner punct --file book.txt --ending "הוסף נקודה" [--emphasize-start]
"""

from __future__ import annotations

import argparse
import re
import sys

from dicta_tools.errors import DictaToolError, InputError
from dicta_tools.settings import resolve_root
from dicta_tools.text_io import ensure_txt, read_lines, read_text, write_lines, write_text

CLEANER_OPTIONS = [
    "remove_empty_lines",
    "remove_double_spaces",
    "remove_spaces_before",
    "remove_spaces_after",
    "remove_spaces_around_newlines",
    "replace_double_quotes",
    "normalize_quotes",
]

ADD_PERIOD = "הוסף נקודה"
ADD_COLON = "הוסף נקודותיים"
NO_CHANGE = "ללא שינוי"
ENDING_ALIASES = {
    "period": ADD_PERIOD,
    "colon": ADD_COLON,
    "none": NO_CHANGE,
    ADD_PERIOD: ADD_PERIOD,
    ADD_COLON: ADD_COLON,
    NO_CHANGE: NO_CHANGE,
}

MIN_PROSE_WORDS = 10
CLOSING_FORMAT_TAGS = ("</small>", "</big>", "</b>")
OPENING_FORMAT_TAGS = ("<b>", "<small>", "<big>", "<h2>", "<h3>", "<h4>", "<h5>", "<h6>")


def clean_text(text: str, options: dict[str, bool]) -> str:
    unknown = set(k for k, v in options.items() if v) - set(CLEANER_OPTIONS)
    if unknown:
        raise InputError(f"Unknown cleaner options: {sorted(unknown)}")

    if options.get("remove_empty_lines"):
        text = re.sub(r"\n\s*\n", "\n", text)
    if options.get("remove_double_spaces"):
        text = re.sub(r" +", " ", text)
    if options.get("remove_spaces_before"):
        text = re.sub(r"[ \t]+([\)\],\.:])", r"\1", text)
    if options.get("remove_spaces_after"):
        text = re.sub(r"(\s|^)([\[\(])(\s+)", r"\1\2", text, flags=re.MULTILINE)
    if options.get("remove_spaces_around_newlines"):
        text = re.sub(r"\s*\n\s*", "\n", text)
    if options.get("replace_double_quotes"):
        for pair in ("''", "``", "’’", "׳׳", "‘‘"):
            text = text.replace(pair, '"')
    if options.get("normalize_quotes"):
        text = re.sub(r"[“”„]", '"', text)
        text = re.sub(r"[‘’`]", "'", text)
        text = text.replace("׳", "'")

    return re.sub(r"\s+$", "", text)


def text_cleaner(file_path: str, options: dict[str, bool], root=None) -> dict:
    root = resolve_root(root)
    ensure_txt(file_path, root)
    original = read_text(file_path, root)
    cleaned = clean_text(original, options)
    if cleaned == original:
        return {"changed": False}
    write_text(file_path, cleaned, root)
    return {"changed": True}


# ─── Endings and emphasis ───────────────────────────────────────────────────

def _is_heading_line(line: str) -> bool:
    return any(line.startswith(f"<h{n}>") for n in range(2, 10))


def emphasize_and_punctuate_lines(lines: list[str], add_ending: str, emphasize_start: bool) -> tuple[list[str], bool]:
    if add_ending not in ENDING_ALIASES:
        raise InputError(f"Unknown ending option: {add_ending!r}")
    ending_mode = ENDING_ALIASES[add_ending]
    ending = "." if ending_mode == ADD_PERIOD else ":"

    updated = list(lines)
    changed = False
    for i, raw in enumerate(updated):
        line = raw.rstrip("\r")
        words = line.split()
        if len(words) <= MIN_PROSE_WORDS or _is_heading_line(line):
            continue

        if ending_mode != NO_CHANGE:
            if line.endswith(","):
                line = re.sub(r",\s*$", "", line) + ending
                changed = True
            elif not re.search(r"[.!?:]$", line) and not line.endswith(CLOSING_FORMAT_TAGS):
                line += ending
                changed = True

        if emphasize_start:
            first = words[0]
            already_tagged = any(tag in first for tag in OPENING_FORMAT_TAGS)
            if not already_tagged and not (first.startswith("<") and first.endswith(">")):
                parts = line.split(None, 1)
                rest = parts[1] if len(parts) > 1 else ""
                line = f"<b>{first}</b> {rest}"
                changed = True

        updated[i] = line
    return updated, changed


def emphasize_and_punctuate(file_path: str, add_ending: str, emphasize_start: bool, root=None) -> dict:
    root = resolve_root(root)
    ensure_txt(file_path, root)
    lines = read_lines(file_path, root)
    updated, changed = emphasize_and_punctuate_lines(lines, add_ending, emphasize_start)
    if changed:
        write_lines(file_path, updated, root)
    return {"changed": changed}


def main():
    ap = argparse.ArgumentParser(description="Clean up whitespace, quotes and line endings in a book file.")
    sub = ap.add_subparsers(dest="command", required=True)

    c = sub.add_parser("clean", help="Whitespace and quote cleanup")
    c.add_argument("--file", required=True, help="Path to the .txt book file")
    c.add_argument("--option", action="append", default=[], choices=CLEANER_OPTIONS,
                   help="Cleanup to apply (repeatable)")
    c.add_argument("--root", default=None, help="Authorized root (default: settings upload_dir)")

    p = sub.add_parser("punct", help="Add endings / bold first word on long lines")
    p.add_argument("--file", required=True)
    p.add_argument("--ending", default=ADD_PERIOD,
                   help=f"'{ADD_PERIOD}' / '{ADD_COLON}' / '{NO_CHANGE}' (or period / colon / none)")
    p.add_argument("--emphasize-start", action="store_true")
    p.add_argument("--root", default=None)

    args = ap.parse_args()

    try:
        if args.command == "clean":
            result = text_cleaner(args.file, {opt: True for opt in args.option}, root=args.root)
        else:
            result = emphasize_and_punctuate(args.file, args.ending, args.emphasize_start, root=args.root)
    except DictaToolError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(1)
    print("Changed" if result["changed"] else "Nothing to change")


if __name__ == "__main__":
    main()
