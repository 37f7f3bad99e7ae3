#!/usr/bin/env python3
"""Insert numbered headings into a transcribed book.

Two generators:

  words   A marker word followed by a numeral ("פרק ג", "דף יב") becomes
          <hN>פרק ג</hN>; the rest of the line moves to its own line. A marker
          alone on its line pairs with the first word of the next line. When
          the marker is "דף", amud markers are then folded into the new daf
          headings (see page_headers.add_page_number_in_lines).
  letter  A line whose first word is itself a numeral between a start string
          and an end suffix (e.g. "א)" or "<b>ב.</b>") becomes <hN>word</hN>.

The first two lines (words) or first line (letter) hold the book title and
are never touched.

Usage:
  python -m dicta_tools.create_headers words --file book.txt --marker פרק --end 150 --level 2
  python -m dicta_tools.create_headers letter --file book.txt --end 999 --level 3 \\
      [--start ""] [--end-suffix ")"] [--ignore "<big> </big>"] [--remove ", : ( )"] [--no-bold-only]
"""

from __future__ import annotations

import argparse
import sys

from dicta_tools.errors import DictaToolError, InputError
from dicta_tools.hebrew_numerals import MARKER_STRIP_TOKENS, is_gematria, strip_tokens
from dicta_tools.markup import has_heading, heading
from dicta_tools.page_headers import PAGE_WORD, PUNCTUATION_MODE, add_page_number_in_lines
from dicta_tools.settings import resolve_root
from dicta_tools.text_io import ensure_txt, read_lines, write_lines

FRONT_MATTER_LINES = 2
BOLD_TAGS = ["<b>", "</b>"]

# Defaults offered by the editor UI for the letter generator
DEFAULT_IGNORE = ["<big>", "</big>", "<i>", "</i>", "<small>", "</small>", "<span>", "</span>",
                  "<br>", "</br>", "<p>", "</p>"]
DEFAULT_REMOVE = [",", ":", '"', "'", ".", "(", ")", "[", "]", "{", "}"]


def check_level(level: int) -> int:
    if not 1 <= int(level) <= 6:
        raise InputError(f"Heading level must be between 1 and 6, got {level}")
    return int(level)


def _clean(word: str) -> str:
    return strip_tokens(word, MARKER_STRIP_TOKENS)


# ─── Marker word + numeral ──────────────────────────────────────────────────

def create_headers_in_lines(lines: list[str], find_word: str, end: int, level: int) -> tuple[list[str], int]:
    """Wrap "<marker> <numeral>" line openings in headings.

    Numerals up to and including end are accepted. Returns the new lines and
    the number of headings created (before any daf/amud merge).
    """
    level = check_level(level)
    find_clean = _clean(find_word).strip()
    if not find_clean:
        raise InputError("A marker word is required")
    ceiling = end + 1

    updated = list(lines[:FRONT_MATTER_LINES])
    count = 0
    i = FRONT_MATTER_LINES
    while i < len(lines):
        line = lines[i]
        words = line.split()

        if len(words) >= 2 and _clean(words[0]) == find_clean and is_gematria(_clean(words[1]), ceiling):
            updated.append(heading(level, f"{_clean(words[0])} {_clean(words[1])}"))
            if words[2:]:
                updated.append(" ".join(words[2:]))
            count += 1

        elif len(words) == 1 and _clean(words[0]) == find_clean and i + 1 < len(lines):
            next_words = lines[i + 1].split()
            if next_words and is_gematria(_clean(next_words[0]), ceiling):
                updated.append(heading(level, f"{_clean(words[0])} {_clean(next_words[0])}"))
                if next_words[1:]:
                    updated.append(" ".join(next_words[1:]))
                count += 1
                i += 1
            else:
                updated.append(line)

        else:
            updated.append(line)
        i += 1

    return updated, count


def create_headers(file_path: str, find_word: str, end: int, level_num: int, root=None) -> dict:
    root = resolve_root(root)
    ensure_txt(file_path, root)
    lines = read_lines(file_path, root)
    updated, count = create_headers_in_lines(lines, find_word, end, level_num)
    merged = 0
    if find_word == PAGE_WORD:
        updated, merged = add_page_number_in_lines(updated, PUNCTUATION_MODE)
    if count or merged:
        write_lines(file_path, updated, root)
    return {"found": count > 0, "count": count}


# ─── Single-letter headings ─────────────────────────────────────────────────

def create_single_letter_headers_in_lines(
    lines: list[str],
    end_suffix: str,
    end: int,
    level: int,
    ignore: list[str],
    start: str,
    remove: list[str],
    bold_only: bool,
) -> tuple[list[str], int]:
    """Turn lines opening with a bare numeral word into headings.

    With bold_only the word must be wrapped in <b>…</b>; otherwise bold tags
    are ignored along with the ignore list when testing start/end.
    """
    level = check_level(level)
    end_suffix = end_suffix or ""
    start = start or ""
    ignore = list(ignore or [])
    remove = list(remove or [])

    if bold_only:
        end_suffix += "</b>"
        start = "<b>" + start
    else:
        ignore = ignore + BOLD_TAGS

    updated = list(lines[:1])
    count = 0
    for line in lines[1:]:
        words = line.split()
        if not words or has_heading(line):
            updated.append(line)
            continue
        first = words[0]
        visible = strip_tokens(first, ignore)
        if visible.endswith(end_suffix) and is_gematria(first, end + 1) and visible.startswith(start):
            updated.append(heading(level, strip_tokens(first, remove)))
            if words[1:]:
                updated.append(" ".join(words[1:]))
            count += 1
        else:
            updated.append(line)
    return updated, count


def create_single_letter_headers(
    file_path: str,
    end_suffix: str,
    end: int,
    level_num: int,
    ignore: list[str],
    start: str,
    remove: list[str],
    bold_only: bool,
    root=None,
) -> dict:
    root = resolve_root(root)
    ensure_txt(file_path, root)
    lines = read_lines(file_path, root)
    updated, count = create_single_letter_headers_in_lines(
        lines, end_suffix, end, level_num, ignore, start, remove, bold_only,
    )
    if count:
        write_lines(file_path, updated, root)
    return {"count": count}


# ─── CLI ─────────────────────────────────────────────────────────────────────

def main():
    ap = argparse.ArgumentParser(description="Insert numbered headings into a book file.")
    sub = ap.add_subparsers(dest="command", required=True)

    w = sub.add_parser("words", help="Marker word + numeral headings")
    w.add_argument("--file", required=True, help="Path to the .txt book file")
    w.add_argument("--marker", required=True, help="Marker word, e.g. פרק / סימן / דף")
    w.add_argument("--end", type=int, required=True, help="Largest numeral to accept")
    w.add_argument("--level", type=int, default=2, help="Heading level (default 2)")
    w.add_argument("--root", default=None, help="Authorized root (default: settings upload_dir)")

    s = sub.add_parser("letter", help="Single numeral-word headings")
    s.add_argument("--file", required=True)
    s.add_argument("--end", type=int, default=999)
    s.add_argument("--level", type=int, default=3)
    s.add_argument("--start", default="", help="Required opening string")
    s.add_argument("--end-suffix", default="", help="Required closing string")
    s.add_argument("--ignore", default=" ".join(DEFAULT_IGNORE),
                   help="Space-separated tags ignored when testing start/end")
    s.add_argument("--remove", default=" ".join(DEFAULT_REMOVE),
                   help="Space-separated strings removed from the heading text")
    s.add_argument("--no-bold-only", action="store_true",
                   help="Accept words that are not wrapped in <b>…</b>")
    s.add_argument("--root", default=None)

    args = ap.parse_args()

    try:
        if args.command == "words":
            result = create_headers(args.file, args.marker, args.end, args.level, root=args.root)
            if result["found"]:
                print(f"Created {result['count']} headings")
            else:
                print("No headings found")
        else:
            result = create_single_letter_headers(
                args.file, args.end_suffix, args.end, args.level,
                args.ignore.split(), args.start, args.remove.split(),
                not args.no_bold_only, root=args.root,
            )
            print(f"Created {result['count']} headings")
    except DictaToolError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
