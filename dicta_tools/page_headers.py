#!/usr/bin/env python3
"""Page (daf) and page-side (amud) heading tools.

Three operations on Talmud-style page markup:

  page-b     Turn a line opening with "עמוד ב" / ע"ב / ע''ב / ע'ב (optionally
             preceded by "שם" and by גמרא / בגמרא / גמ' / בגמ') into a
             <hN>עמוד ב</hN> heading. Formatting tags between the letters of
             these phrases do not block recognition.
  add-page   Merge an amud marker on the line after a <hN>דף X</hN> heading
             into the heading: "." / ":" for side A / B, or a ע"א / ע"ב suffix.
  replace-b  Rewrite each <hN>עמוד ב</hN> heading using the preceding daf
             heading: "דף X:" or "דף X ע"ב".

Usage:
  python -m dicta_tools.page_headers page-b  --file book.txt --level 3
  python -m dicta_tools.page_headers add-page --file book.txt --mode "נקודה ונקודותיים"
  python -m dicta_tools.page_headers replace-b --file book.txt --mode "נקודותיים"
"""

from __future__ import annotations

import argparse
import functools
import re
import sys

from dicta_tools.errors import DictaToolError, InputError
from dicta_tools.markup import (
    ANY_TAGS,
    HEADING_SPAN_RE,
    alternation,
    has_heading,
    heading,
    strip_any_tags,
    tag_agnostic_pattern,
)
from dicta_tools.settings import resolve_root
from dicta_tools.text_io import ensure_txt, read_lines, read_text, write_lines, write_text

# ─── Vocabulary ─────────────────────────────────────────────────────────────

PAGE_WORD = "דף"
PAGE_B_TITLE = "עמוד ב"
SHEM_WORD = "שם"
GMARAH_VARIANTS = ["גמרא", "בגמרא", "גמ'", "בגמ'"]
PAGE_B_VARIANTS = ["עמוד ב", 'ע"ב', "ע''ב", "ע'ב"]

# add_page_number_to_heading modes
PUNCTUATION_MODE = "נקודה ונקודותיים"   # "." for side A, ":" for side B
AMUD_SUFFIX_MODE = 'ע"א וע"ב'           # append ע"א / ע"ב

# replace_page_b_headers styles
COLON_STYLE = "נקודותיים"
AMUD_B_STYLE = 'ע"ב'

MODE_ALIASES = {
    "punctuation": PUNCTUATION_MODE,
    "amud": AMUD_SUFFIX_MODE,
    PUNCTUATION_MODE: PUNCTUATION_MODE,
    AMUD_SUFFIX_MODE: AMUD_SUFFIX_MODE,
}

STYLE_ALIASES = {
    "colon": COLON_STYLE,
    "amud": AMUD_B_STYLE,
    COLON_STYLE: COLON_STYLE,
    AMUD_B_STYLE: AMUD_B_STYLE,
}

PAGE_HEADING_RE = re.compile(r"<h([2-9])>(דף \S+)</h\1>")
PAGE_TITLE_RE = re.compile(r"^דף \S+\.?")

# First amud marker on the line that follows a daf heading
AMUD_MARKER_RE = re.compile(
    r"(<[a-z]+>)?(ע[\"']+?[אב]|עמוד [אב])[.,:()\[\]'\"״׳]?(</[a-z]+>)?\s?"
)

_TRAILING_PERIODS_RE = re.compile(r"\.+$")
_AMUD_A_SUFFIX_RE = re.compile(r"( ע\"א| עמוד א)")


def normalize_mode(mode: str) -> str:
    if mode not in MODE_ALIASES:
        raise InputError(f"Unknown page-number mode: {mode!r}")
    return MODE_ALIASES[mode]


def normalize_style(style: str) -> str:
    if style not in STYLE_ALIASES:
        raise InputError(f"Unknown page-b replacement style: {style!r}")
    return STYLE_ALIASES[style]


# ─── Page-side (עמוד ב) headings ────────────────────────────────────────────

@functools.lru_cache(maxsize=1)
def page_b_pattern() -> re.Pattern:
    """Composed line pattern: [שם] [gmarah word] <page-b phrase> <rest>."""
    shem = tag_agnostic_pattern(SHEM_WORD, "")
    gmarah = alternation([tag_agnostic_pattern(w, "") for w in GMARAH_VARIANTS], name="gmarah")
    page_b = alternation(
        [rf"(?<!\w){tag_agnostic_pattern(w)}(?!\w)" for w in PAGE_B_VARIANTS],
        name="ab",
    )
    non_word = r"(?:[^\w<>]|$)"
    pattern = (
        r"^\s*" + ANY_TAGS
        + rf"(?P<shem>{shem}\s*)?"
        + rf"(?:{gmarah}\s*)?"
        + page_b + non_word
        + r"(?P<rest>.*)"
    )
    return re.compile(pattern, re.IGNORECASE)


def page_b_lines(line: str, level: int) -> list[str] | None:
    """Replacement lines for one source line, or None when it does not match."""
    if has_heading(line):
        return None
    m = page_b_pattern().match(line)
    if not m:
        return None

    out = [heading(level, PAGE_B_TITLE)]
    rest = (m.group("rest") or "").lstrip()
    gmarah = strip_any_tags(m.group("gmarah") or "").strip()
    if gmarah:
        out.append(f"{gmarah} {rest}" if rest else gmarah)
    elif rest:
        out.append(rest)
    return out


def create_page_b_headers_in_lines(lines: list[str], level: int) -> tuple[list[str], int]:
    """Each converted line becomes its block plus one blank separator line.

    The separator is dropped when the next source line is already blank.
    """
    updated: list[str] = []
    count = 0
    for i, line in enumerate(lines):
        replacement = page_b_lines(line, level)
        if replacement is None:
            updated.append(line)
            continue
        updated.extend(replacement)
        count += 1
        if i + 1 >= len(lines) or lines[i + 1].strip():
            updated.append("")
    return updated, count


def create_page_b_headers(file_path: str, header_level: int, root=None) -> dict:
    root = resolve_root(root)
    ensure_txt(file_path, root)
    lines = read_lines(file_path, root)
    updated, count = create_page_b_headers_in_lines(lines, header_level)
    if count:
        write_lines(file_path, updated, root)
    return {"count": count}


# ─── Merge amud markers into daf headings ───────────────────────────────────

def _merged_title(title: str, marker: str, mode: str) -> str:
    side_a = "א" in marker
    base = _TRAILING_PERIODS_RE.sub("", title)
    if mode == PUNCTUATION_MODE:
        return base + ("." if side_a else ":")
    return base + (' ע"א' if side_a else ' ע"ב')


def add_page_number_in_lines(lines: list[str], replace_with: str) -> tuple[list[str], int]:
    """Fold the amud marker that follows each daf heading into the heading.

    Returns the new lines and the number of headings rewritten.
    """
    mode = normalize_mode(replace_with)
    updated: list[str] = []
    merged = 0
    i = 0
    while i < len(lines):
        line = lines[i]
        m = PAGE_HEADING_RE.search(line)
        if m and i + 1 < len(lines):
            next_line = lines[i + 1].strip()
            marker = AMUD_MARKER_RE.search(next_line)
            if marker:
                level, title = m.group(1), m.group(2)
                new_heading = heading(level, _merged_title(title, marker.group(2), mode))
                updated.append(line[:m.start()] + new_heading + line[m.end():])
                remainder = (next_line[:marker.start()] + next_line[marker.end():]).strip()
                if remainder:
                    updated.append(remainder)
                merged += 1
                i += 2
                continue
        updated.append(line)
        i += 1
    return updated, merged


def add_page_number_to_heading(file_path: str, replace_with: str, root=None) -> dict:
    root = resolve_root(root)
    ensure_txt(file_path, root)
    lines = read_lines(file_path, root)
    updated, merged = add_page_number_in_lines(lines, replace_with)
    if merged:
        write_lines(file_path, updated, root)
        return {"changed": True, "count": merged, "message": "ההחלפה הושלמה בהצלחה!"}
    return {"changed": False, "count": 0, "message": "אין מה להחליף בקובץ זה"}


# ─── Rewrite עמוד ב headings from the preceding daf heading ─────────────────

def replace_page_b_in_text(text: str, replace_type: str) -> tuple[str, int]:
    style = normalize_style(replace_type)
    previous_title = ""
    previous_level = ""
    replacements = 0

    def _replace(m: re.Match) -> str:
        nonlocal previous_title, previous_level, replacements
        level, title = m.group(1), m.group(2)
        if PAGE_TITLE_RE.match(title):
            previous_title = title.strip()
            previous_level = level
            return m.group(0)
        if title != PAGE_B_TITLE or not previous_title:
            return m.group(0)
        replacements += 1
        if style == COLON_STYLE:
            return heading(previous_level, _TRAILING_PERIODS_RE.sub("", previous_title) + ":")
        base = _AMUD_A_SUFFIX_RE.sub("", previous_title, count=1)
        return heading(previous_level, _TRAILING_PERIODS_RE.sub("", base) + ' ע"ב')

    updated = HEADING_SPAN_RE.sub(_replace, text)
    return updated, replacements


def replace_page_b_headers(file_path: str, replace_type: str, root=None) -> dict:
    root = resolve_root(root)
    ensure_txt(file_path, root)
    content = read_text(file_path, root)
    updated, count = replace_page_b_in_text(content, replace_type)
    if count:
        write_text(file_path, updated, root)
    return {"count": count}


# ─── CLI ─────────────────────────────────────────────────────────────────────

def main():
    ap = argparse.ArgumentParser(description="Daf / amud heading tools.")
    sub = ap.add_subparsers(dest="command", required=True)

    pb = sub.add_parser("page-b", help="Create <hN>עמוד ב</hN> headings")
    pb.add_argument("--file", required=True, help="Path to the .txt book file")
    pb.add_argument("--level", type=int, default=3, help="Heading level (default 3)")
    pb.add_argument("--root", default=None, help="Authorized root (default: settings upload_dir)")

    apn = sub.add_parser("add-page", help="Merge amud markers into daf headings")
    apn.add_argument("--file", required=True)
    apn.add_argument("--mode", default=PUNCTUATION_MODE,
                     help=f"'{PUNCTUATION_MODE}' (or 'punctuation') / '{AMUD_SUFFIX_MODE}' (or 'amud')")
    apn.add_argument("--root", default=None)

    rb = sub.add_parser("replace-b", help="Rewrite עמוד ב headings from the preceding daf heading")
    rb.add_argument("--file", required=True)
    rb.add_argument("--mode", default=COLON_STYLE,
                    help=f"'{COLON_STYLE}' (or 'colon') / '{AMUD_B_STYLE}' (or 'amud')")
    rb.add_argument("--root", default=None)

    args = ap.parse_args()

    try:
        if args.command == "page-b":
            result = create_page_b_headers(args.file, args.level, root=args.root)
            print(f"Created {result['count']} page-b headings")
        elif args.command == "add-page":
            result = add_page_number_to_heading(args.file, args.mode, root=args.root)
            print(result["message"])
        else:
            result = replace_page_b_headers(args.file, args.mode, root=args.root)
            print(f"Replaced {result['count']} page-b headings")
    except DictaToolError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
