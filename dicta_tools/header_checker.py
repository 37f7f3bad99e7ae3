#!/usr/bin/env python3
"""Header error checker: validate heading markup of a transcribed book.

Checks (all run, all accumulated, no early exit):
  1. Tag balance per line: every <tag> closed on the same line, every
     </tag> preceded by an open <tag> of the same name.
  2. Heading purity per line: no text before or after an <h2>…<h6> span.
  3. Naming: each heading's text is a Hebrew word shape, optionally wrapped
     in caller-supplied leading / trailing characters.
  4. Sequence: the numeral of each heading (second word, or the whole text
     for one-word headings) is the previous heading's numeral + 1, or + 2 in
     paired (two-amud Talmud) mode where only every second heading counts.
     Numerals written with quote marks are reported as well.
  5. Missing levels: heading levels 2–6 that never occur.

Usage:
  python -m dicta_tools.header_checker --file book.txt \\
    [--start-chars "("] [--end-chars ".:"] [--gershayim] [--paired] [--json]
"""

from __future__ import annotations

import argparse
import json
import re
import sys
from dataclasses import asdict, dataclass, field

from dicta_tools.errors import DictaToolError, PatternError
from dicta_tools.hebrew_numerals import to_number
from dicta_tools.markup import find_headings, parsed_tags, segment_markup, skipped_count
from dicta_tools.settings import resolve_root
from dicta_tools.text_io import ensure_txt, read_text, split_lines

CHECKED_LEVELS = range(2, 7)
HEADING_WORD_CORE = r"[א-ת](?:[א-ת \-]*[א-ת])?"
QUOTE_CHARS = ("'", '"')

# Regex metacharacters escaped in caller character sets; "-" stays live so
# callers can pass ranges such as "א-ת".
_CLASS_META_RE = re.compile(r"[.*+?^${}()|\[\]\\]")


@dataclass
class HeaderCheckReport:
    unmatched_regex: list[str] = field(default_factory=list)
    unmatched_tags: list[str] = field(default_factory=list)
    opening_without_closing: list[str] = field(default_factory=list)
    closing_without_opening: list[str] = field(default_factory=list)
    heading_errors: list[str] = field(default_factory=list)
    missing_levels: list[int] = field(default_factory=list)
    skipped_fragments: int = 0       # malformed tag-like fragments ignored by check 1

    def to_dict(self) -> dict:
        return asdict(self)

    @property
    def ok(self) -> bool:
        return not (self.unmatched_regex or self.unmatched_tags or self.opening_without_closing
                    or self.closing_without_opening or self.heading_errors)

    def summary(self) -> str:
        sections = [
            ("Headings not matching the naming pattern", self.unmatched_regex),
            ("Sequence / numeral errors", self.unmatched_tags),
            ("Opening tag without closing tag", self.opening_without_closing),
            ("Closing tag without opening tag", self.closing_without_opening),
            ("Text beside a heading on the same line", self.heading_errors),
        ]
        lines = []
        for title, items in sections:
            if items:
                lines.append(f"{title} ({len(items)}):")
                for item in items:
                    lines.append(f"  ✗ {item}")
        if self.missing_levels:
            lines.append(f"⚠ Missing heading levels: {', '.join(str(n) for n in self.missing_levels)}")
        if self.skipped_fragments:
            lines.append(f"⚠ Malformed tag fragments skipped: {self.skipped_fragments}")
        if self.ok:
            lines.append("✓ No heading errors")
        return "\n".join(lines)


def _escape_class(chars: str) -> str:
    return _CLASS_META_RE.sub(lambda m: "\\" + m.group(0), chars)


def build_heading_pattern(re_start: str = "", re_end: str = "") -> re.Pattern:
    """Naming pattern for heading text; raises PatternError for a bad character set."""
    pattern = ""
    if re_start:
        pattern += f"[{_escape_class(re_start)}]*"
    pattern += HEADING_WORD_CORE
    if re_end:
        pattern += f"[{_escape_class(re_end)}]*"
    try:
        return re.compile(pattern)
    except re.error as e:
        raise PatternError(f"Invalid character set (start={re_start!r}, end={re_end!r}): {e}") from e


# ─── Per-line checks ────────────────────────────────────────────────────────

def check_tags(line: str, line_number: int, report: HeaderCheckReport) -> None:
    segments = segment_markup(line)
    report.skipped_fragments += skipped_count(segments)
    open_stack: list[str] = []
    for tag in parsed_tags(segments):
        if not tag.closing:
            open_stack.append(tag.name)
            continue
        for i in range(len(open_stack) - 1, -1, -1):
            if open_stack[i] == tag.name:
                del open_stack[i]
                break
        else:
            report.closing_without_opening.append(f"שורה {line_number}: </{tag.name}> || {line.strip()}")
    for name in open_stack:
        report.opening_without_closing.append(f"שורה {line_number}: <{name}> || {line.strip()}")


def check_heading_purity(line: str, line_number: int, report: HeaderCheckReport) -> None:
    for level in CHECKED_LEVELS:
        m = re.search(rf"<h{level}>.*?</h{level}>", line)
        if m and (line[:m.start()].strip() or line[m.end():].strip()):
            report.heading_errors.append(f"שורה {line_number}: {line.strip()}")


# ─── Document-wide checks ───────────────────────────────────────────────────

def numeral_part(title: str) -> str:
    parts = title.split(" ")
    return parts[1] if len(parts) > 1 else title


def check_level_sequence(
    titles: list[str],
    pattern: re.Pattern,
    gershayim: bool,
    step: int,
    report: HeaderCheckReport,
) -> None:
    visited = titles[::step]
    for idx, current in enumerate(visited):
        if not current:
            continue
        if not pattern.fullmatch(current):
            if not (gershayim and any(q in current for q in QUOTE_CHARS)):
                report.unmatched_regex.append(current)

        numeral = numeral_part(current)
        if any(q in numeral for q in QUOTE_CHARS):
            report.unmatched_tags.append(numeral)

        if idx + 1 < len(visited):
            nxt = visited[idx + 1]
            if nxt and to_number(numeral) + step != to_number(numeral_part(nxt)):
                report.unmatched_tags.append(f"כותרת נוכחית - {current} || כותרת הבאה - {nxt}")


def check_headers_in_text(
    text: str,
    re_start: str = "",
    re_end: str = "",
    gershayim: bool = False,
    is_shas: bool = False,
) -> HeaderCheckReport:
    pattern = build_heading_pattern(re_start, re_end)
    report = HeaderCheckReport()

    for idx, line in enumerate(split_lines(text), start=1):
        check_tags(line, idx, report)
        check_heading_purity(line, idx, report)

    step = 2 if is_shas else 1
    for level in CHECKED_LEVELS:
        titles = find_headings(text, level)
        if not titles:
            report.missing_levels.append(level)
            continue
        check_level_sequence(titles, pattern, gershayim, step, report)

    return report


def header_error_checker(
    file_path: str,
    re_start: str = "",
    re_end: str = "",
    gershayim: bool = False,
    is_shas: bool = False,
    root=None,
) -> dict:
    root = resolve_root(root)
    ensure_txt(file_path, root)
    # Compile first so a bad pattern aborts before the file is read
    build_heading_pattern(re_start, re_end)
    text = read_text(file_path, root)
    return check_headers_in_text(text, re_start, re_end, gershayim, is_shas).to_dict()


def main():
    ap = argparse.ArgumentParser(description="Check heading markup of a book file.")
    ap.add_argument("--file", required=True, help="Path to the .txt book file")
    ap.add_argument("--start-chars", default="", help="Characters allowed before the heading word")
    ap.add_argument("--end-chars", default="", help="Characters allowed after the heading word")
    ap.add_argument("--gershayim", action="store_true",
                    help="Do not report naming mismatches for headings containing quote marks")
    ap.add_argument("--paired", action="store_true",
                    help="Two headings per page (Talmud amud numbering): check every second heading, step 2")
    ap.add_argument("--json", action="store_true", help="Print the report as JSON")
    ap.add_argument("--root", default=None, help="Authorized root (default: settings upload_dir)")
    args = ap.parse_args()

    try:
        result = header_error_checker(
            args.file, args.start_chars, args.end_chars, args.gershayim, args.paired, root=args.root,
        )
    except DictaToolError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(1)

    if args.json:
        print(json.dumps(result, ensure_ascii=False, indent=2))
    else:
        print(HeaderCheckReport(**result).summary())


if __name__ == "__main__":
    main()
