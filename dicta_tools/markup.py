"""Markup helpers shared by the heading generators and the header checker.

- tag_agnostic_pattern(): regex source for a literal phrase that still matches
  when formatting tags are interleaved between its characters
  (e.g. <b>ע"</b>ב still matches ע"ב).
- segment_markup(): lenient left-to-right tag tokenizer. Fragments that look
  like the start of a tag but are not a well-formed <name> / </name> are
  returned as Skipped and counted, never raised.
- heading helpers for <hN>…</hN> spans.
"""

from __future__ import annotations

import html as htmlmod
import re
from dataclasses import dataclass
from typing import Union

# Zero or more tags, each optionally followed by whitespace
ANY_TAGS = r"(?:<[^>]+>\s*)*"
ANY_TAGS_RE = re.compile(ANY_TAGS)

# Quote characters that may trail an abbreviation (ע"ב, ע'ב, ע''ב)
DEFAULT_TRAILING = "['\"']*"

ANY_HEADING_RE = re.compile(r"<h\d>.*?</h\d>", re.IGNORECASE)
HEADING_SPAN_RE = re.compile(r"<h([1-9])>(.*?)</h\1>")

_TOKEN_RE = re.compile(r"<(/?)(\w+)>|<[^<>]*>?")
_INNER_TAG_RE = re.compile(r"<[^>]+>")


# ─── Tag-agnostic literal matching ──────────────────────────────────────────

def tag_agnostic_pattern(phrase: str, trailing: str = DEFAULT_TRAILING) -> str:
    """Regex source matching phrase with any tags before, between and after its characters.

    trailing is an optional regex appended after the phrase (followed by
    another run of tags); pass "" to disable it.
    """
    pattern = "".join(ANY_TAGS + re.escape(ch) for ch in phrase)
    pattern += ANY_TAGS
    if trailing:
        pattern += trailing + ANY_TAGS
    return pattern


def compile_tag_agnostic(phrase: str, trailing: str = DEFAULT_TRAILING, flags: int = 0) -> re.Pattern:
    return re.compile(tag_agnostic_pattern(phrase, trailing), flags)


def alternation(patterns: list[str], name: str | None = None) -> str:
    """Join regex sources as alternatives inside one (optionally named) group."""
    body = "|".join(patterns)
    if name:
        return f"(?P<{name}>{body})"
    return f"(?:{body})"


def strip_any_tags(text: str) -> str:
    return ANY_TAGS_RE.sub("", text)


# ─── Lenient segmentation ───────────────────────────────────────────────────

@dataclass(frozen=True)
class Tag:
    name: str
    closing: bool
    position: int


@dataclass(frozen=True)
class Parsed:
    value: Tag


@dataclass(frozen=True)
class Skipped:
    fragment: str
    position: int


Segment = Union[Parsed, Skipped]


def segment_markup(line: str) -> list[Segment]:
    """Tokenize tag-like fragments of a line in order of position."""
    segments: list[Segment] = []
    for m in _TOKEN_RE.finditer(line):
        if m.group(2) is not None:
            segments.append(Parsed(Tag(name=m.group(2), closing=bool(m.group(1)), position=m.start())))
        else:
            segments.append(Skipped(fragment=m.group(0), position=m.start()))
    return segments


def parsed_tags(segments: list[Segment]) -> list[Tag]:
    return [s.value for s in segments if isinstance(s, Parsed)]


def skipped_count(segments: list[Segment]) -> int:
    return sum(1 for s in segments if isinstance(s, Skipped))


# ─── Headings ───────────────────────────────────────────────────────────────

def heading(level: int | str, content: str) -> str:
    return f"<h{level}>{content}</h{level}>"


def has_heading(line: str) -> bool:
    return ANY_HEADING_RE.search(line) is not None


def heading_text(inner: str) -> str:
    """Display text of a heading: inner markup dropped, entities decoded."""
    return htmlmod.unescape(_INNER_TAG_RE.sub("", inner))


def heading_span_re(level: int) -> re.Pattern:
    """<hN>…</hN> spans, possibly across lines; a span never contains another <hN> opener."""
    return re.compile(rf"<h{level}>((?:(?!<h{level}>).)*?)</h{level}>", re.DOTALL)


def find_headings(text: str, level: int) -> list[str]:
    """Display texts of every <hN> span in document order."""
    return [heading_text(m.group(1)) for m in heading_span_re(level).finditer(text)]
