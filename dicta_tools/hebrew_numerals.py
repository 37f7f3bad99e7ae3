"""Hebrew letter numerals (gematria) and heading-marker recognition.

to_hebrew / to_number convert between integers and letter numerals.
is_gematria decides whether a cleaned token can serve as the numeral of a
heading. It is a membership test against a closed candidate set, not a
parser: many legitimate markers (bare final letters for page sides, ordinal
words, a few book-specific compounds) are not well-formed numerals.
"""

from __future__ import annotations

import functools
import re

# ─── Letter values ──────────────────────────────────────────────────────────

FINAL_MAP = {
    "ך": "כ",
    "ם": "מ",
    "ן": "נ",
    "ף": "פ",
    "ץ": "צ",
}

LETTER_VALUES = {
    "א": 1, "ב": 2, "ג": 3, "ד": 4, "ה": 5, "ו": 6, "ז": 7, "ח": 8, "ט": 9,
    "י": 10, "כ": 20, "ל": 30, "מ": 40, "נ": 50, "ס": 60, "ע": 70, "פ": 80, "צ": 90,
    "ק": 100, "ר": 200, "ש": 300, "ת": 400,
}

HUNDREDS = [(400, "ת"), (300, "ש"), (200, "ר"), (100, "ק")]
TENS = [(90, "צ"), (80, "פ"), (70, "ע"), (60, "ס"), (50, "נ"), (40, "מ"), (30, "ל"), (20, "כ"), (10, "י")]
ONES = [(9, "ט"), (8, "ח"), (7, "ז"), (6, "ו"), (5, "ה"), (4, "ד"), (3, "ג"), (2, "ב"), (1, "א")]

# 15 and 16 would otherwise spell a divine name (יה / יו)
SPECIAL_REMAINDERS = {15: "טו", 16: "טז"}

_QUOTES_RE = re.compile(r"[\"׳״]")
_NON_HEBREW_RE = re.compile(r"[^א-ת]")

# ─── Marker vocabulary ──────────────────────────────────────────────────────

# Markup and punctuation removed from a token before the membership test
MARKER_STRIP_TOKENS = [
    "<b>", "</b>", "<big>", "</big>",
    ":", '"', ",", ";", "[", "]", "(", ")", "'", ".", "״", "‚",
]

# Hundreds (and hundreds + 15/16) that combine with a final-letter suffix
NUMERAL_PREFIXES = [
    "ק", "ר", "ש", "ת", "תק", "תר", "תש", "תת", "תתק",
    "יה", "יו", "קיה", "קיו", "ריה", "ריו", "שיה", "שיו", "תיה", "תיו",
    "תקיה", "תקיו", "תריה", "תריו", "תשיה", "תשיו", "תתיה", "תתיו", "תתקיה", "תתקיו",
]

FINAL_LETTERS = ["ם", "ן", "ץ", "ף", "ך"]

ORDINAL_WORDS = [
    "ראשון", "שני", "שלישי", "רביעי", "חמישי", "שישי", "ששי", "שביעי", "שמיני", "תשיעי", "עשירי",
    # spelled-out letter names and compounds used as markers in specific books
    "יוד", "למד", "נון", "דש", "חי", "טל", "שדמ", "ער", "שדם", "תשדם", "תשדמ", "ערב", "ערה", "עדר", "רחצ",
]


def to_hebrew(num: int) -> str:
    """Encode num as a letter numeral, largest letters first."""
    if num <= 0:
        return ""
    remaining = num
    result = ""

    for value, letter in HUNDREDS:
        while remaining >= value:
            result += letter
            remaining -= value

    if remaining in SPECIAL_REMAINDERS:
        result += SPECIAL_REMAINDERS[remaining]
        remaining = 0

    for value, letter in TENS:
        while remaining >= value:
            result += letter
            remaining -= value

    for value, letter in ONES:
        while remaining >= value:
            result += letter
            remaining -= value

    return result


def to_number(text: str | None) -> int:
    """Sum the letter values of text; quotes and non-Hebrew characters are ignored."""
    if not text:
        return 0
    clean = _NON_HEBREW_RE.sub("", _QUOTES_RE.sub("", text))
    return sum(LETTER_VALUES.get(FINAL_MAP.get(ch, ch), 0) for ch in clean)


def strip_tokens(text: str, tokens: list[str]) -> str:
    """Remove every literal occurrence of each token, in list order."""
    for token in tokens:
        text = text.replace(token, "")
    return text


@functools.lru_cache(maxsize=64)
def marker_candidates(ceiling: int) -> frozenset[str]:
    """All tokens is_gematria accepts for a given ceiling.

    Numerals cover 1..ceiling-1; the word lists and final-letter forms are
    accepted regardless of ceiling.
    """
    numerals = [to_hebrew(i) for i in range(1, max(ceiling, 1))]
    suffixed = [prefix + final for prefix in NUMERAL_PREFIXES for final in FINAL_LETTERS]
    return frozenset(numerals + FINAL_LETTERS + ORDINAL_WORDS + suffixed + NUMERAL_PREFIXES)


def is_gematria(text: str, ceiling: int) -> bool:
    """True when text, stripped of markup and punctuation, is a heading marker."""
    cleaned = strip_tokens(text, MARKER_STRIP_TOKENS)
    return cleaned in marker_candidates(ceiling)
