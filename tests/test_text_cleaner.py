#!/usr/bin/env python3
"""
Tests for text cleanup and sentence-ending fixes (dicta_tools/text_cleaner.py)

Run: python -m pytest tests/test_text_cleaner.py -q
"""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from dicta_tools.errors import InputError
from dicta_tools.text_cleaner import (
    ADD_COLON,
    ADD_PERIOD,
    NO_CHANGE,
    clean_text,
    emphasize_and_punctuate,
    emphasize_and_punctuate_lines,
    text_cleaner,
)

LONG_WORDS = ["מילה"] * 10


class TestCleanText:
    def test_empty_lines_and_double_spaces(self):
        text = "א  ב\n\n\nג  "
        out = clean_text(text, {"remove_empty_lines": True, "remove_double_spaces": True})
        assert out == "א ב\nג"

    def test_spaces_before_closing_punctuation(self):
        assert clean_text("א ) ב . ג ,", {"remove_spaces_before": True}) == "א) ב. ג,"

    def test_spaces_after_opening_brackets(self):
        assert clean_text("( א [  ב", {"remove_spaces_after": True}) == "(א [ב"

    def test_spaces_around_newlines(self):
        assert clean_text("א  \n  ב", {"remove_spaces_around_newlines": True}) == "א\nב"

    def test_double_quote_pairs(self):
        assert clean_text("''א'' ``ב``", {"replace_double_quotes": True}) == '"א" "ב"'

    def test_normalize_quotes(self):
        assert clean_text("“א” ‘ב’ ג׳", {"normalize_quotes": True}) == "\"א\" 'ב' ג'"

    def test_trailing_whitespace_always_trimmed(self):
        assert clean_text("א\n\n", {}) == "א"

    def test_unknown_option(self):
        with pytest.raises(InputError):
            clean_text("א", {"shout": True})

    def test_file_wrapper(self, tmp_path):
        path = tmp_path / "book.txt"
        path.write_text("א  ב\n", encoding="utf-8")
        assert text_cleaner(str(path), {"remove_double_spaces": True}, root=tmp_path) == {"changed": True}
        assert path.read_text(encoding="utf-8") == "א ב"
        assert text_cleaner(str(path), {"remove_double_spaces": True}, root=tmp_path) == {"changed": False}


class TestEmphasizeAndPunctuate:
    def test_period_replaces_trailing_comma(self):
        line = " ".join(LONG_WORDS + ["סוף,"])
        out, changed = emphasize_and_punctuate_lines([line], ADD_PERIOD, False)
        assert changed
        assert out == [" ".join(LONG_WORDS + ["סוף."])]

    def test_colon_appended(self):
        line = " ".join(LONG_WORDS + ["סוף"])
        out, _ = emphasize_and_punctuate_lines([line], ADD_COLON, False)
        assert out[0].endswith("סוף:")

    def test_existing_ending_or_closing_tag_kept(self):
        lines = [" ".join(LONG_WORDS + ["סוף?"]), " ".join(LONG_WORDS + ["<b>סוף</b>"])]
        out, changed = emphasize_and_punctuate_lines(lines, ADD_PERIOD, False)
        assert not changed
        assert out == lines

    def test_emphasize_first_word_keeps_ending(self):
        line = " ".join(["ראשית"] + LONG_WORDS)
        out, changed = emphasize_and_punctuate_lines([line], ADD_PERIOD, True)
        assert changed
        assert out == ["<b>ראשית</b> " + " ".join(LONG_WORDS) + "."]

    def test_already_bold_first_word_untouched(self):
        line = " ".join(["<b>ראשית</b>"] + LONG_WORDS) + "."
        out, changed = emphasize_and_punctuate_lines([line], NO_CHANGE, True)
        assert not changed
        assert out == [line]

    def test_short_lines_and_headings_skipped(self):
        lines = ["שורה קצרה", "<h2>" + " ".join(LONG_WORDS + ["סוף"]) + "</h2>"]
        out, changed = emphasize_and_punctuate_lines(lines, "period", True)
        assert not changed
        assert out == lines

    def test_unknown_ending(self):
        with pytest.raises(InputError):
            emphasize_and_punctuate_lines(["x"], "exclaim", False)

    def test_file_wrapper(self, tmp_path):
        path = tmp_path / "book.txt"
        path.write_text("כותר\n" + " ".join(LONG_WORDS + ["סוף"]), encoding="utf-8")
        assert emphasize_and_punctuate(str(path), "colon", False, root=tmp_path) == {"changed": True}
        assert path.read_text(encoding="utf-8").endswith("סוף:")
