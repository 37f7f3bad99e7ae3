#!/usr/bin/env python3
"""
Tests for daf / amud heading tools (dicta_tools/page_headers.py)

Run: python -m pytest tests/test_page_headers.py -q
"""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from dicta_tools.errors import InputError
from dicta_tools.page_headers import (
    AMUD_SUFFIX_MODE,
    COLON_STYLE,
    PUNCTUATION_MODE,
    add_page_number_in_lines,
    add_page_number_to_heading,
    create_page_b_headers,
    create_page_b_headers_in_lines,
    normalize_mode,
    normalize_style,
    page_b_lines,
    replace_page_b_headers,
    replace_page_b_in_text,
)


def _write(tmp_path, text):
    path = tmp_path / "book.txt"
    path.write_text(text, encoding="utf-8")
    return path


# ---------------------------------------------------------------------------
# עמוד ב headings
# ---------------------------------------------------------------------------

class TestPageBLines:
    def test_plain_phrase(self):
        assert page_b_lines("עמוד ב המשך", 3) == ["<h3>עמוד ב</h3>", "המשך"]

    @pytest.mark.parametrize("phrase", ['ע"ב', "ע''ב", "ע'ב"])
    def test_abbreviations(self, phrase):
        assert page_b_lines(f"{phrase} טקסט", 2) == ["<h2>עמוד ב</h2>", "טקסט"]

    def test_gmarah_word_kept_on_next_line(self):
        assert page_b_lines('גמרא ע"ב טקסט', 3) == ["<h3>עמוד ב</h3>", "גמרא טקסט"]
        assert page_b_lines("בגמ' עמוד ב", 3) == ["<h3>עמוד ב</h3>", "בגמ'"]

    def test_shem_dropped(self):
        assert page_b_lines('שם ע"ב', 3) == ["<h3>עמוד ב</h3>"]

    def test_tags_between_letters(self):
        assert page_b_lines('<b>ע"</b>ב: כך', 3) == ["<h3>עמוד ב</h3>", "כך"]

    def test_non_matches(self):
        assert page_b_lines("עמודים רבים", 3) is None
        assert page_b_lines('ע"בא', 3) is None
        assert page_b_lines('טקסט ע"ב', 3) is None
        assert page_b_lines("<h3>עמוד ב</h3>", 3) is None

    def test_create_in_lines_counts(self):
        lines = ["כותר", 'ע"ב א', "טקסט", "עמוד ב"]
        out, count = create_page_b_headers_in_lines(lines, 2)
        assert count == 2
        assert out == ["כותר", "<h2>עמוד ב</h2>", "א", "", "טקסט", "<h2>עמוד ב</h2>", ""]

    def test_existing_blank_line_not_doubled(self):
        out, count = create_page_b_headers_in_lines(["עמוד ב המשך", "", "טקסט"], 2)
        assert count == 1
        assert out == ["<h2>עמוד ב</h2>", "המשך", "", "טקסט"]

    def test_second_run_is_a_no_op(self):
        once, _ = create_page_b_headers_in_lines(['ע"ב טקסט', "הבא"], 2)
        twice, count = create_page_b_headers_in_lines(once, 2)
        assert count == 0
        assert twice == once

    def test_file_wrapper(self, tmp_path):
        path = _write(tmp_path, "כותר\nעמוד ב המשך")
        assert create_page_b_headers(str(path), 4, root=tmp_path) == {"count": 1}
        assert path.read_text(encoding="utf-8") == "כותר\n<h4>עמוד ב</h4>\nהמשך\n"

    def test_blocks_separated_by_blank_line(self, tmp_path):
        path = _write(tmp_path, 'כותר\nע"ב טקסט\nהבא')
        assert create_page_b_headers(str(path), 2, root=tmp_path) == {"count": 1}
        assert path.read_text(encoding="utf-8") == "כותר\n<h2>עמוד ב</h2>\nטקסט\n\nהבא"


# ---------------------------------------------------------------------------
# Amud markers merged into daf headings
# ---------------------------------------------------------------------------

class TestAddPageNumber:
    def test_punctuation_side_a(self):
        out, merged = add_page_number_in_lines(["<h2>דף ב</h2>", "עמוד א טקסט"], PUNCTUATION_MODE)
        assert merged == 1
        assert out == ["<h2>דף ב.</h2>", "טקסט"]

    def test_punctuation_side_b(self):
        out, _ = add_page_number_in_lines(["<h2>דף ג</h2>", "<b>ע\"ב</b> טקסט"], "punctuation")
        assert out == ["<h2>דף ג:</h2>", "טקסט"]

    def test_amud_suffix_mode(self):
        out, merged = add_page_number_in_lines(["<h3>דף ב</h3>", 'ע"ב: המשך'], AMUD_SUFFIX_MODE)
        assert merged == 1
        assert out == ['<h3>דף ב ע"ב</h3>', "המשך"]

    def test_existing_period_not_doubled(self):
        out, _ = add_page_number_in_lines(["<h2>דף ב.</h2>", "עמוד א"], PUNCTUATION_MODE)
        assert out == ["<h2>דף ב.</h2>"]

    def test_marker_found_after_leading_text(self):
        out, merged = add_page_number_in_lines(["<h2>דף ב</h2>", 'טקסט ע"א'], PUNCTUATION_MODE)
        assert merged == 1
        assert out == ["<h2>דף ב.</h2>", "טקסט"]

    def test_only_first_marker_removed(self):
        out, _ = add_page_number_in_lines(["<h2>דף ב</h2>", 'טקסט ע"א ועוד ע"ב'], PUNCTUATION_MODE)
        assert out == ["<h2>דף ב.</h2>", 'טקסט ועוד ע"ב']

    def test_text_around_heading_preserved(self):
        out, _ = add_page_number_in_lines(["x <h2>דף ד</h2> y", "עמוד ב"], PUNCTUATION_MODE)
        assert out == ["x <h2>דף ד:</h2> y"]

    def test_unknown_mode(self):
        with pytest.raises(InputError):
            normalize_mode("bogus")

    def test_file_messages(self, tmp_path):
        path = _write(tmp_path, "<h2>דף ב</h2>\nעמוד א\nטקסט")
        result = add_page_number_to_heading(str(path), PUNCTUATION_MODE, root=tmp_path)
        assert result["changed"] is True
        assert result["message"] == "ההחלפה הושלמה בהצלחה!"
        assert path.read_text(encoding="utf-8") == "<h2>דף ב.</h2>\nטקסט"

        result = add_page_number_to_heading(str(path), PUNCTUATION_MODE, root=tmp_path)
        assert result["changed"] is False
        assert result["message"] == "אין מה להחליף בקובץ זה"


# ---------------------------------------------------------------------------
# עמוד ב headings rewritten from the preceding daf heading
# ---------------------------------------------------------------------------

class TestReplacePageB:
    def test_colon_style(self):
        text = "<h2>דף ב.</h2>\nטקסט\n<h3>עמוד ב</h3>\nעוד"
        out, count = replace_page_b_in_text(text, COLON_STYLE)
        assert count == 1
        assert out == "<h2>דף ב.</h2>\nטקסט\n<h2>דף ב:</h2>\nעוד"

    def test_amud_style_drops_side_a_suffix(self):
        text = '<h2>דף ב ע"א</h2>\n<h3>עמוד ב</h3>'
        out, count = replace_page_b_in_text(text, "amud")
        assert count == 1
        assert out == '<h2>דף ב ע"א</h2>\n<h2>דף ב ע"ב</h2>'

    def test_tracks_latest_daf(self):
        text = "<h2>דף ב</h2>\n<h3>עמוד ב</h3>\n<h2>דף ג</h2>\n<h3>עמוד ב</h3>"
        out, count = replace_page_b_in_text(text, COLON_STYLE)
        assert count == 2
        assert out == "<h2>דף ב</h2>\n<h2>דף ב:</h2>\n<h2>דף ג</h2>\n<h2>דף ג:</h2>"

    def test_without_preceding_daf_untouched(self):
        text = "<h3>עמוד ב</h3>\n<h2>פרק א</h2>"
        out, count = replace_page_b_in_text(text, COLON_STYLE)
        assert count == 0
        assert out == text

    def test_unknown_style(self):
        with pytest.raises(InputError):
            normalize_style("dots")

    def test_file_wrapper(self, tmp_path):
        path = _write(tmp_path, "<h2>דף ה</h2>\n<h3>עמוד ב</h3>\n")
        assert replace_page_b_headers(str(path), COLON_STYLE, root=tmp_path) == {"count": 1}
        assert path.read_text(encoding="utf-8") == "<h2>דף ה</h2>\n<h2>דף ה:</h2>\n"
