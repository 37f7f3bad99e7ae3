#!/usr/bin/env python3
"""
Tests for heading level changes (dicta_tools/change_heading_level.py)

Run: python -m pytest tests/test_change_heading_level.py -q
"""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from dicta_tools.change_heading_level import change_heading_level, change_heading_level_in_text
from dicta_tools.errors import InputError


class TestChangeHeadingLevelInText:
    def test_only_requested_level_moves(self):
        text = "<h3>סימן א</h3>\nטקסט\n<h2>פרק א</h2>\n<h3>סימן ב</h3>"
        out, count = change_heading_level_in_text(text, 3, 4)
        assert count == 2
        assert out == "<h4>סימן א</h4>\nטקסט\n<h2>פרק א</h2>\n<h4>סימן ב</h4>"

    def test_span_across_lines(self):
        out, count = change_heading_level_in_text("<h3>סימן\nג</h3>", 3, 2)
        assert count == 1
        assert out == "<h2>סימן\nג</h2>"

    def test_unclosed_opener_left_alone(self):
        out, count = change_heading_level_in_text("<h3>סימן א\n<h3>סימן ב</h3>", 3, 4)
        assert count == 1
        assert out == "<h3>סימן א\n<h4>סימן ב</h4>"

    def test_inner_markup_kept(self):
        out, _ = change_heading_level_in_text("<h2><b>פרק</b> ד</h2>", 2, 5)
        assert out == "<h5><b>פרק</b> ד</h5>"

    @pytest.mark.parametrize("current,new", [(0, 2), (2, 7)])
    def test_invalid_level(self, current, new):
        with pytest.raises(InputError):
            change_heading_level_in_text("<h2>א</h2>", current, new)


class TestChangeHeadingLevelFile:
    def test_changed(self, tmp_path):
        path = tmp_path / "book.txt"
        path.write_text("<h3>א</h3>\n<h3>ב</h3>", encoding="utf-8")
        result = change_heading_level(str(path), 3, 2, root=tmp_path)
        assert result == {"changed": True, "count": 2, "message": "רמות הכותרות עודכנו בהצלחה!"}
        assert path.read_text(encoding="utf-8") == "<h2>א</h2>\n<h2>ב</h2>"

    def test_nothing_to_change(self, tmp_path):
        path = tmp_path / "book.txt"
        path.write_text("<h2>א</h2>", encoding="utf-8")
        result = change_heading_level(str(path), 3, 2, root=tmp_path)
        assert result["changed"] is False
        assert result["message"] == "אין מה להחליף בקובץ זה"
        assert path.read_text(encoding="utf-8") == "<h2>א</h2>"
