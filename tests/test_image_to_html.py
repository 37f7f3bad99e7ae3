#!/usr/bin/env python3
"""
Tests for inline image embedding (dicta_tools/image_to_html.py)

Run: python -m pytest tests/test_image_to_html.py -q
"""

import base64
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from dicta_tools.errors import InputError
from dicta_tools.image_to_html import image_html, image_to_html

PNG_BYTES = b"\x89PNG\r\n\x1a\nfake"


def _expected(data, ext):
    return f'<img src="data:image/{ext};base64,{base64.b64encode(data).decode("ascii")}" >'


class TestImageToHtml:
    def test_local_file_uses_its_extension(self, tmp_path):
        path = tmp_path / "scan.jpg"
        path.write_bytes(PNG_BYTES)
        assert image_to_html(str(path), root=tmp_path) == {"html": _expected(PNG_BYTES, "jpg")}

    def test_quoted_path_accepted(self, tmp_path):
        path = tmp_path / "scan.png"
        path.write_bytes(PNG_BYTES)
        assert image_to_html(f' "{path}" ', root=tmp_path)["html"] == _expected(PNG_BYTES, "png")

    def test_url_fetched(self):
        seen = []

        def fake_fetch(url):
            seen.append(url)
            return b"remote"

        result = image_to_html("https://example.org/page.gif", fetch=fake_fetch)
        assert seen == ["https://example.org/page.gif"]
        assert result == {"html": _expected(b"remote", "png")}

    def test_outside_root(self, tmp_path):
        root = tmp_path / "uploads"
        root.mkdir()
        path = tmp_path / "scan.png"
        path.write_bytes(PNG_BYTES)
        with pytest.raises(InputError, match="Access denied"):
            image_to_html(str(path), root=root)

    def test_missing_file(self, tmp_path):
        with pytest.raises(InputError, match="No image found"):
            image_to_html(str(tmp_path / "nope.png"), root=tmp_path)

    def test_empty_input(self):
        with pytest.raises(InputError):
            image_to_html("  ")

    def test_image_html_format(self):
        assert image_html(b"ab", "png") == '<img src="data:image/png;base64,YWI=" >'
