#!/usr/bin/env python3
"""Embed an image as an inline <img> tag (base64 data URI).

The source is either a file inside the authorized root or an http(s) URL.

Usage:
  python -m dicta_tools.image_to_html --source page12.png
  python -m dicta_tools.image_to_html --source https://example.org/scan.jpg
"""

from __future__ import annotations

import argparse
import base64
import sys
from pathlib import Path

import httpx

from dicta_tools.errors import DictaToolError, InputError, ServiceError
from dicta_tools.settings import resolve_root
from dicta_tools.text_io import validate_safe_path

DEFAULT_EXTENSION = "png"


def image_html(data: bytes, extension: str) -> str:
    encoded = base64.b64encode(data).decode("ascii")
    return f'<img src="data:image/{extension};base64,{encoded}" >'


def fetch_image(url: str, timeout: float = 60.0) -> bytes:
    resp = httpx.get(url, timeout=timeout, follow_redirects=True)
    if resp.status_code != 200:
        raise ServiceError(f"Image download failed ({resp.status_code}): {url}", status_code=resp.status_code)
    return resp.content


def image_to_html(path_or_url: str, root=None, fetch=fetch_image) -> dict:
    if not path_or_url or not path_or_url.strip():
        raise InputError("No image to convert")
    cleaned = path_or_url.strip().strip('"')

    if cleaned.startswith(("http://", "https://")):
        return {"html": image_html(fetch(cleaned), DEFAULT_EXTENSION)}

    local = Path(cleaned)
    if not local.exists():
        raise InputError(f"No image found at {cleaned}")
    resolved = validate_safe_path(local, resolve_root(root))
    extension = resolved.suffix.lstrip(".") or DEFAULT_EXTENSION
    return {"html": image_html(resolved.read_bytes(), extension)}


def main():
    ap = argparse.ArgumentParser(description="Convert an image into an inline <img> tag.")
    ap.add_argument("--source", required=True, help="Image path (inside the upload root) or http(s) URL")
    ap.add_argument("--root", default=None, help="Authorized root (default: settings upload_dir)")
    args = ap.parse_args()

    try:
        result = image_to_html(args.source, root=args.root)
    except (DictaToolError, httpx.HTTPError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(1)
    print(result["html"])


if __name__ == "__main__":
    main()
