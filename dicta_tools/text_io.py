"""Whole-file text I/O for the heading tools, confined to an authorized root.

Every read and write goes through validate_safe_path(). Lines are split on
\\r?\\n and written back joined with a single \\n.
"""

from __future__ import annotations

import re
from pathlib import Path

from dicta_tools.errors import InputError, PathNotFoundError

TEXT_EXTENSION = ".txt"

_LINE_BREAK_RE = re.compile(r"\r?\n")


def validate_safe_path(file_path: str | Path, root: str | Path) -> Path:
    """Resolve file_path and reject it unless it lies inside root."""
    if not file_path:
        raise InputError("No file selected")
    resolved = Path(file_path).resolve()
    resolved_root = Path(root).resolve()
    if resolved != resolved_root and resolved_root not in resolved.parents:
        raise InputError(f"Access denied: {file_path} is outside {resolved_root}")
    return resolved


def ensure_txt(file_path: str | Path, root: str | Path) -> Path:
    """Path check plus the .txt extension every heading tool requires."""
    resolved = validate_safe_path(file_path, root)
    if resolved.suffix.lower() != TEXT_EXTENSION:
        raise InputError(f"Unsupported file type: {resolved.name} (expected a {TEXT_EXTENSION} file)")
    return resolved


def split_lines(text: str) -> list[str]:
    return _LINE_BREAK_RE.split(text)


def join_lines(lines: list[str]) -> str:
    return "\n".join(lines)


def read_text(file_path: str | Path, root: str | Path) -> str:
    resolved = validate_safe_path(file_path, root)
    if not resolved.is_file():
        raise PathNotFoundError(f"File not found: {file_path}")
    return resolved.read_text(encoding="utf-8")


def read_lines(file_path: str | Path, root: str | Path) -> list[str]:
    return split_lines(read_text(file_path, root))


def write_text(file_path: str | Path, content: str, root: str | Path) -> None:
    resolved = validate_safe_path(file_path, root)
    with open(resolved, "w", encoding="utf-8", newline="") as f:
        f.write(content)


def write_lines(file_path: str | Path, lines: list[str], root: str | Path) -> None:
    write_text(file_path, join_lines(lines), root)
