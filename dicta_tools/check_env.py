#!/usr/bin/env python3
"""dicta_tools environment sanity-check.

Checks:
- Python version (>= 3.10)
- Required dependencies importable, with a best-effort version match
  against the exact pins in requirements.txt
- Settings file present and valid against its schema
- Upload root and usage ledger locations

Usage:
  python -m dicta_tools.check_env [--repo-root PATH]
"""

from __future__ import annotations

import argparse
import importlib
import sys
from importlib import metadata
from pathlib import Path

from dicta_tools.errors import InputError
from dicta_tools.settings import DEFAULT_SETTINGS_PATH, load_settings

MIN_PY = (3, 10)

# (import name, distribution name)
REQUIRED = [
    ("yaml", "PyYAML"),
    ("jsonschema", "jsonschema"),
    ("httpx", "httpx"),
    ("fitz", "PyMuPDF"),
]


def find_repo_root(start: Path) -> Path:
    """Walk parents to the folder holding pyproject.toml and dicta_tools/."""
    cur = start.resolve()
    for _ in range(8):
        if (cur / "pyproject.toml").exists() and (cur / "dicta_tools").is_dir():
            return cur
        if cur.parent == cur:
            break
        cur = cur.parent
    raise SystemExit(
        "ERROR: Could not find the dicta_tools repo root (folder with pyproject.toml and dicta_tools/). "
        "Run from inside the repo or pass --repo-root."
    )


def parse_pinned_requirements(req_path: Path) -> dict[str, str]:
    pinned: dict[str, str] = {}
    if not req_path.exists():
        return pinned
    for raw in req_path.read_text(encoding="utf-8").splitlines():
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        # exact pins only
        if "==" in line and ">" not in line and "<" not in line:
            name, ver = line.split("==", 1)
            pinned[name.strip().lower()] = ver.strip()
    return pinned


def get_installed_version(dist_name: str) -> str | None:
    try:
        return metadata.version(dist_name)
    except metadata.PackageNotFoundError:
        return None


def check_python_version() -> list[str]:
    issues: list[str] = []
    if sys.version_info < MIN_PY:
        issues.append(
            f"Python >= {MIN_PY[0]}.{MIN_PY[1]} required; "
            f"found {sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}."
        )
    return issues


def check_import(module: str, dist_name: str) -> tuple[bool, str | None]:
    try:
        importlib.import_module(module)
        return True, None
    except ImportError as e:
        return False, f"Missing module '{module}'. Install '{dist_name}' via requirements.txt. ({e})"


def check_settings() -> tuple[list[str], list[str]]:
    issues: list[str] = []
    notes: list[str] = []
    try:
        settings = load_settings()
    except InputError as e:
        issues.append(str(e))
        return issues, notes
    notes.append(f"Settings: {DEFAULT_SETTINGS_PATH}")
    notes.append(f"Upload root: {settings.upload_dir}" + ("" if settings.upload_dir.is_dir() else " (missing)"))
    notes.append(f"Usage ledger: {settings.usage_file}")
    notes.append(f"Default model: {settings.default_model}")
    return issues, notes


def check_pins(req_path: Path) -> tuple[list[str], list[str]]:
    """Installed versions against the exact pins; missing is an issue, a mismatch a warning."""
    issues: list[str] = []
    warnings: list[str] = []
    for name, ver in parse_pinned_requirements(req_path).items():
        installed = get_installed_version(name)
        if installed is None:
            issues.append(f"Dependency not installed: {name}=={ver}")
        elif installed != ver:
            warnings.append(f"Version mismatch for {name}: required {ver}, installed {installed}")
    return issues, warnings


def main() -> None:
    ap = argparse.ArgumentParser(description="Check the dicta_tools runtime environment.")
    ap.add_argument("--repo-root", default=None, help="Path to the repo root (contains pyproject.toml)")
    args = ap.parse_args()

    repo = find_repo_root(Path(args.repo_root) if args.repo_root else Path.cwd())

    issues = check_python_version()
    for mod, dist_name in REQUIRED:
        ok, msg = check_import(mod, dist_name)
        if not ok:
            issues.append(msg)
    pin_issues, warnings = check_pins(repo / "requirements.txt")
    settings_issues, notes = check_settings()
    issues += pin_issues + settings_issues

    for note in notes:
        print(note)
    if issues:
        print("ENV CHECK: FAIL")
        for i in issues:
            print(f"- {i}")
        print("Fix: python -m pip install -e .[test]")
        raise SystemExit(2)
    print("ENV CHECK: PASS (WARNINGS)" if warnings else "ENV CHECK: PASS")
    for w in warnings:
        print(f"- {w}")


if __name__ == "__main__":
    main()
