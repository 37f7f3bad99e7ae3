"""Runtime settings: config/dicta_settings.yaml validated against its JSON Schema.

Environment overrides:
  DICTA_UPLOAD_DIR   authorized root for every file the tools read or write
  DICTA_USAGE_FILE   path of the monthly usage ledger
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import jsonschema
import yaml

from dicta_tools.errors import InputError

REPO_ROOT = Path(__file__).resolve().parent.parent
DEFAULT_SETTINGS_PATH = REPO_ROOT / "config" / "dicta_settings.yaml"
SETTINGS_SCHEMA_PATH = REPO_ROOT / "schemas" / "dicta_settings_schema.json"


@dataclass
class Settings:
    upload_dir: Path
    usage_file: Path
    log_file: Optional[Path]
    default_model: str
    gemini_endpoint: str
    gemini_timeout: float
    pages_per_chunk: int
    delay_seconds: float
    max_attempts: int


def _resolve(path_str: str) -> Path:
    p = Path(path_str)
    return p if p.is_absolute() else REPO_ROOT / p


def load_settings(path: str | Path | None = None) -> Settings:
    """Load and validate settings, then apply environment overrides."""
    settings_path = Path(path) if path else DEFAULT_SETTINGS_PATH
    if not settings_path.exists():
        raise InputError(f"Settings file not found: {settings_path}")

    with open(settings_path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    with open(SETTINGS_SCHEMA_PATH, "r", encoding="utf-8") as f:
        schema = json.load(f)
    try:
        jsonschema.validate(data, schema)
    except jsonschema.ValidationError as e:
        raise InputError(f"Invalid settings in {settings_path}: {e.message}") from e

    gemini = data["gemini"]
    ocr = data.get("ocr", {})
    upload_dir = os.environ.get("DICTA_UPLOAD_DIR") or data["upload_dir"]
    usage_file = os.environ.get("DICTA_USAGE_FILE") or data["usage_file"]
    log_file = data.get("log_file")

    return Settings(
        upload_dir=_resolve(upload_dir),
        usage_file=_resolve(usage_file),
        log_file=_resolve(log_file) if log_file else None,
        default_model=gemini["default_model"],
        gemini_endpoint=gemini["endpoint"].rstrip("/"),
        gemini_timeout=float(gemini.get("timeout_seconds", 600)),
        pages_per_chunk=int(ocr.get("pages_per_chunk", 5)),
        delay_seconds=float(ocr.get("delay_seconds", 30)),
        max_attempts=int(ocr.get("max_attempts", 3)),
    )


def resolve_root(root: str | Path | None = None) -> Path:
    """Authorized root for file tools: explicit argument, else settings."""
    if root is not None:
        return Path(root)
    return load_settings().upload_dir
