#!/usr/bin/env python3
"""OCR a scanned PDF through Gemini, chunk by chunk, and track monthly cost.

The source PDF is split into consecutive page ranges (pages_per_chunk each).
Every chunk is sent as an inline PDF with the caller's prompt. Chunks run
strictly in page order; the output text is the chunk texts joined by a
blank line.

Per chunk:  pending → extracting → success
                                 → retry  (rate limit; wait delay × (attempt+1))
                                 → fatal  (rate limit on the last attempt, or
                                           any other service error)
A fatal chunk aborts the whole run. Between chunks the pipeline sleeps for
delay seconds, raised to the model's floor (30s for 2.5-pro, 6s for
2.5-flash).

Token usage is priced per model and added to the monthly usage ledger,
which resets when the calendar month changes.

Usage:
  export GEMINI_API_KEY=...
  python -m dicta_tools.ocr --pdf scans/book.pdf --out book.txt \\
    [--model gemini-2.5-flash] [--prompt-file prompt.txt] [--pages-per-chunk 5] [--delay 30]
"""

from __future__ import annotations

import argparse
import base64
import json
import os
import sys
import tempfile
import threading
import time
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Callable, Optional, Protocol

import fitz  # PyMuPDF
import httpx
import jsonschema

from dicta_tools.errors import (
    AuthenticationError,
    DictaToolError,
    InputError,
    PathNotFoundError,
    RateLimitError,
    ServiceError,
)
from dicta_tools.settings import REPO_ROOT, Settings, load_settings, resolve_root
from dicta_tools.text_io import validate_safe_path

USAGE_SCHEMA_PATH = REPO_ROOT / "schemas" / "usage_ledger_schema.json"

ENV_API_KEY = "GEMINI_API_KEY"
ERROR_EXCERPT_CHARS = 200

# (model substring, USD per 1M input tokens, USD per 1M output tokens); first match wins
PRICE_TABLE = [
    ("2.5-pro", 1.25, 5.0),
    ("2.5-flash", 0.075, 0.30),
    ("1.5-pro", 1.25, 5.0),
]
DEFAULT_PRICE = (0.075, 0.30)

# Minimum pause between chunks, by model substring
DELAY_FLOORS = [
    ("2.5-pro", 30.0),
    ("2.5-flash", 6.0),
]

RATE_LIMIT_HINTS = ("resource_exhausted", "quota", "rate limit", "too many requests")


# ─── Logging ────────────────────────────────────────────────────────────────

def log(msg: str, level: str = "INFO", log_file: Optional[Path] = None):
    timestamp = datetime.now().strftime("%H:%M:%S")
    line = f"[{timestamp}] [{level}] {msg}"
    print(line, file=sys.stderr if level in ("WARN", "ERROR") else sys.stdout, flush=True)
    if log_file:
        with open(log_file, "a", encoding="utf-8") as f:
            f.write(line + "\n")


# ─── Pricing and pacing ─────────────────────────────────────────────────────

def model_prices(model: str) -> tuple[float, float]:
    for key, input_rate, output_rate in PRICE_TABLE:
        if key in model:
            return input_rate, output_rate
    return DEFAULT_PRICE


def session_cost(model: str, input_tokens: int, output_tokens: int) -> float:
    input_rate, output_rate = model_prices(model)
    return (input_tokens / 1_000_000) * input_rate + (output_tokens / 1_000_000) * output_rate


def recommended_delay(model: str, delay_seconds: float) -> float:
    """Caller delay raised to the model's floor."""
    delay = delay_seconds
    for key, floor in DELAY_FLOORS:
        if key in model:
            delay = max(delay, floor)
    return delay


# ─── Usage ledger ───────────────────────────────────────────────────────────

def current_month(now: datetime | None = None) -> str:
    return (now or datetime.now(timezone.utc)).strftime("%Y-%m")


@dataclass
class UsageLedger:
    month: str
    input_tokens: int = 0
    output_tokens: int = 0
    total_cost: float = 0.0

    def to_dict(self) -> dict:
        return asdict(self)


class LedgerStore(Protocol):
    lock: threading.Lock

    def load(self) -> Optional[UsageLedger]:
        ...

    def save(self, ledger: UsageLedger) -> None:
        ...


class MemoryLedgerStore:
    """In-process ledger, used by tests and one-off runs."""

    def __init__(self, ledger: UsageLedger | None = None):
        self.ledger = ledger
        self.lock = threading.Lock()

    def load(self) -> Optional[UsageLedger]:
        return self.ledger

    def save(self, ledger: UsageLedger) -> None:
        self.ledger = UsageLedger(**ledger.to_dict())


class JsonLedgerStore:
    """Ledger persisted as one JSON file.

    save() writes a temp file and os.replace()s it, so readers never see a
    partial file. record_usage() holds self.lock across load and save; across
    processes the last writer wins.
    """

    _locks: dict[str, threading.Lock] = {}
    _locks_guard = threading.Lock()

    def __init__(self, path: str | Path, log_file: Optional[Path] = None):
        self.path = Path(path)
        self.log_file = log_file
        key = str(self.path.resolve())
        with JsonLedgerStore._locks_guard:
            self.lock = JsonLedgerStore._locks.setdefault(key, threading.Lock())

    def load(self) -> Optional[UsageLedger]:
        if not self.path.exists():
            return None
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            with open(USAGE_SCHEMA_PATH, "r", encoding="utf-8") as f:
                jsonschema.validate(data, json.load(f))
        except (json.JSONDecodeError, jsonschema.ValidationError) as e:
            log(f"Usage ledger {self.path} is unreadable ({e.__class__.__name__}); starting a fresh month",
                "WARN", self.log_file)
            return None
        return UsageLedger(
            month=data["month"],
            input_tokens=data["input_tokens"],
            output_tokens=data["output_tokens"],
            total_cost=float(data["total_cost"]),
        )

    def save(self, ledger: UsageLedger) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(prefix=".usage-", suffix=".json", dir=str(self.path.parent))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(ledger.to_dict(), f, indent=2)
            os.replace(tmp, self.path)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise


def record_usage(
    store: LedgerStore,
    input_tokens: int,
    output_tokens: int,
    cost: float,
    month: str | None = None,
) -> UsageLedger:
    """Add one run's usage to the ledger of the current month (read-modify-write under the store lock)."""
    month = month or current_month()
    with store.lock:
        ledger = store.load()
        if ledger is None or ledger.month != month:
            ledger = UsageLedger(month=month)
        ledger.input_tokens += input_tokens
        ledger.output_tokens += output_tokens
        ledger.total_cost += cost
        store.save(ledger)
    return ledger


# ─── PDF chunking ───────────────────────────────────────────────────────────

def iter_chunks(total_pages: int, pages_per_chunk: int):
    """Yield (start, end) page ranges, end exclusive, in page order."""
    for start in range(0, total_pages, pages_per_chunk):
        yield start, min(start + pages_per_chunk, total_pages)


def chunk_pdf_bytes(doc: "fitz.Document", start: int, end: int) -> bytes:
    """A standalone PDF holding pages [start, end) of doc."""
    chunk = fitz.open()
    try:
        chunk.insert_pdf(doc, from_page=start, to_page=end - 1)
        return chunk.tobytes()
    finally:
        chunk.close()


# ─── Recognition service ────────────────────────────────────────────────────

def is_rate_limit(status_code: int, body: str) -> bool:
    if status_code == 429:
        return True
    lowered = body.lower()
    return any(hint in lowered for hint in RATE_LIMIT_HINTS)


def call_gemini(
    api_key: str,
    model: str,
    prompt: str,
    pdf_bytes: bytes,
    endpoint: str = "https://generativelanguage.googleapis.com/v1beta",
    timeout: float = 600.0,
) -> dict:
    """One generateContent request. Returns {"text", "input_tokens", "output_tokens"}."""
    try:
        resp = httpx.post(
            f"{endpoint}/models/{model}:generateContent",
            headers={
                "x-goog-api-key": api_key,
                "content-type": "application/json",
            },
            json={
                "contents": [{
                    "role": "user",
                    "parts": [
                        {"text": prompt or ""},
                        {"inline_data": {
                            "mime_type": "application/pdf",
                            "data": base64.b64encode(pdf_bytes).decode("ascii"),
                        }},
                    ],
                }],
            },
            timeout=timeout,
        )
    except httpx.HTTPError as e:
        raise ServiceError(f"Request to {model} failed: {e}") from e

    if resp.status_code != 200:
        body = resp.text[:500]
        if is_rate_limit(resp.status_code, body):
            raise RateLimitError(f"Rate limited ({resp.status_code}): {body}", status_code=resp.status_code)
        raise ServiceError(f"API error {resp.status_code}: {body}", status_code=resp.status_code)

    try:
        data = resp.json()
    except ValueError as e:
        raise ServiceError(f"Unreadable response from {model}: {resp.text[:200]}") from e
    candidates = data.get("candidates") or []
    if not candidates:
        feedback = data.get("promptFeedback", {})
        raise ServiceError(f"No candidates returned (promptFeedback={feedback})")

    text = ""
    for part in candidates[0].get("content", {}).get("parts", []):
        text += part.get("text", "")

    usage = data.get("usageMetadata", {})
    return {
        "text": text,
        "input_tokens": usage.get("promptTokenCount", 0),
        "output_tokens": usage.get("candidatesTokenCount", 0),
    }


# ─── Pipeline ───────────────────────────────────────────────────────────────

class ChunkState(str, Enum):
    PENDING = "pending"
    EXTRACTING = "extracting"
    RETRY = "retry"
    SUCCESS = "success"
    FATAL = "fatal"


@dataclass
class ChunkResult:
    start_page: int                   # 0-based, inclusive
    end_page: int                     # 0-based, exclusive
    state: ChunkState = ChunkState.PENDING
    attempts: int = 0
    text: str = ""
    input_tokens: int = 0
    output_tokens: int = 0
    history: list[str] = field(default_factory=list)

    def transition(self, state: ChunkState):
        self.state = state
        self.history.append(state.value)


def extract_chunk(
    chunk: ChunkResult,
    pdf_bytes: bytes,
    call: Callable[[bytes], dict],
    delay: float,
    max_attempts: int,
    sleep: Callable[[float], None],
    log_file: Optional[Path] = None,
) -> ChunkResult:
    """Run one chunk through the retry state machine; raises ServiceError when fatal."""
    while True:
        chunk.transition(ChunkState.EXTRACTING)
        chunk.attempts += 1
        try:
            response = call(pdf_bytes)
        except RateLimitError as e:
            if chunk.attempts >= max_attempts:
                chunk.transition(ChunkState.FATAL)
                raise ServiceError(
                    f"Failed after {max_attempts} attempts (pages {chunk.start_page + 1}-{chunk.end_page}): "
                    f"{str(e)[:ERROR_EXCERPT_CHARS]}",
                    status_code=e.status_code,
                ) from e
            chunk.transition(ChunkState.RETRY)
            wait = delay * (chunk.attempts + 1)
            log(f"Rate limited on pages {chunk.start_page + 1}-{chunk.end_page}; "
                f"waiting {wait:.0f}s (attempt {chunk.attempts}/{max_attempts})", "WARN", log_file)
            sleep(wait)
            continue
        except ServiceError:
            chunk.transition(ChunkState.FATAL)
            raise

        chunk.text = response.get("text") or ""
        chunk.input_tokens = response.get("input_tokens", 0)
        chunk.output_tokens = response.get("output_tokens", 0)
        chunk.transition(ChunkState.SUCCESS)
        return chunk


def resolve_api_key(api_key: str | None) -> str:
    key = api_key or os.environ.get(ENV_API_KEY, "")
    if not key:
        raise AuthenticationError(f"No API key: pass api_key or set {ENV_API_KEY}")
    return key


def ocr_process(
    pdf_path: str,
    api_key: str | None,
    model: str | None = None,
    prompt: str = "",
    pages_per_chunk: int | None = None,
    delay_seconds: float | None = None,
    root=None,
    store: LedgerStore | None = None,
    call_fn: Callable[..., dict] | None = None,
    sleep: Callable[[float], None] = time.sleep,
    settings: Settings | None = None,
) -> dict:
    """Extract text from pdf_path. See module docstring for the chunk lifecycle.

    call_fn(api_key, model, prompt, pdf_bytes) -> {"text", "input_tokens",
    "output_tokens"} replaces the HTTP call (tests).
    """
    settings = settings or load_settings()
    log_file = settings.log_file

    if not pdf_path:
        raise InputError("Select a PDF file first")
    resolved = validate_safe_path(pdf_path, resolve_root(root) if root is not None else settings.upload_dir)
    if not resolved.is_file():
        raise PathNotFoundError(f"PDF file not found: {pdf_path}")
    key = resolve_api_key(api_key)

    model = model or settings.default_model
    pages_per_chunk = pages_per_chunk or settings.pages_per_chunk
    if pages_per_chunk < 1:
        raise InputError(f"pages_per_chunk must be at least 1, got {pages_per_chunk}")
    delay = recommended_delay(model, settings.delay_seconds if delay_seconds is None else delay_seconds)
    store = store or JsonLedgerStore(settings.usage_file, log_file)

    if call_fn is None:
        def call_fn(k, m, p, data):
            return call_gemini(k, m, p, data, endpoint=settings.gemini_endpoint, timeout=settings.gemini_timeout)

    def call(data: bytes) -> dict:
        return call_fn(key, model, prompt, data)

    chunks: list[ChunkResult] = []
    with fitz.open(str(resolved)) as doc:
        total_pages = doc.page_count
        ranges = list(iter_chunks(total_pages, pages_per_chunk))
        log(f"[OCR] {resolved.name}: {total_pages} pages, {len(ranges)} chunks, model {model}, "
            f"delay {delay:.0f}s", log_file=log_file)

        for n, (start, end) in enumerate(ranges, start=1):
            chunk = ChunkResult(start_page=start, end_page=end)
            chunks.append(chunk)
            extract_chunk(chunk, chunk_pdf_bytes(doc, start, end), call, delay,
                          settings.max_attempts, sleep, log_file)
            log(f"[OCR] chunk {n}/{len(ranges)} pages {start + 1}-{end}: "
                f"{chunk.input_tokens} in / {chunk.output_tokens} out tokens", log_file=log_file)
            if end < total_pages:
                sleep(delay)

    total_input = sum(c.input_tokens for c in chunks)
    total_output = sum(c.output_tokens for c in chunks)
    cost = session_cost(model, total_input, total_output)
    monthly = record_usage(store, total_input, total_output, cost)
    log(f"[OCR] done: {total_input + total_output} tokens, ${cost:.4f} this run, "
        f"${monthly.total_cost:.4f} in {monthly.month}", log_file=log_file)

    return {
        "text": "\n\n".join(c.text for c in chunks),
        "total_pages": total_pages,
        "total_tokens": total_input + total_output,
        "session_cost": cost,
        "monthly": monthly.to_dict(),
        "chunks": [
            {"pages": [c.start_page + 1, c.end_page], "attempts": c.attempts, "state": c.state.value}
            for c in chunks
        ],
    }


# ─── CLI ─────────────────────────────────────────────────────────────────────

def main():
    ap = argparse.ArgumentParser(description="OCR a scanned PDF through Gemini in page chunks.")
    ap.add_argument("--pdf", required=True, help="Source PDF (inside the upload root)")
    ap.add_argument("--out", default=None, help="Write the extracted text here (default: stdout)")
    ap.add_argument("--api-key", default=None, help=f"API key (default: ${ENV_API_KEY})")
    ap.add_argument("--model", default=None, help="Model id (default: settings gemini.default_model)")
    ap.add_argument("--prompt", default="", help="Prompt text sent with every chunk")
    ap.add_argument("--prompt-file", default=None, help="Read the prompt from a file")
    ap.add_argument("--pages-per-chunk", type=int, default=None)
    ap.add_argument("--delay", type=float, default=None, help="Seconds between chunks (raised to the model floor)")
    ap.add_argument("--root", default=None, help="Authorized root (default: settings upload_dir)")
    args = ap.parse_args()

    prompt = args.prompt
    if args.prompt_file:
        with open(args.prompt_file, encoding="utf-8") as f:
            prompt = f.read()

    try:
        result = ocr_process(
            args.pdf, args.api_key, args.model, prompt,
            args.pages_per_chunk, args.delay, root=args.root,
        )
    except DictaToolError as e:
        log(str(e), "ERROR")
        sys.exit(1)

    if args.out:
        with open(args.out, "w", encoding="utf-8") as f:
            f.write(result["text"])
        print(f"Wrote: {args.out}")
    else:
        print(result["text"])

    monthly = result["monthly"]
    print(f"\nPages: {result['total_pages']}")
    print(f"Tokens: {result['total_tokens']}")
    print(f"Cost this run: ${result['session_cost']:.4f}")
    print(f"Month {monthly['month']}: {monthly['input_tokens']} in / {monthly['output_tokens']} out, "
          f"${monthly['total_cost']:.4f}")


if __name__ == "__main__":
    main()
