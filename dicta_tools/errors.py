"""Error taxonomy shared by the heading tools and the OCR pipeline.

Input errors are raised before any mutation is written. Pattern errors
abort the header checker before it scans the document. Service errors
come from the recognition service; only the rate-limit kind is retried.
"""

from __future__ import annotations


class DictaToolError(Exception):
    """Base class for every error raised by dicta_tools."""


class InputError(DictaToolError, ValueError):
    """Missing or invalid path, wrong extension, bad level or mode."""


class PathNotFoundError(InputError, FileNotFoundError):
    """The requested source file does not exist."""


class PatternError(DictaToolError, ValueError):
    """A caller-supplied character class does not compile."""


class AuthenticationError(DictaToolError):
    """No API key could be resolved for the recognition service."""


class ServiceError(DictaToolError, RuntimeError):
    """The recognition service returned an error or an unusable response."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class RateLimitError(ServiceError):
    """Rate-limit or quota response (HTTP 429 / RESOURCE_EXHAUSTED)."""
