"""Text generator exceptions."""

from __future__ import annotations


class GenerationError(Exception):
    """Base exception for text generation failures."""


class GenerationFailedError(GenerationError):
    """Raised when the generator call fails or returns no usable answer."""


class RateLimitedError(GenerationError):
    """Raised when the generator rejects the call because of a usage limit."""
