"""Utility functions for sanitization and validation."""

import html

import bleach


def sanitize_text(text: str) -> str:
    """Strip all markup from user or generated text, keeping plain content.

    Entities produced by bleach are decoded again; templates escape on
    output.
    """
    sanitized = bleach.clean(text or "", tags=[], strip=True)
    return html.unescape(sanitized).strip()


def is_blank(value: str | None) -> bool:
    return not (value or "").strip()


def validate_file_size(size: int, max_bytes: int) -> bool:
    """Return True if a file of ``size`` bytes is within the intake limit.

    The limit itself is accepted; one byte more is not.
    """
    return size <= max_bytes
