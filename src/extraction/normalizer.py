"""Whitespace normalization for raw OCR output."""

import re

_WHITESPACE_RUN = re.compile(r"\s+")


def normalize_text(raw_text: str) -> str:
    """Collapse every whitespace run (newlines included) to one space and trim.

    The result never contains two consecutive whitespace characters, so
    normalizing an already normalized string returns it unchanged.

    Args:
        raw_text: Text as returned by the OCR engine.

    Returns:
        Cleaned single-line text.
    """
    return _WHITESPACE_RUN.sub(" ", raw_text).strip()
