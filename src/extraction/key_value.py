"""Line-oriented "Label: value" extraction.

Works on the raw OCR text, before whitespace normalization, because the
line breaks are what separate one pair from the next.
"""

import re

from src.utils.logger import get_logger

logger = get_logger(__name__)

_LABEL_LINE = re.compile(r"([A-Za-z\s]+):\s*(.*)")
_LABEL_SPACES = re.compile(r"\s+")


def normalize_label(label: str) -> str:
    """Turn a printed label into a key, e.g. ``"Invoice  Number"`` -> ``"invoice_number"``."""
    return _LABEL_SPACES.sub("_", label.strip()).lower()


class KeyValueExtractor:
    """Extracts labeled fields from lines shaped like ``Label: value``.

    Only letters and spaces are accepted in the label, and the label must
    start the line. Lines that do not fit, or whose value is blank, are
    skipped. A label made only of spaces yields the empty key. When a
    label repeats on a page the later line wins.
    """

    def extract(self, raw_text: str) -> dict[str, str]:
        pairs: dict[str, str] = {}
        for line in raw_text.splitlines():
            match = _LABEL_LINE.match(line)
            if not match:
                continue
            key = normalize_label(match.group(1))
            value = match.group(2).strip()
            if not value:
                continue
            pairs[key] = value

        logger.debug("Key-value extraction found %d pairs", len(pairs))
        return pairs
