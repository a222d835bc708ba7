"""Rule-based entity extraction using regex patterns.

Finds emails, dates, URLs, and currency amounts in cleaned OCR text.
Each category is scanned independently; matches are kept in order of
appearance and duplicates are preserved.
"""

import re
from dataclasses import dataclass, field

from src.utils.logger import get_logger

logger = get_logger(__name__)

ENTITY_CATEGORIES: tuple[str, ...] = ("emails", "dates", "urls", "amounts")

# Patterns are ASCII-only so OCR'd Devanagari digits and letters are not
# mistaken for numeric dates or amounts.
_EMAIL_PATTERN = r"[\w.-]+@[\w.-]+\.\w+"
_DATE_PATTERN = (
    r"\d{1,2}[/-]\d{1,2}[/-]\d{2,4}"  # 12/05/2024, 1-2-24
    r"|\w+\s\d{1,2},\s\d{4}"  # March 5, 2024
)
_URL_PATTERN = r"https?://\S+"
_AMOUNT_PATTERN = r"(?:₹|\$|INR)\s*[\d,]+\.?\d*"

_DEFAULT_PATTERNS: dict[str, str] = {
    "emails": _EMAIL_PATTERN,
    "dates": _DATE_PATTERN,
    "urls": _URL_PATTERN,
    "amounts": _AMOUNT_PATTERN,
}


@dataclass
class EntitySet:
    """Matched substrings per entity category, in order of appearance."""

    emails: list[str] = field(default_factory=list)
    dates: list[str] = field(default_factory=list)
    urls: list[str] = field(default_factory=list)
    amounts: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, list[str]]:
        """Return the four categories as plain lists."""
        return {name: list(getattr(self, name)) for name in ENTITY_CATEGORIES}

    def total(self) -> int:
        return sum(len(getattr(self, name)) for name in ENTITY_CATEGORIES)


class RuleExtractor:
    """Regex-based extractor for generic entities in cleaned text.

    Args:
        patterns: Optional overrides keyed by category name. Categories
            not given keep the default pattern.
    """

    def __init__(self, patterns: dict[str, str] | None = None) -> None:
        merged = dict(_DEFAULT_PATTERNS)
        if patterns:
            unknown = set(patterns) - set(ENTITY_CATEGORIES)
            if unknown:
                raise ValueError(f"Unknown entity categories: {sorted(unknown)}")
            merged.update(patterns)
        self.patterns: dict[str, re.Pattern[str]] = {
            name: re.compile(pattern, re.ASCII) for name, pattern in merged.items()
        }

    def extract(self, text: str) -> EntitySet:
        """Scan text for every entity category.

        Args:
            text: Normalized OCR text.

        Returns:
            EntitySet with a (possibly empty) list for each category.
        """
        found = {
            name: [match.group(0) for match in pattern.finditer(text)]
            for name, pattern in self.patterns.items()
        }
        entities = EntitySet(**found)
        logger.debug("Rule extraction found %d entities", entities.total())
        return entities
