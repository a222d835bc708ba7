"""Capabilities the document processor depends on.

Any object with the matching method can be injected, which is how the
tests substitute doubles for poppler, OpenCV, and Tesseract.
"""

from pathlib import Path
from typing import Protocol

from src.extraction.rule_extractor import EntitySet


class PageCounterPort(Protocol):
    def count_pages(self, document: Path) -> int: ...


class RasterizerPort(Protocol):
    def rasterize(self, document: Path, page_index: int) -> bytes: ...


class PreprocessorPort(Protocol):
    def process(self, image_bytes: bytes) -> bytes: ...


class OCREnginePort(Protocol):
    def recognize(self, image_bytes: bytes) -> str: ...


class EntityExtractorPort(Protocol):
    def extract(self, text: str) -> EntitySet: ...


class KeyValueExtractorPort(Protocol):
    def extract(self, raw_text: str) -> dict[str, str]: ...
