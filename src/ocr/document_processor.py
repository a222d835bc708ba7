"""Per-document OCR pipeline.

Counts pages, then for each page renders it, preprocesses the image,
runs OCR, normalizes the text, and extracts entities and key-value
pairs. Results are assembled in ascending page order.
"""

import json
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import Any

from src.extraction.key_value import KeyValueExtractor
from src.extraction.normalizer import normalize_text
from src.extraction.rule_extractor import EntitySet, RuleExtractor
from src.preprocessing.pipeline import PreprocessingPipeline
from src.utils.config import AppConfig
from src.utils.logger import get_logger

from .errors import PageProcessingFailed, PipelineCancelled
from .interfaces import (
    EntityExtractorPort,
    KeyValueExtractorPort,
    OCREnginePort,
    PageCounterPort,
    PreprocessorPort,
    RasterizerPort,
)
from .pdf_handler import PageCounter, PageRasterizer
from .tesseract_engine import TesseractEngine

logger = get_logger(__name__)


class PipelineState(StrEnum):
    """Lifecycle of a single document run."""

    START = "start"
    COUNTING_PAGES = "counting_pages"
    PROCESSING_PAGE = "processing_page"
    AGGREGATING = "aggregating"
    DONE = "done"
    FAILED = "failed"


_TERMINAL_STATES = {PipelineState.DONE, PipelineState.FAILED}


@dataclass
class PageResult:
    """Extraction results for a single document page."""

    page_number: int
    text: str
    entities: EntitySet
    key_value_pairs: dict[str, str]
    error: str | None = None

    @classmethod
    def failed(cls, page_number: int, exc: Exception) -> "PageResult":
        """Placeholder result for a page that failed under the continue policy."""
        return cls(
            page_number=page_number,
            text="",
            entities=EntitySet(),
            key_value_pairs={},
            error=f"{type(exc).__name__}: {exc}",
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "page": self.page_number,
            "text": self.text,
            "entities": self.entities.to_dict(),
            "keyValuePairs": dict(self.key_value_pairs),
        }
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass
class DocumentResult:
    """Complete processing results for a document."""

    source_file: str
    page_count: int
    pages: list[PageResult]

    @property
    def failed_pages(self) -> list[int]:
        return [p.page_number for p in self.pages if p.error is not None]

    def to_list(self) -> list[dict[str, Any]]:
        """Serialize as an ordered list of page objects."""
        return [page.to_dict() for page in self.pages]

    def to_json(self, indent: int | None = 2) -> str:
        return json.dumps(self.to_list(), indent=indent, ensure_ascii=False)


@dataclass
class PipelineRun:
    """State of one document run, created fresh by every ``process`` call."""

    document: Path
    state: PipelineState = PipelineState.START
    page_count: int | None = None
    current_page: int | None = None
    error: Exception | None = None
    completed_pages: int = 0
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def transition(self, state: PipelineState, page_index: int | None = None) -> None:
        with self._lock:
            if self.state in _TERMINAL_STATES:
                raise RuntimeError(f"Run already finished in state {self.state}")
            logger.debug(
                "%s: %s -> %s%s",
                self.document.name,
                self.state,
                state,
                f" ({page_index})" if page_index is not None else "",
            )
            self.state = state
            if page_index is not None:
                self.current_page = page_index

    def page_done(self) -> None:
        with self._lock:
            self.completed_pages += 1

    def fail(self, exc: Exception) -> None:
        self.error = exc
        self.transition(PipelineState.FAILED)


class DocumentProcessor:
    """End-to-end page OCR and extraction pipeline.

    Every collaborator can be injected; any that is omitted is built
    from ``config``.

    Args:
        config: Application configuration object.
        page_counter: Returns the number of pages in a document.
        rasterizer: Renders one page to encoded image bytes.
        preprocessor: Filters a rendered page before OCR.
        ocr_engine: Recognizes text in a preprocessed page.
        entity_extractor: Finds generic entities in normalized text.
        key_value_extractor: Finds ``Label: value`` pairs in raw text.
    """

    def __init__(
        self,
        config: AppConfig | None = None,
        *,
        page_counter: PageCounterPort | None = None,
        rasterizer: RasterizerPort | None = None,
        preprocessor: PreprocessorPort | None = None,
        ocr_engine: OCREnginePort | None = None,
        entity_extractor: EntityExtractorPort | None = None,
        key_value_extractor: KeyValueExtractorPort | None = None,
    ) -> None:
        self.config = config or AppConfig()
        raster_cfg = self.config.rasterization
        ocr_cfg = self.config.ocr

        self.page_counter = page_counter or PageCounter(
            poppler_path=raster_cfg.poppler_path,
            timeout_s=raster_cfg.pdfinfo_timeout_s,
        )
        self.rasterizer = rasterizer or PageRasterizer(
            dpi=raster_cfg.dpi,
            image_format=raster_cfg.image_format,
            use_pdftocairo=raster_cfg.use_pdftocairo,
            poppler_path=raster_cfg.poppler_path,
            temp_dir=raster_cfg.temp_dir,
        )
        self.preprocessor = preprocessor or PreprocessingPipeline(
            self.config.preprocessing
        )
        self.ocr_engine = ocr_engine or TesseractEngine(
            tesseract_cmd=ocr_cfg.tesseract_cmd,
            languages=ocr_cfg.languages,
            psm=ocr_cfg.psm,
            timeout_s=ocr_cfg.timeout_s,
        )
        self.entity_extractor = entity_extractor or RuleExtractor()
        self.key_value_extractor = key_value_extractor or KeyValueExtractor()

        self.failure_policy = self.config.pipeline.failure_policy
        self.max_workers = self.config.pipeline.max_workers
        self.last_run: PipelineRun | None = None

    def process(
        self,
        document: Path | str,
        cancel_event: threading.Event | None = None,
    ) -> DocumentResult:
        """Process every page of a document.

        Args:
            document: Path to the PDF file.
            cancel_event: When set, the run stops before starting the next page.

        Returns:
            One PageResult per page, in ascending page order.

        Raises:
            PageCountUnavailable: If the page count cannot be determined.
            PageProcessingFailed: If a page fails under the fail-fast policy.
            PipelineCancelled: If ``cancel_event`` was set mid-run.
        """
        path = Path(document)
        run = PipelineRun(document=path)
        self.last_run = run
        logger.info("Processing document: %s", path)

        try:
            run.transition(PipelineState.COUNTING_PAGES)
            page_count = self.page_counter.count_pages(path)
            run.page_count = page_count
            logger.info("%s has %d pages", path.name, page_count)

            pages = self._process_pages(run, path, page_count, cancel_event)

            run.transition(PipelineState.AGGREGATING)
            result = DocumentResult(
                source_file=str(path), page_count=page_count, pages=pages
            )
        except Exception as exc:
            run.fail(exc)
            raise

        run.transition(PipelineState.DONE)
        logger.info(
            "Processed %d pages from %s (%d failed)",
            result.page_count,
            path.name,
            len(result.failed_pages),
        )
        return result

    def process_page(self, document: Path, page_index: int) -> PageResult:
        """Run every per-page step for one page, without any failure policy."""
        image = self.rasterizer.rasterize(document, page_index)
        filtered = self.preprocessor.process(image)
        raw_text = self.ocr_engine.recognize(filtered)
        cleaned = normalize_text(raw_text)
        return PageResult(
            page_number=page_index,
            text=cleaned,
            entities=self.entity_extractor.extract(cleaned),
            key_value_pairs=self.key_value_extractor.extract(raw_text),
        )

    def _process_pages(
        self,
        run: PipelineRun,
        document: Path,
        page_count: int,
        cancel_event: threading.Event | None,
    ) -> list[PageResult]:
        if self.max_workers <= 1 or page_count == 1:
            pages: list[PageResult] = []
            for page_index in range(1, page_count + 1):
                self._check_cancelled(run, cancel_event)
                pages.append(self._run_page(run, document, page_index, page_count))
            return pages

        logger.debug("Processing %d pages with %d workers", page_count, self.max_workers)
        with ThreadPoolExecutor(
            max_workers=self.max_workers, thread_name_prefix="ocr-page"
        ) as executor:
            futures: list[Future[PageResult]] = [
                executor.submit(
                    self._run_page_if_active,
                    run,
                    document,
                    page_index,
                    page_count,
                    cancel_event,
                )
                for page_index in range(1, page_count + 1)
            ]
            pages = []
            for future in futures:
                try:
                    pages.append(future.result())
                except Exception:
                    executor.shutdown(wait=True, cancel_futures=True)
                    raise
            return pages

    def _run_page_if_active(
        self,
        run: PipelineRun,
        document: Path,
        page_index: int,
        page_count: int,
        cancel_event: threading.Event | None,
    ) -> PageResult:
        self._check_cancelled(run, cancel_event)
        return self._run_page(run, document, page_index, page_count)

    def _run_page(
        self, run: PipelineRun, document: Path, page_index: int, page_count: int
    ) -> PageResult:
        run.transition(PipelineState.PROCESSING_PAGE, page_index)
        logger.info("Processing page %d of %d", page_index, page_count)
        try:
            result = self.process_page(document, page_index)
        except Exception as exc:
            logger.error("Page %d of %s failed: %s", page_index, document.name, exc)
            if self.failure_policy != "continue":
                raise PageProcessingFailed(page_index, exc) from exc
            result = PageResult.failed(page_index, exc)
        run.page_done()
        return result

    @staticmethod
    def _check_cancelled(
        run: PipelineRun, cancel_event: threading.Event | None
    ) -> None:
        if cancel_event is not None and cancel_event.is_set():
            logger.warning(
                "Cancelling %s after %d pages", run.document.name, run.completed_pages
            )
            raise PipelineCancelled(run.completed_pages)
