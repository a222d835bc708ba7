"""PDF page counting and single-page rasterization via poppler.

Page counts come from pdf2image's ``pdfinfo`` wrapper; pages are
rendered one at a time with pdf2image into a private temporary directory
that is always removed once the image bytes have been read back.
"""

import itertools
import shutil
import tempfile
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from pdf2image import convert_from_path
from pdf2image.exceptions import (
    PDFInfoNotInstalledError,
    PDFPageCountError,
    PDFPopplerTimeoutError,
)
from pdf2image.pdf2image import pdfinfo_from_path

from src.utils.logger import get_logger

from .errors import PageCountUnavailable, RasterizationFailed

logger = get_logger(__name__)


class PageCounter:
    """Counts document pages with poppler's ``pdfinfo``.

    Args:
        poppler_path: Optional directory containing the poppler tools.
        timeout_s: Seconds to wait for ``pdfinfo``; ``None`` waits forever.
    """

    def __init__(
        self, poppler_path: str | None = None, timeout_s: float | None = None
    ) -> None:
        self.poppler_path = poppler_path
        self.timeout_s = timeout_s

    def count_pages(self, document: Path) -> int:
        """Return the number of pages in a document.

        Raises:
            PageCountUnavailable: If the document is missing, ``pdfinfo``
                is not installed or times out, or its report has no
                usable page count.
        """
        path = Path(document)
        if not path.exists():
            raise PageCountUnavailable(f"Document not found: {path}")

        try:
            info = pdfinfo_from_path(
                str(path), poppler_path=self.poppler_path, timeout=self.timeout_s
            )
        except PDFInfoNotInstalledError as exc:
            raise PageCountUnavailable(
                "pdfinfo not found; is poppler installed?"
            ) from exc
        except PDFPopplerTimeoutError as exc:
            raise PageCountUnavailable(f"pdfinfo timed out on {path}") from exc
        except PDFPageCountError as exc:
            raise PageCountUnavailable(
                f"Could not determine page count of {path}: {exc}"
            ) from exc

        count = info["Pages"]
        if count < 1:
            raise PageCountUnavailable(f"Document reports {count} pages")
        logger.debug("Document %s has %d pages", path, count)
        return count


class PageRasterizer:
    """Renders one page of a document to encoded image bytes.

    Each call writes into its own temporary directory whose name joins a
    per-instance counter, the page index and a random token, so rapid or
    concurrent calls never share a path.

    Args:
        dpi: Rendering resolution.
        image_format: Output image format understood by poppler.
        use_pdftocairo: Render with ``pdftocairo`` instead of ``pdftoppm``.
        poppler_path: Optional directory containing the poppler tools.
        temp_dir: Parent directory for transient files; system default if
            ``None``.
    """

    def __init__(
        self,
        dpi: int = 300,
        image_format: str = "png",
        use_pdftocairo: bool = True,
        poppler_path: str | None = None,
        temp_dir: str | Path | None = None,
    ) -> None:
        self.dpi = dpi
        self.image_format = image_format
        self.use_pdftocairo = use_pdftocairo
        self.poppler_path = poppler_path
        self.temp_dir = str(temp_dir) if temp_dir else None
        self._sequence = itertools.count(1)

    def transient_name(self, page_index: int) -> str:
        """Build a collision-free base name for one rasterization call."""
        return f"page-{next(self._sequence):06d}-{page_index:04d}-{uuid.uuid4().hex}"

    @contextmanager
    def _transient_dir(self, name: str) -> Iterator[Path]:
        workdir = Path(tempfile.mkdtemp(prefix=f"{name}-", dir=self.temp_dir))
        try:
            yield workdir
        finally:
            try:
                shutil.rmtree(workdir)
            except OSError as exc:
                logger.warning("Failed to remove transient directory %s: %s", workdir, exc)

    def rasterize(self, document: Path, page_index: int) -> bytes:
        """Render a single page and return its encoded image bytes.

        Args:
            document: Path to the PDF file.
            page_index: 1-based page number.

        Returns:
            Encoded image bytes for that page.

        Raises:
            ValueError: If ``page_index`` is below 1.
            RasterizationFailed: If rendering fails or produces no readable file.
        """
        if page_index < 1:
            raise ValueError(f"Page index must be >= 1, got {page_index}")

        name = self.transient_name(page_index)
        with self._transient_dir(name) as workdir:
            try:
                paths = convert_from_path(
                    str(document),
                    dpi=self.dpi,
                    first_page=page_index,
                    last_page=page_index,
                    output_folder=str(workdir),
                    output_file=name,
                    fmt=self.image_format,
                    single_file=True,
                    paths_only=True,
                    use_pdftocairo=self.use_pdftocairo,
                    poppler_path=self.poppler_path,
                )
            except Exception as exc:
                raise RasterizationFailed(
                    f"Rendering page {page_index} of {document} failed: {exc}"
                ) from exc

            if not paths:
                raise RasterizationFailed(
                    f"Rendering page {page_index} of {document} produced no image"
                )

            try:
                data = Path(paths[0]).read_bytes()
            except OSError as exc:
                raise RasterizationFailed(
                    f"Could not read rendered page {page_index}: {exc}"
                ) from exc

        logger.debug(
            "Rendered page %d of %s at %d DPI (%d bytes)",
            page_index,
            document,
            self.dpi,
            len(data),
        )
        return data
