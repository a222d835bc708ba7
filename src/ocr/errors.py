"""Error kinds raised by the page processing pipeline.

Every failure of an external tool or decoder is converted to one of the
kinds below so callers can handle them without knowing which backend
(poppler, OpenCV, Tesseract) produced the original exception.
"""


class DocumentPipelineError(Exception):
    """Base class for all pipeline errors."""


class PageCountUnavailable(DocumentPipelineError):
    """The page-count report was missing, unreadable, or had no page total."""


class RasterizationFailed(DocumentPipelineError):
    """A page could not be rendered to an image or read back."""


class ImageDecodeFailed(DocumentPipelineError):
    """Rasterized page bytes could not be decoded or re-encoded."""


class RecognitionFailed(DocumentPipelineError):
    """The OCR engine errored or timed out on a page."""


class PageProcessingFailed(DocumentPipelineError):
    """A page failed while the pipeline was running in fail-fast mode.

    Args:
        page_index: 1-based index of the failing page.
        cause: The error raised by the failing page step.
    """

    def __init__(self, page_index: int, cause: Exception) -> None:
        self.page_index = page_index
        self.cause = cause
        super().__init__(
            f"Page {page_index} failed: {type(cause).__name__}: {cause}"
        )


class PipelineCancelled(DocumentPipelineError):
    """The run was cancelled between pages."""

    def __init__(self, completed_pages: int) -> None:
        self.completed_pages = completed_pages
        super().__init__(f"Pipeline cancelled after {completed_pages} page(s)")
