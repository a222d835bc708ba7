"""FastAPI application exposing the page OCR pipeline over HTTP.

Accepts PDF uploads, runs them through the document processor, and
returns the per-page extraction results.
"""

import os
import shutil
import tempfile
import time
import uuid
from pathlib import Path
from typing import Annotated

from fastapi import FastAPI, File, HTTPException, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.ocr.document_processor import DocumentProcessor
from src.ocr.errors import DocumentPipelineError, PageProcessingFailed
from src.utils.config import load_config
from src.utils.logger import get_logger

from .schemas import (
    ExtractionResponse,
    HealthResponse,
    PageResponse,
    PipelineErrorResponse,
)

logger = get_logger(__name__)

API_VERSION = "1.0.0"

app = FastAPI(
    title="Page OCR Extraction API",
    description="Extract text, entities, and labeled fields from PDF pages",
    version=API_VERSION,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_ALLOWED_CONTENT_TYPES = {
    "application/pdf",
    "application/octet-stream",
}


def _get_processor() -> DocumentProcessor:
    """Build a document processor from the current configuration."""
    return DocumentProcessor(load_config())


def _pipeline_error(exc: DocumentPipelineError) -> JSONResponse:
    if isinstance(exc, PageProcessingFailed):
        body = PipelineErrorResponse(
            error=type(exc.cause).__name__,
            message=str(exc.cause),
            page=exc.page_index,
        )
    else:
        body = PipelineErrorResponse(error=type(exc).__name__, message=str(exc))
    return JSONResponse(status_code=422, content=body.model_dump())


@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Return system health status."""
    return HealthResponse(
        status="healthy",
        version=API_VERSION,
        tesseract_available=shutil.which("tesseract") is not None,
        pdfinfo_available=shutil.which("pdfinfo") is not None,
        languages=load_config().ocr.languages,
    )


@app.post(
    "/extract",
    response_model=ExtractionResponse,
    responses={422: {"model": PipelineErrorResponse}},
)
async def extract_document(
    file: Annotated[UploadFile, File(...)],
) -> ExtractionResponse | JSONResponse:
    """Run OCR and extraction on every page of an uploaded PDF.

    The upload is spooled to a temporary file for the poppler tools and
    removed once processing ends.

    Args:
        file: Uploaded PDF document.

    Returns:
        Per-page results, or a 422 body naming the failing page.
    """
    start_time = time.time()

    if file.content_type and file.content_type not in _ALLOWED_CONTENT_TYPES:
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported file type: {file.content_type}",
        )

    content = await file.read()
    if not content.startswith(b"%PDF"):
        raise HTTPException(status_code=400, detail="Upload is not a PDF document")

    fd, tmp_name = tempfile.mkstemp(suffix=".pdf", prefix="upload-")
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(content)

        processor = _get_processor()
        doc_result = await run_in_threadpool(processor.process, tmp_path)
    except DocumentPipelineError as exc:
        logger.error("Extraction of %s failed: %s", file.filename, exc)
        return _pipeline_error(exc)
    except Exception as exc:
        logger.error("Extraction failed: %s", exc)
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    finally:
        try:
            tmp_path.unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("Failed to remove upload %s: %s", tmp_path, exc)

    return ExtractionResponse(
        success=not doc_result.failed_pages,
        document_id=str(uuid.uuid4()),
        filename=file.filename or "document.pdf",
        page_count=doc_result.page_count,
        failed_pages=doc_result.failed_pages,
        pages=[PageResponse.model_validate(p) for p in doc_result.to_list()],
        processing_time_ms=(time.time() - start_time) * 1000,
    )
