"""Pydantic response schemas for the FastAPI endpoints."""

from pydantic import BaseModel, ConfigDict, Field


class EntitiesResponse(BaseModel):
    """Entities found on a page, grouped by category."""

    emails: list[str] = Field(default_factory=list)
    dates: list[str] = Field(default_factory=list)
    urls: list[str] = Field(default_factory=list)
    amounts: list[str] = Field(default_factory=list)


class PageResponse(BaseModel):
    """Response schema for a single processed page."""

    model_config = ConfigDict(populate_by_name=True)

    page: int
    text: str
    entities: EntitiesResponse
    key_value_pairs: dict[str, str] = Field(alias="keyValuePairs")
    error: str | None = None


class ExtractionResponse(BaseModel):
    """Response schema for a document extraction request."""

    success: bool
    document_id: str
    filename: str
    page_count: int
    failed_pages: list[int]
    pages: list[PageResponse]
    processing_time_ms: float


class PipelineErrorResponse(BaseModel):
    """Body returned when the pipeline rejects a document."""

    error: str
    message: str
    page: int | None = None


class HealthResponse(BaseModel):
    """Response schema for the health check endpoint."""

    status: str
    version: str
    tesseract_available: bool
    pdfinfo_available: bool
    languages: str
