"""Configuration management for the page OCR pipeline.

Loads and validates YAML configuration with sensible defaults for
rasterization, preprocessing, OCR, and orchestration settings.
"""

import logging
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class RasterizationConfig(BaseModel):
    """Configuration for page counting and page rendering (poppler)."""

    dpi: int = Field(default=300, gt=0)
    use_pdftocairo: bool = True
    poppler_path: str | None = None
    pdfinfo_timeout_s: float | None = Field(default=None, gt=0)
    temp_dir: str | None = None
    image_format: str = "png"


class PreprocessingConfig(BaseModel):
    """Configuration for the grayscale and sharpen filters."""

    grayscale_enabled: bool = True
    sharpen_enabled: bool = True
    sharpen_method: Literal["kernel", "unsharp"] = "kernel"
    unsharp_sigma: float = Field(default=1.0, gt=0)
    unsharp_amount: float = Field(default=1.5, ge=0)


class OCRConfig(BaseModel):
    """Configuration for Tesseract OCR engine."""

    tesseract_cmd: str | None = None
    languages: str = "eng+hin"
    psm: int = 3
    timeout_s: float | None = None


class PipelineConfig(BaseModel):
    """Configuration for the per-document orchestration."""

    failure_policy: Literal["fail_fast", "continue"] = "fail_fast"
    max_workers: int = Field(default=1, ge=1)


class ServerConfig(BaseModel):
    """Bind address for the HTTP API."""

    host: str = "0.0.0.0"
    port: int = Field(default=8000, gt=0, lt=65536)


class AppConfig(BaseModel):
    """Top-level application configuration."""

    rasterization: RasterizationConfig = Field(default_factory=RasterizationConfig)
    preprocessing: PreprocessingConfig = Field(default_factory=PreprocessingConfig)
    ocr: OCRConfig = Field(default_factory=OCRConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    log_level: str = "INFO"


def load_config(path: Path | None = None) -> AppConfig:
    """Load configuration from a YAML file.

    Args:
        path: Path to the YAML configuration file.
            Defaults to configs/config.yaml.

    Returns:
        Validated application configuration.
    """
    if path is None:
        path = Path("configs/config.yaml")

    if path.exists():
        logger.info("Loading configuration from %s", path)
        with open(path) as f:
            raw = yaml.safe_load(f) or {}
        return AppConfig(**raw)

    logger.info("No config file found at %s, using defaults", path)
    return AppConfig()
