"""Shared test fixtures for the page OCR test suite."""

from pathlib import Path

import cv2
import numpy as np
import pytest


@pytest.fixture
def sample_color_image() -> np.ndarray:
    """Create a simple synthetic BGR test image."""
    image = np.zeros((200, 300, 3), dtype=np.uint8)
    image[50:150, 50:250] = (255, 255, 255)
    return image


@pytest.fixture
def sample_png_bytes(sample_color_image: np.ndarray) -> bytes:
    """PNG-encoded version of ``sample_color_image``."""
    ok, buffer = cv2.imencode(".png", sample_color_image)
    assert ok
    return buffer.tobytes()


@pytest.fixture
def sample_pdf(tmp_path: Path) -> Path:
    """A file that exists on disk; its content is never parsed in tests."""
    path = tmp_path / "doc.pdf"
    path.write_bytes(b"%PDF-1.4 fake content")
    return path


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def config_dir(project_root: Path) -> Path:
    """Return the configs directory path."""
    return project_root / "configs"
