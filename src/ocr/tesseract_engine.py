"""Tesseract OCR engine wrapper.

Recognizes plain text from a preprocessed page image using a language
hint fixed when the engine is constructed.
"""

import io

import pytesseract
from PIL import Image, UnidentifiedImageError

from src.utils.logger import get_logger

from .errors import ImageDecodeFailed, RecognitionFailed

logger = get_logger(__name__)


class TesseractEngine:
    """Wrapper around Tesseract OCR for page text recognition.

    Args:
        tesseract_cmd: Path to the Tesseract executable.
            If ``None``, uses the system default.
        languages: Tesseract language hint shared by every page,
            e.g. ``"eng+hin"``.
        psm: Tesseract page segmentation mode.
        timeout_s: Seconds before a recognition call is abandoned.
            ``None`` or ``0`` waits indefinitely.
    """

    def __init__(
        self,
        tesseract_cmd: str | None = None,
        languages: str = "eng+hin",
        psm: int = 3,
        timeout_s: float | None = None,
    ) -> None:
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd
        self.languages = languages
        self.psm = psm
        self.timeout_s = timeout_s or 0

    def recognize(self, image_bytes: bytes) -> str:
        """Run OCR on an encoded page image.

        An empty string is a valid result for pages without text.

        Args:
            image_bytes: Encoded (PNG) page image.

        Returns:
            Raw recognized text, line breaks preserved.

        Raises:
            ImageDecodeFailed: If the bytes cannot be opened as an image.
            RecognitionFailed: If Tesseract errors, is missing, or times out.
        """
        try:
            pil_image = Image.open(io.BytesIO(image_bytes))
            pil_image.load()
        except (UnidentifiedImageError, OSError) as exc:
            raise ImageDecodeFailed(f"OCR input is not an image: {exc}") from exc

        try:
            text = pytesseract.image_to_string(
                pil_image,
                lang=self.languages,
                config=f"--psm {self.psm}",
                timeout=self.timeout_s,
            )
        except pytesseract.TesseractNotFoundError as exc:
            raise RecognitionFailed("Tesseract executable not found") from exc
        except pytesseract.TesseractError as exc:
            raise RecognitionFailed(f"Tesseract failed: {exc}") from exc
        except RuntimeError as exc:
            # pytesseract reports timeouts as a bare RuntimeError
            raise RecognitionFailed(f"Tesseract timed out: {exc}") from exc

        logger.info("OCR recognized %d characters (lang=%s)", len(text), self.languages)
        return text
