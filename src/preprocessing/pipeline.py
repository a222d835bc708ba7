"""Page image preprocessing ahead of OCR.

Decodes rendered page bytes, applies grayscale conversion and
sharpening, and re-encodes the result as PNG for the OCR engine.
"""

import cv2
import numpy as np

from src.ocr.errors import ImageDecodeFailed
from src.utils.config import PreprocessingConfig
from src.utils.logger import get_logger

from .filters import calculate_sharpness, sharpen, to_grayscale

logger = get_logger(__name__)


def decode_image(data: bytes) -> np.ndarray:
    """Decode encoded image bytes (PNG, JPEG, TIFF...) into an array.

    Raises:
        ImageDecodeFailed: If the bytes are empty or not a supported image.
    """
    if not data:
        raise ImageDecodeFailed("Empty image buffer")
    try:
        image = cv2.imdecode(np.frombuffer(data, dtype=np.uint8), cv2.IMREAD_UNCHANGED)
    except cv2.error as exc:
        raise ImageDecodeFailed(f"Could not decode image: {exc}") from exc
    if image is None:
        raise ImageDecodeFailed(f"Could not decode image ({len(data)} bytes)")
    return image


def encode_png(image: np.ndarray) -> bytes:
    """Encode an array as PNG bytes.

    Raises:
        ImageDecodeFailed: If OpenCV refuses to encode the array.
    """
    ok, buffer = cv2.imencode(".png", image)
    if not ok:
        raise ImageDecodeFailed("Could not encode processed image as PNG")
    return buffer.tobytes()


class PreprocessingPipeline:
    """Grayscale-then-sharpen filter chain for rendered pages.

    Args:
        config: Preprocessing configuration controlling which steps to apply.
    """

    def __init__(self, config: PreprocessingConfig | None = None) -> None:
        self.config = config or PreprocessingConfig()

    def process(self, image_bytes: bytes) -> bytes:
        """Run the filter chain on one rendered page.

        Args:
            image_bytes: Encoded page image as produced by the rasterizer.

        Returns:
            PNG-encoded filtered image.

        Raises:
            ImageDecodeFailed: If the input is not a decodable image or
                OpenCV rejects it while filtering.
        """
        image = decode_image(image_bytes)
        try:
            sharpness_before = calculate_sharpness(image)
            image = self._apply_filters(image)
        except cv2.error as exc:
            raise ImageDecodeFailed(
                f"Could not filter image of shape {image.shape}: {exc}"
            ) from exc

        logger.debug(
            "Preprocessing complete: shape %s, sharpness %.1f->%.1f",
            image.shape,
            sharpness_before,
            calculate_sharpness(image),
        )
        return encode_png(image)

    def _apply_filters(self, image: np.ndarray) -> np.ndarray:
        if self.config.grayscale_enabled:
            image = to_grayscale(image)

        if self.config.sharpen_enabled:
            if self.config.sharpen_method == "unsharp":
                image = sharpen(
                    image,
                    method="unsharp",
                    sigma=self.config.unsharp_sigma,
                    amount=self.config.unsharp_amount,
                )
            else:
                image = sharpen(image, method=self.config.sharpen_method)
        return image
