"""Image filters applied to rendered pages before OCR.

Provides grayscale conversion and two sharpening variants: a fixed 3x3
kernel and an unsharp mask.
"""

import cv2
import numpy as np

from src.utils.logger import get_logger

logger = get_logger(__name__)

_SHARPEN_KERNEL = np.array(
    [[0, -1, 0], [-1, 5, -1], [0, -1, 0]],
    dtype=np.float32,
)


def to_grayscale(image: np.ndarray) -> np.ndarray:
    """Convert an image to grayscale if it has color channels.

    Args:
        image: Input image (BGR, BGRA or grayscale).

    Returns:
        Single-channel image.
    """
    if image.ndim == 2:
        return image
    if image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2GRAY)
    return cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)


def sharpen_kernel(image: np.ndarray) -> np.ndarray:
    """Sharpen with a 3x3 Laplacian-style kernel."""
    result = cv2.filter2D(image, -1, _SHARPEN_KERNEL)
    logger.debug("Applied kernel sharpen")
    return result


def sharpen_unsharp(
    image: np.ndarray, sigma: float = 1.0, amount: float = 1.5
) -> np.ndarray:
    """Sharpen with an unsharp mask.

    Args:
        image: Input image.
        sigma: Gaussian blur sigma used to build the mask.
        amount: Weight of the detail layer added back to the image.

    Returns:
        Sharpened image with the same shape and dtype.
    """
    blurred = cv2.GaussianBlur(image, (0, 0), sigma)
    result = cv2.addWeighted(image, 1.0 + amount, blurred, -amount, 0)
    logger.debug("Applied unsharp mask with sigma=%.2f amount=%.2f", sigma, amount)
    return result


def sharpen(image: np.ndarray, method: str = "kernel", **kwargs: float) -> np.ndarray:
    """Sharpen an image using the specified method.

    Args:
        image: Input image.
        method: Either ``"kernel"`` or ``"unsharp"``.
        **kwargs: Extra parameters for the unsharp mask.

    Returns:
        Sharpened image.

    Raises:
        ValueError: If an unsupported method is specified.
    """
    if method == "kernel":
        return sharpen_kernel(image)
    if method == "unsharp":
        return sharpen_unsharp(image, **kwargs)
    raise ValueError(f"Unsupported sharpen method: {method}")


def calculate_sharpness(image: np.ndarray) -> float:
    """Calculate image sharpness using Laplacian variance (higher is sharper)."""
    return float(cv2.Laplacian(to_grayscale(image), cv2.CV_64F).var())
