"""
Image Encoder
=============

Dedicated module for encoding decoded frames into JPEG bytes.

Design Rules:
    - This is the ONLY place in the codebase that encodes images
    - Validates shape and dtype before handing the array to OpenCV
    - Fails fast with ImageEncodeError, never returns partial output
"""

import logging

import cv2
import numpy as np

from frame_ingest.errors import ImageEncodeError


logger = logging.getLogger(__name__)


DEFAULT_JPEG_QUALITY = 90


def encode_jpeg(image: np.ndarray, quality: int = DEFAULT_JPEG_QUALITY) -> bytes:
    """
    Encode a BGR or grayscale image to JPEG.

    Args:
        image: Image as np.ndarray, (H, W) or (H, W, 3), dtype=uint8
        quality: JPEG quality factor in [1, 100]

    Returns:
        JPEG file contents

    Raises:
        ImageEncodeError: If the image is empty, malformed, or OpenCV
            refuses to encode it
    """
    if not 1 <= quality <= 100:
        raise ImageEncodeError(f"JPEG quality out of range: {quality}")

    if image is None or image.size == 0:
        raise ImageEncodeError("Cannot encode an empty image")

    if image.ndim not in (2, 3) or (image.ndim == 3 and image.shape[2] not in (1, 3)):
        raise ImageEncodeError(f"Invalid image shape: {image.shape}")

    if image.dtype != np.uint8:
        raise ImageEncodeError(f"Invalid dtype: {image.dtype}")

    try:
        ok, buffer = cv2.imencode(".jpg", image, [cv2.IMWRITE_JPEG_QUALITY, quality])
    except cv2.error as e:
        raise ImageEncodeError(f"cv2.imencode failed: {e}") from e

    if not ok:
        raise ImageEncodeError("cv2.imencode returned failure")

    return buffer.tobytes()
