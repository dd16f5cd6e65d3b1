"""
Frame Source
============

Capability interface over the stream decoding library.

The connection manager and the scheduler only talk to a FrameSource. The
production implementation wraps OpenCV's VideoCapture with the FFmpeg
backend; tests substitute a scripted fake.

Design Rules:
    - open() raises SourceOpenError instead of returning a dead handle
    - read() never raises for a broken stream, it returns None
    - Handles are opaque to callers
"""

import logging
from typing import Any, Optional, Protocol

import cv2
import numpy as np

from frame_ingest.errors import SourceOpenError


logger = logging.getLogger(__name__)


class FrameSource(Protocol):
    """
    Protocol for stream decoding backends.

    Implementations:
        - OpenCVFrameSource (production, RTSP via FFmpeg)
        - ScriptedFrameSource (tests)
    """

    def open(self, endpoint: str) -> Any:
        """
        Open the endpoint and return a live handle.

        Raises:
            SourceOpenError: If the endpoint cannot be opened
        """
        ...

    def read(self, handle: Any) -> Optional[np.ndarray]:
        """Read the next decoded image, or None on failure or empty frame."""
        ...

    def close(self, handle: Any) -> None:
        """Release the handle. Safe to call on a broken handle."""
        ...

    def configure_buffering(self, handle: Any, depth: int) -> None:
        """Request an internal decode buffer of `depth` frames."""
        ...

    def native_fps(self, handle: Any) -> float:
        """Frame rate reported by the stream metadata (may be garbage)."""
        ...


class OpenCVFrameSource:
    """
    FrameSource backed by cv2.VideoCapture.

    Attributes:
        api_preference: OpenCV capture backend (FFmpeg by default)

    Example:
        source = OpenCVFrameSource()
        cap = source.open("rtsp://camera:8554/stream")
        image = source.read(cap)
        source.close(cap)
    """

    def __init__(self, api_preference: int = cv2.CAP_FFMPEG) -> None:
        self.api_preference = api_preference

    def open(self, endpoint: str) -> cv2.VideoCapture:
        try:
            cap = cv2.VideoCapture(endpoint, self.api_preference)
        except cv2.error as e:
            raise SourceOpenError(f"Failed to open stream {endpoint}: {e}") from e
        if not cap.isOpened():
            cap.release()
            raise SourceOpenError(f"Failed to open stream: {endpoint}")
        return cap

    def read(self, handle: cv2.VideoCapture) -> Optional[np.ndarray]:
        try:
            ok, image = handle.read()
        except cv2.error as e:
            logger.debug(f"cv2 read error: {e}")
            return None
        if not ok or image is None or image.size == 0:
            return None
        return image

    def close(self, handle: cv2.VideoCapture) -> None:
        handle.release()

    def configure_buffering(self, handle: cv2.VideoCapture, depth: int) -> None:
        # Not every backend honours this; the return value is only logged.
        if not handle.set(cv2.CAP_PROP_BUFFERSIZE, depth):
            logger.debug(f"Capture backend ignored buffer size {depth}")

    def native_fps(self, handle: cv2.VideoCapture) -> float:
        return float(handle.get(cv2.CAP_PROP_FPS))
