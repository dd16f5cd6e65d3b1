"""
Frame Writer
============

Output directory handling and JPEG persistence.

Design Rules:
    - The output directory is created once at startup; failure is fatal
    - Per-frame failures raise PersistFailure and never leave the loop
    - Existing files are never touched except by a same-name overwrite
"""

import logging
import os
from pathlib import Path
from typing import Callable, Union

from frame_ingest.errors import ConfigurationError, ImageEncodeError, PersistFailure
from frame_ingest.stream.frame import Frame
from frame_ingest.stream.image_encoder import DEFAULT_JPEG_QUALITY, encode_jpeg


logger = logging.getLogger(__name__)


DIRECTORY_MODE = 0o755


Encoder = Callable[..., bytes]


class FrameWriter:
    """
    Writes selected frames as JPEG files into one directory.

    Attributes:
        directory: Output directory
        jpeg_quality: Quality factor passed to the encoder

    Example:
        writer = FrameWriter("/app/frames", jpeg_quality=90)
        writer.ensure_directory()
        path = writer.persist(frame, "frame_20240101_120000_000.jpg")
    """

    def __init__(
        self,
        directory: Union[str, Path],
        jpeg_quality: int = DEFAULT_JPEG_QUALITY,
        encoder: Encoder = encode_jpeg,
    ) -> None:
        """
        Initialize frame writer.

        Args:
            directory: Output directory
            jpeg_quality: JPEG quality factor in [1, 100]
            encoder: Callable (image, quality) -> bytes
        """
        self.directory = Path(directory)
        self.jpeg_quality = jpeg_quality
        self._encoder = encoder

    def ensure_directory(self) -> Path:
        """
        Create the output directory if absent.

        Returns:
            The output directory

        Raises:
            ConfigurationError: If the directory cannot be created, or the
                path exists and is not a directory
        """
        if self.directory.is_dir():
            return self.directory
        if self.directory.exists():
            raise ConfigurationError(
                f"Output path exists and is not a directory: {self.directory}"
            )
        try:
            os.makedirs(self.directory, mode=DIRECTORY_MODE, exist_ok=True)
        except OSError as e:
            raise ConfigurationError(
                f"Failed to create output directory: {self.directory} ({e})"
            ) from e
        logger.info(f"Created output directory: {self.directory}")
        return self.directory

    def persist(self, frame: Frame, filename: str) -> Path:
        """
        Encode a frame and write it under `filename`.

        Args:
            frame: Frame selected by the scheduler
            filename: Bare file name (no directory part)

        Returns:
            Path of the written file

        Raises:
            PersistFailure: If encoding or writing fails
        """
        path = self.directory / filename
        try:
            data = self._encoder(frame.image, self.jpeg_quality)
        except ImageEncodeError as e:
            raise PersistFailure(f"Failed to encode frame {frame.sequence}: {e}") from e

        # Readers only ever see complete files under the final name.
        partial = path.with_name(f".{filename}.partial")
        try:
            partial.write_bytes(data)
            os.replace(partial, path)
        except OSError as e:
            partial.unlink(missing_ok=True)
            raise PersistFailure(f"Failed to write {path}: {e}") from e

        return path
