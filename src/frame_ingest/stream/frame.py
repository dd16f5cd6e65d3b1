"""
Frame Data Model
=================

Internal frame representation for the ingestion loop.

This module defines the typed Frame class passed from the frame source to
the scheduler and on to the writer.

Design Rules:
    - Lives for exactly one scheduling decision
    - Image data is never copied or modified before encoding
"""

from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True, slots=True, eq=False)
class Frame:
    """
    Decoded frame pulled from the stream.

    Attributes:
        image: Decoded BGR image, shape (H, W, 3), dtype uint8
        arrival: Monotonic time (seconds) at which the read returned
        sequence: Number of successful reads before this one
    """

    image: np.ndarray
    arrival: float
    sequence: int

    def __repr__(self) -> str:
        """Compact repr that doesn't dump the full image."""
        shape = None if self.image is None else self.image.shape
        return (
            f"Frame(sequence={self.sequence}, "
            f"arrival={self.arrival:.3f}, "
            f"shape={shape})"
        )
