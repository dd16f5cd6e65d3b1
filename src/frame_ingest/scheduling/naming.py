"""
Frame file naming.

Filenames embed a local wall-clock timestamp with millisecond precision and
double as ordering keys: lexical order equals chronological order.
"""

from datetime import datetime


FRAME_PREFIX = "frame"
FRAME_EXTENSION = ".jpg"


def format_timestamp(moment: datetime) -> str:
    """Render ``YYYYMMDD_HHMMSS_mmm`` with the millisecond field zero-padded."""
    return f"{moment:%Y%m%d_%H%M%S}_{moment.microsecond // 1000:03d}"


def frame_filename(moment: datetime) -> str:
    """Return e.g. ``frame_20240131_235959_007.jpg``."""
    return f"{FRAME_PREFIX}_{format_timestamp(moment)}{FRAME_EXTENSION}"
