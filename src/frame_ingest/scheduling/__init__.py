"""
Scheduling Module
=================

Frame pacing and output file naming.
"""

from frame_ingest.scheduling.naming import format_timestamp, frame_filename
from frame_ingest.scheduling.scheduler import FrameScheduler

__all__ = [
    "FrameScheduler",
    "format_timestamp",
    "frame_filename",
]
