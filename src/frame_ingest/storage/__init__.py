"""
Storage Module
==============

Output directory management and JPEG persistence.
"""

from frame_ingest.storage.writer import FrameWriter

__all__ = ["FrameWriter"]
