"""
Stream Module
=============

Frame source capability and connection lifecycle.

This module provides the ingestion layer:
    - Frame: Decoded frame plus arrival time
    - FrameSource / OpenCVFrameSource: Capability over the decoding library
    - RetryPolicy: Fixed backoff with optional attempt ceiling
    - ConnectionManager: Initial connect and unbounded recovery
    - encode_jpeg: The only image encoder

Example:
    from frame_ingest.shutdown import CancellationToken
    from frame_ingest.stream import ConnectionManager, OpenCVFrameSource

    manager = ConnectionManager(
        endpoint="rtsp://camera:8554/stream",
        source=OpenCVFrameSource(),
        token=CancellationToken(),
    )
    handle = manager.acquire()
"""

from frame_ingest.stream.frame import Frame
from frame_ingest.stream.source import FrameSource, OpenCVFrameSource
from frame_ingest.stream.retry import RetryPolicy
from frame_ingest.stream.connection import ConnectionManager
from frame_ingest.stream.image_encoder import encode_jpeg


__all__ = [
    "Frame",
    "FrameSource",
    "OpenCVFrameSource",
    "RetryPolicy",
    "ConnectionManager",
    "encode_jpeg",
]
