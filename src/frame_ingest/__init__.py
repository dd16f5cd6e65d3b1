"""
Frame Ingest Service
====================

Continuous RTSP frame ingestion with rate-limited JPEG persistence.

This package connects to a live video stream, drains it at its native rate,
and writes a subsample of frames to disk as timestamped JPEG files. Stream
outages are absorbed by an unbounded reconnect loop; only configuration errors
and an exhausted initial connection budget stop the process.

Components:
    - stream: Frame source capability, retry policy, connection lifecycle
    - scheduling: Frame pacing and filename generation
    - storage: Output directory handling and JPEG persistence
    - service: The single control loop tying everything together

Example:
    from frame_ingest.config import load_config
    from frame_ingest.service import IngestService

    settings = load_config()
    exit_code = IngestService(settings).run()
"""

__version__ = "0.1.0"
__author__ = "Frame Ingest Team"
