"""
Data Models
===========

State enums and bookkeeping dataclasses for the ingest service.

Models:
    State:
        - ConnectionState: Lifecycle of the stream handle
        - EmitResult: Outcome of one scheduler tick

    Stats:
        - PacingState: Deadline and per-second counter for rate limiting
        - RunStatistics: Cumulative frame counters
        - ConnectionMetrics: Connection attempt counters
"""

from frame_ingest.models.state import ALLOWED_TRANSITIONS, ConnectionState, EmitResult
from frame_ingest.models.stats import ConnectionMetrics, PacingState, RunStatistics

__all__ = [
    # State
    "ConnectionState",
    "EmitResult",
    "ALLOWED_TRANSITIONS",
    # Stats
    "PacingState",
    "RunStatistics",
    "ConnectionMetrics",
]
