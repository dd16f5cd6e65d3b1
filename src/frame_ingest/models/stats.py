"""
Pacing and Statistics Models
============================

Mutable bookkeeping owned by the frame scheduler and connection manager.

These models carry counters and deadlines through the control loop. They
are plain dataclasses; the owning component is the only writer.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class PacingState:
    """
    Rate-limiting state for the frame scheduler.

    Times are monotonic seconds. The interval is kept in milliseconds
    because that is how the target rate is expressed.

    Attributes:
        target_interval_ms: Minimum spacing between emitted frames
        next_deadline: Earliest time the next frame may be emitted
        emitted_this_second: Frames emitted in the current one-second window
        window_start: Start of the current one-second window
        last_emit_time: Time of the last emitted frame, None before the first
    """

    target_interval_ms: float
    next_deadline: float
    emitted_this_second: int = 0
    window_start: float = 0.0
    last_emit_time: Optional[float] = None

    @property
    def target_interval_sec(self) -> float:
        """Target interval in seconds."""
        return self.target_interval_ms / 1000.0


@dataclass
class RunStatistics:
    """
    Cumulative counters since process start.

    Every counter only ever increases.

    Attributes:
        frames_saved: Frames successfully encoded and written
        frames_pulled: Frames successfully read from the source
        frames_skipped: Frames discarded by pacing
        read_failures: Failed or empty reads
        persist_failures: Selected frames that could not be written
    """

    frames_saved: int = 0
    frames_pulled: int = 0
    frames_skipped: int = 0
    read_failures: int = 0
    persist_failures: int = 0

    def to_dict(self) -> dict:
        """Export as dictionary for logging."""
        return {
            "frames_saved": self.frames_saved,
            "frames_pulled": self.frames_pulled,
            "frames_skipped": self.frames_skipped,
            "read_failures": self.read_failures,
            "persist_failures": self.persist_failures,
        }


class ConnectionMetrics:
    """Metrics for ConnectionManager observability."""

    __slots__ = (
        "connect_attempts",
        "successful_opens",
        "reconnect_count",
        "recover_failures",
        "native_fps",
    )

    def __init__(self) -> None:
        self.connect_attempts: int = 0
        self.successful_opens: int = 0
        self.reconnect_count: int = 0
        self.recover_failures: int = 0
        self.native_fps: Optional[float] = None

    def to_dict(self) -> dict:
        """Export metrics as dict."""
        return {
            "connect_attempts": self.connect_attempts,
            "successful_opens": self.successful_opens,
            "reconnect_count": self.reconnect_count,
            "recover_failures": self.recover_failures,
            "native_fps": self.native_fps,
        }
