"""
Frame Scheduler
===============

Rate-limits an irregular stream of decoded frames into persisted files.

The source is drained at its native rate; only frames arriving at or after
the pacing deadline are written. After every emit attempt the deadline is
rebased from the current time, so after a stall the cadence slips instead
of bursting to catch up.

Pacing:
    target_interval_ms = 1000 / target_fps
    emit   if now >= next_deadline, then next_deadline = now + interval
    skip   otherwise (frame dropped, never buffered)

Throughput Heartbeat:
    Once per elapsed second, independent of the emit deadline, the number
    of frames emitted in that window is logged and the counter reset.
"""

import logging
import time
from datetime import datetime
from typing import Any, Callable, Optional

from frame_ingest.errors import PersistFailure
from frame_ingest.models.state import EmitResult
from frame_ingest.models.stats import PacingState, RunStatistics
from frame_ingest.scheduling.naming import frame_filename
from frame_ingest.storage.writer import FrameWriter
from frame_ingest.stream.frame import Frame
from frame_ingest.stream.source import FrameSource


logger = logging.getLogger(__name__)


HEARTBEAT_SECONDS = 1.0


class FrameScheduler:
    """
    Decides which arriving frames are persisted.

    Attributes:
        source: FrameSource used to pull frames from the handle
        writer: FrameWriter that encodes and stores selected frames
        target_fps: Output rate
        pacing: Deadline and per-second counter
        stats: Cumulative counters

    Example:
        scheduler = FrameScheduler(source, writer, target_fps=5.0)

        while not token.cancelled:
            if scheduler.tick(handle) is EmitResult.READ_FAILURE:
                handle = manager.recover()
    """

    def __init__(
        self,
        source: FrameSource,
        writer: FrameWriter,
        target_fps: float,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        """
        Initialize frame scheduler.

        Args:
            source: FrameSource implementation
            writer: Destination for selected frames
            target_fps: Output rate, must be > 0
            clock: Monotonic time source in seconds (pacing)
            wall_clock: Local wall-clock source (filenames)
        """
        if target_fps <= 0:
            raise ValueError("target_fps must be positive")

        self.source = source
        self.writer = writer
        self.target_fps = target_fps
        self._clock = clock
        self._wall_clock = wall_clock

        now = clock()
        self.pacing = PacingState(
            target_interval_ms=1000.0 / target_fps,
            next_deadline=now,
            window_start=now,
        )
        self.stats = RunStatistics()
        self._last_filename: Optional[str] = None

        logger.info(
            f"FrameScheduler initialized: target_fps={target_fps:.3f}, "
            f"interval={self.pacing.target_interval_ms:.1f}ms"
        )

    @property
    def target_interval_ms(self) -> float:
        """Minimum spacing between emitted frames."""
        return self.pacing.target_interval_ms

    def tick(self, handle: Any) -> EmitResult:
        """
        Pull one frame and decide whether to persist it.

        The read blocks for as long as the source blocks.

        Args:
            handle: Live handle owned by the connection manager

        Returns:
            EmitResult describing what happened to the frame
        """
        image = self.source.read(handle)
        now = self._clock()

        if image is None or image.size == 0:
            self.stats.read_failures += 1
            return EmitResult.READ_FAILURE

        frame = Frame(image=image, arrival=now, sequence=self.stats.frames_pulled)
        self.stats.frames_pulled += 1

        if now >= self.pacing.next_deadline:
            result = self._emit(frame, now)
        else:
            self.stats.frames_skipped += 1
            result = EmitResult.SKIPPED

        self._heartbeat(now)
        return result

    def _emit(self, frame: Frame, now: float) -> EmitResult:
        filename = frame_filename(self._wall_clock())
        if filename == self._last_filename:
            logger.debug(f"Filename collision, overwriting {filename}")
        self._last_filename = filename

        try:
            self.writer.persist(frame, filename)
        except PersistFailure as e:
            self.stats.persist_failures += 1
            logger.debug(f"Skipping frame: {e}")
            result = EmitResult.PERSIST_FAILURE
        else:
            self.stats.frames_saved += 1
            self.pacing.emitted_this_second += 1
            self.pacing.last_emit_time = now
            result = EmitResult.EMITTED

        self.pacing.next_deadline = now + self.pacing.target_interval_sec
        return result

    def _heartbeat(self, now: float) -> None:
        if now - self.pacing.window_start < HEARTBEAT_SECONDS:
            return
        logger.info(
            f"Captured {self.pacing.emitted_this_second} frames in the last second"
        )
        self.pacing.emitted_this_second = 0
        self.pacing.window_start = now
