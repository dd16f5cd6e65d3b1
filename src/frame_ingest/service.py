"""
Ingest Service
==============

The single control loop of the frame ingest service.

Lifecycle:
    1. Echo configuration
    2. Create the output directory (fatal on failure)
    3. Initial connection with a bounded attempt budget (fatal on exhaustion)
    4. Alternate FrameScheduler.tick() and ConnectionManager.recover()
       until the cancellation token is set
    5. Release the handle and report cumulative statistics

Exit Codes:
    0 - graceful shutdown
    1 - configuration error, unusable output directory, or no connection
"""

import logging
import time
from datetime import datetime
from typing import Callable, Optional

from frame_ingest.config import Settings
from frame_ingest.errors import ConfigurationError, ConnectFailure
from frame_ingest.models.state import EmitResult
from frame_ingest.models.stats import RunStatistics
from frame_ingest.scheduling.scheduler import FrameScheduler
from frame_ingest.shutdown import CancellationToken
from frame_ingest.storage.writer import FrameWriter
from frame_ingest.stream.connection import ConnectionManager
from frame_ingest.stream.retry import RetryPolicy
from frame_ingest.stream.source import FrameSource, OpenCVFrameSource


logger = logging.getLogger(__name__)


EXIT_SUCCESS = 0
EXIT_FAILURE = 1


class IngestService:
    """
    Wires the connection manager, scheduler and writer into one loop.

    Attributes:
        settings: Loaded configuration
        token: Cancellation token shared with the signal handler
        manager: ConnectionManager owning the stream handle
        writer: FrameWriter for the output directory
        scheduler: FrameScheduler, created once the stream is connected

    Example:
        token = CancellationToken()
        install_signal_handlers(token)
        exit_code = IngestService(settings, token=token).run()
    """

    def __init__(
        self,
        settings: Settings,
        source: Optional[FrameSource] = None,
        token: Optional[CancellationToken] = None,
        writer: Optional[FrameWriter] = None,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.settings = settings
        self.token = token or CancellationToken()
        self.source = source or OpenCVFrameSource()
        self.target_fps = settings.capture.resolved_fps
        self._clock = clock
        self._wall_clock = wall_clock

        stream = settings.stream
        self.writer = writer or FrameWriter(
            settings.output.directory,
            jpeg_quality=settings.output.jpeg_quality,
        )
        self.manager = ConnectionManager(
            endpoint=stream.url,
            source=self.source,
            token=self.token,
            initial_policy=RetryPolicy.initial(
                backoff_seconds=stream.connect_backoff_seconds,
                max_attempts=stream.max_connect_attempts,
            ),
            recovery_policy=RetryPolicy.recovery(
                settle_seconds=stream.reconnect_settle_seconds,
                backoff_seconds=stream.reconnect_backoff_seconds,
            ),
            buffer_size=stream.buffer_size,
            default_fps=stream.default_fps,
            max_valid_fps=stream.max_valid_fps,
        )
        self.scheduler: Optional[FrameScheduler] = None

    @property
    def stats(self) -> RunStatistics:
        """Cumulative statistics (empty before capture starts)."""
        if self.scheduler is None:
            return RunStatistics()
        return self.scheduler.stats

    def run(self) -> int:
        """
        Run until cancelled or a fatal error occurs.

        Returns:
            Process exit code
        """
        logger.info("Camera Ingest Service Starting...")
        logger.info(f"Stream URL: {self.settings.stream.url}")
        logger.info(f"Output Directory: {self.writer.directory}")
        logger.info(f"Target FPS: {self.target_fps:g}")

        try:
            self.writer.ensure_directory()
        except ConfigurationError as e:
            logger.error(str(e))
            return EXIT_FAILURE

        try:
            handle = self.manager.acquire()
        except ConnectFailure as e:
            logger.error(f"Could not connect to camera: {e}")
            return EXIT_FAILURE

        if handle is None:
            logger.info("Service stopped before capture started")
            return EXIT_SUCCESS

        self.scheduler = FrameScheduler(
            source=self.source,
            writer=self.writer,
            target_fps=self.target_fps,
            clock=self._clock,
            wall_clock=self._wall_clock,
        )

        exit_code = EXIT_SUCCESS
        logger.info("Starting frame capture...")
        try:
            self._capture_loop()
        except ConnectFailure as e:
            # Only reachable when the recovery policy sets a ceiling.
            logger.error(f"Giving up on stream: {e}")
            exit_code = EXIT_FAILURE
        finally:
            self.manager.release()
            stats = self.scheduler.stats
            logger.info(f"Service stopped. Total saved frames: {stats.frames_saved}")
            logger.info(
                f"Run statistics: {stats.to_dict()}, "
                f"connection: {self.manager.metrics.to_dict()}"
            )

        return exit_code

    def _capture_loop(self) -> None:
        handle = self.manager.handle

        while not self.token.cancelled:
            if handle is None:
                handle = self.manager.recover()
                continue

            result = self.scheduler.tick(handle)
            if result is EmitResult.READ_FAILURE:
                logger.warning("Failed to read frame. Reconnecting...")
                handle = self.manager.recover()
